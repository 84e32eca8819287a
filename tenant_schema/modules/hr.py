"""
Human resources schema.

Manages:
- employee_details: HR record linked to a user account
- attendance: daily check-in / check-out
- leave_types, leave_requests: leave management
- payroll_periods, payroll: payroll runs
- employee_salary_details: salary history
- employee_files: uploaded employee documents

``attendance.employee_id`` and ``leave_requests.employee_id`` mirror
``user_id``; older databases only had ``user_id`` so rows are backfilled
from it. ``employee_salary_details.salary`` mirrors ``base_salary``.
"""

from ..model import (
    ColumnMigrationRule,
    CopyFrom,
    IndexSpec,
    TableSpec,
    TriggerBinding,
    UniqueSpec,
    agency_column,
    column,
    created_by_column,
    ref,
    timestamps,
    user_ref,
    uuid_pk,
)
from ..model.columns import (
    BIGINT,
    BOOLEAN,
    DATE,
    INTEGER,
    JSONB,
    MONEY,
    RATE,
    TEXT,
    TIMESTAMPTZ,
    numeric,
)
from .base import SchemaModule

_BEFORE_WRITE = ("INSERT", "UPDATE")

EMPLOYEE_DETAILS = TableSpec(
    "employee_details",
    [
        uuid_pk(),
        user_ref("user_id"),
        column("employee_id", TEXT),
        agency_column(),
        column("first_name", TEXT, nullable=False),
        column("last_name", TEXT, nullable=False),
        column("date_of_birth", DATE),
        column("social_security_number", TEXT),
        column("nationality", TEXT),
        column("marital_status", TEXT),
        column("address", TEXT),
        column("employment_type", TEXT),
        column("work_location", TEXT),
        ref("supervisor_id", "employee_details.id"),
        column("emergency_contact_name", TEXT),
        column("emergency_contact_phone", TEXT),
        column("emergency_contact_relationship", TEXT),
        column("skills", JSONB),
        column("notes", TEXT),
        column("is_active", BOOLEAN, default=True),
        created_by_column(),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_employee_details_user_id", ("user_id",)),
        IndexSpec("idx_employee_details_agency_id", ("agency_id",)),
        IndexSpec("idx_employee_details_is_active", ("is_active",)),
        # Blocked by duplicate user ids in older databases
        IndexSpec(
            "idx_employee_details_user_id_unique",
            ("user_id",),
            unique=True,
            where="user_id IS NOT NULL",
            optional=True,
        ),
    ],
    audited=True,
    critical=True,
)

ATTENDANCE = TableSpec(
    "attendance",
    [
        uuid_pk(),
        user_ref("user_id", nullable=False, ondelete="CASCADE"),
        user_ref("employee_id", ondelete="CASCADE"),
        column("date", DATE, nullable=False),
        column("check_in_time", TIMESTAMPTZ),
        column("check_out_time", TIMESTAMPTZ),
        column("status", TEXT, default="present"),
        column("hours_worked", RATE),
        column("total_hours", RATE),
        column("overtime_hours", RATE),
        column("location", TEXT),
        column("ip_address", TEXT),
        agency_column(),
        column("notes", TEXT),
        *timestamps(),
    ],
    unique=[UniqueSpec(("user_id", "date"))],
    indexes=[
        IndexSpec("idx_attendance_user_id", ("user_id",)),
        IndexSpec("idx_attendance_employee_id", ("employee_id",)),
        IndexSpec("idx_attendance_date", ("date",)),
        IndexSpec("idx_attendance_status", ("status",)),
        IndexSpec("idx_attendance_agency_id", ("agency_id",)),
    ],
    triggers=[
        TriggerBinding(
            "sync_attendance_employee_id_trigger",
            "sync_attendance_employee_id",
            events=_BEFORE_WRITE,
        ),
    ],
    migrations=[ColumnMigrationRule("employee_id", CopyFrom("user_id"))],
    critical=True,
)

LEAVE_TYPES = TableSpec(
    "leave_types",
    [
        uuid_pk(),
        column("name", TEXT, nullable=False, unique=True),
        column("code", TEXT, unique=True),
        column("description", TEXT),
        column("max_days", INTEGER),
        column("is_paid", BOOLEAN, default=True),
        column("requires_approval", BOOLEAN, default=True),
        column("is_active", BOOLEAN, default=True),
        *timestamps(),
    ],
)

LEAVE_REQUESTS = TableSpec(
    "leave_requests",
    [
        uuid_pk(),
        user_ref("user_id", nullable=False, ondelete="CASCADE"),
        user_ref("employee_id", ondelete="CASCADE"),
        ref("leave_type_id", "leave_types.id"),
        column("start_date", DATE, nullable=False),
        column("end_date", DATE, nullable=False),
        column("days_requested", RATE, nullable=False),
        column("reason", TEXT),
        column("status", TEXT, default="pending"),
        user_ref("approved_by"),
        column("approved_at", TIMESTAMPTZ),
        column("rejection_reason", TEXT),
        agency_column(),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_leave_requests_user_id", ("user_id",)),
        IndexSpec("idx_leave_requests_status", ("status",)),
        IndexSpec("idx_leave_requests_start_date", ("start_date",)),
        IndexSpec("idx_leave_requests_employee_id", ("employee_id",)),
        IndexSpec("idx_leave_requests_agency_id", ("agency_id",)),
    ],
    migrations=[ColumnMigrationRule("employee_id", CopyFrom("user_id"))],
    critical=True,
)

PAYROLL_PERIODS = TableSpec(
    "payroll_periods",
    [
        uuid_pk(),
        column("period_name", TEXT, nullable=False),
        column("start_date", DATE, nullable=False),
        column("end_date", DATE, nullable=False),
        column("pay_date", DATE, nullable=False),
        column("status", TEXT, default="draft"),
        created_by_column(),
        *timestamps(),
    ],
    indexes=[IndexSpec("idx_payroll_periods_status", ("status",))],
)

PAYROLL = TableSpec(
    "payroll",
    [
        uuid_pk(),
        ref("employee_id", "employee_details.id"),
        ref("payroll_period_id", "payroll_periods.id"),
        column("base_salary", MONEY, default=0),
        column("allowances", MONEY, default=0),
        column("deductions", MONEY, default=0),
        column("overtime_hours", numeric(10, 2), default=0),
        column("overtime_pay", MONEY, default=0),
        column("gross_salary", MONEY, default=0),
        column("tax_amount", MONEY, default=0),
        column("net_salary", MONEY, default=0),
        column("status", TEXT, default="draft"),
        column("paid_at", TIMESTAMPTZ),
        column("notes", TEXT),
        created_by_column(),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_payroll_employee_id", ("employee_id",)),
        IndexSpec("idx_payroll_period_id", ("payroll_period_id",)),
    ],
)

EMPLOYEE_SALARY_DETAILS = TableSpec(
    "employee_salary_details",
    [
        uuid_pk(),
        ref("employee_id", "employee_details.id", nullable=False, ondelete="CASCADE"),
        agency_column(),
        column("base_salary", MONEY, nullable=False),
        column("salary", MONEY),
        column("currency", TEXT, default="USD"),
        column("pay_frequency", TEXT, default="monthly"),
        column("salary_frequency", TEXT, default="monthly"),
        column("effective_date", DATE, nullable=False),
        column("end_date", DATE),
        column("allowances", JSONB),
        column("deductions", JSONB),
        column("bank_account_number", TEXT),
        column("bank_name", TEXT),
        column("bank_routing_number", TEXT),
        created_by_column(),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_employee_salary_details_employee_id", ("employee_id",)),
        IndexSpec("idx_employee_salary_details_agency_id", ("agency_id",)),
    ],
    triggers=[
        TriggerBinding("sync_employee_salary_trigger", "sync_employee_salary", events=_BEFORE_WRITE),
    ],
    migrations=[ColumnMigrationRule("salary", CopyFrom("base_salary"))],
)

EMPLOYEE_FILES = TableSpec(
    "employee_files",
    [
        uuid_pk(),
        ref("employee_id", "employee_details.id", nullable=False, ondelete="CASCADE"),
        column("file_name", TEXT, nullable=False),
        column("file_path", TEXT, nullable=False),
        column("file_type", TEXT),
        column("file_size", BIGINT),
        column("category", TEXT),
        column("description", TEXT),
        user_ref("uploaded_by"),
        *timestamps(),
    ],
    indexes=[IndexSpec("idx_employee_files_employee_id", ("employee_id",))],
)


class HrModule(SchemaModule):
    name = "hr"
    depends_on = ("auth",)
    tables = (
        EMPLOYEE_DETAILS,
        ATTENDANCE,
        LEAVE_TYPES,
        LEAVE_REQUESTS,
        PAYROLL_PERIODS,
        PAYROLL,
        EMPLOYEE_SALARY_DETAILS,
        EMPLOYEE_FILES,
    )
