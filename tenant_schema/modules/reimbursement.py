"""
Expense and reimbursement schema.

Manages:
- expense_categories: per-agency expense categories
- reimbursement_requests: claims raised by employees
- reimbursement_attachments: uploaded receipt files
- receipts: itemised receipts
"""

from ..model import (
    ColumnMigrationRule,
    CopyFrom,
    IndexSpec,
    TableSpec,
    UniqueSpec,
    agency_column,
    column,
    created_at,
    ref,
    timestamps,
    user_ref,
    uuid_pk,
)
from ..model.columns import BIGINT, BOOLEAN, DATE, MONEY, NOW, TEXT, TIMESTAMPTZ
from .base import SchemaModule

EXPENSE_CATEGORIES = TableSpec(
    "expense_categories",
    [
        uuid_pk(),
        agency_column(),
        column("name", TEXT, nullable=False),
        column("description", TEXT),
        column("is_active", BOOLEAN, default=True),
        *timestamps(),
    ],
    unique=[UniqueSpec(("agency_id", "name"))],
    indexes=[IndexSpec("idx_expense_categories_agency_id", ("agency_id",))],
)

REIMBURSEMENT_REQUESTS = TableSpec(
    "reimbursement_requests",
    [
        uuid_pk(),
        column("request_number", TEXT, unique=True),
        agency_column(),
        user_ref("user_id", nullable=False, ondelete="CASCADE"),
        user_ref("employee_id"),
        ref("category_id", "expense_categories.id"),
        column("amount", MONEY, nullable=False),
        column("currency", TEXT, default="USD"),
        column("description", TEXT, nullable=False),
        column("status", TEXT, default="pending"),
        column("submitted_at", TIMESTAMPTZ, default=NOW),
        user_ref("approved_by"),
        column("approved_at", TIMESTAMPTZ),
        user_ref("rejected_by"),
        column("rejected_at", TIMESTAMPTZ),
        column("rejection_reason", TEXT),
        column("paid_at", TIMESTAMPTZ),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_reimbursement_requests_user_id", ("user_id",)),
        IndexSpec("idx_reimbursement_requests_status", ("status",)),
        IndexSpec("idx_reimbursement_requests_agency_id", ("agency_id",)),
        IndexSpec("idx_reimbursement_requests_employee_id", ("employee_id",)),
    ],
    migrations=[ColumnMigrationRule("employee_id", CopyFrom("user_id"))],
    critical=True,
)

REIMBURSEMENT_ATTACHMENTS = TableSpec(
    "reimbursement_attachments",
    [
        uuid_pk(),
        ref(
            "reimbursement_request_id",
            "reimbursement_requests.id",
            nullable=False,
            ondelete="CASCADE",
        ),
        column("file_name", TEXT, nullable=False),
        column("file_path", TEXT, nullable=False),
        column("file_type", TEXT),
        column("file_size", BIGINT),
        user_ref("uploaded_by"),
        created_at(),
    ],
    indexes=[
        IndexSpec("idx_reimbursement_attachments_request_id", ("reimbursement_request_id",)),
    ],
)

RECEIPTS = TableSpec(
    "receipts",
    [
        uuid_pk(),
        column("receipt_number", TEXT, unique=True),
        ref("reimbursement_request_id", "reimbursement_requests.id"),
        ref("category_id", "expense_categories.id"),
        column("amount", MONEY, nullable=False),
        column("receipt_date", DATE, nullable=False),
        column("merchant_name", TEXT),
        column("description", TEXT),
        column("file_path", TEXT),
        column("file_name", TEXT),
        user_ref("uploaded_by"),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_receipts_reimbursement_request_id", ("reimbursement_request_id",)),
    ],
)


class ReimbursementModule(SchemaModule):
    name = "reimbursement"
    depends_on = ("auth",)
    tables = (
        EXPENSE_CATEGORIES,
        REIMBURSEMENT_REQUESTS,
        REIMBURSEMENT_ATTACHMENTS,
        RECEIPTS,
    )
