"""
Scheduled reporting.

Report definitions live in ``custom_reports`` (misc module); this module adds
delivery schedules and the execution log.
"""

from ..model import (
    IndexSpec,
    TableSpec,
    agency_column,
    column,
    created_at,
    created_by_column,
    ref,
    timestamps,
    uuid_pk,
)
from ..model.columns import (
    BIGINT,
    BOOLEAN,
    INTEGER,
    JSONB,
    TEXT,
    TEXT_ARRAY,
    TIME,
    TIMESTAMPTZ,
    varchar,
)
from .base import SchemaModule

REPORT_SCHEDULES = TableSpec(
    "report_schedules",
    [
        uuid_pk(),
        agency_column(nullable=False),
        ref("report_template_id", "custom_reports.id"),
        column("schedule_name", varchar(255), nullable=False),
        # daily, weekly, monthly, quarterly, yearly or custom
        column("schedule_type", varchar(50), nullable=False),
        column("cron_expression", varchar(100)),
        # 0 is Sunday
        column("day_of_week", INTEGER),
        column("day_of_month", INTEGER),
        column("time", TIME, default="09:00:00"),
        column("recipients", TEXT_ARRAY),
        column("format", varchar(20), default="pdf"),
        column("filters", JSONB),
        column("is_active", BOOLEAN, default=True),
        column("last_run_at", TIMESTAMPTZ),
        column("next_run_at", TIMESTAMPTZ),
        created_by_column(),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_report_schedules_agency_id", ("agency_id",)),
        IndexSpec("idx_report_schedules_is_active", ("is_active",)),
        IndexSpec("idx_report_schedules_next_run_at", ("next_run_at",)),
    ],
)

REPORT_EXECUTIONS = TableSpec(
    "report_executions",
    [
        uuid_pk(),
        agency_column(nullable=False),
        ref("report_id", "custom_reports.id"),
        ref("schedule_id", "report_schedules.id"),
        column("execution_type", varchar(50), default="manual"),
        column("status", varchar(50), default="pending"),
        column("parameters", JSONB),
        column("result_data", JSONB),
        column("file_path", TEXT),
        column("file_size", BIGINT),
        column("error_message", TEXT),
        column("started_at", TIMESTAMPTZ),
        column("completed_at", TIMESTAMPTZ),
        created_at(),
    ],
    indexes=[
        IndexSpec("idx_report_executions_agency_id", ("agency_id",)),
        IndexSpec("idx_report_executions_report_id", ("report_id",)),
        IndexSpec("idx_report_executions_schedule_id", ("schedule_id",)),
        IndexSpec("idx_report_executions_status", ("status",)),
        IndexSpec("idx_report_executions_created_at", ("created_at",)),
    ],
)


class ReportingModule(SchemaModule):
    name = "reporting"
    depends_on = ("misc",)
    tables = (REPORT_SCHEDULES, REPORT_EXECUTIONS)
