"""
Miscellaneous schema.

Manages:
- notifications
- holidays, company_events, calendar_settings: the company calendar
- reports, custom_reports
- role_change_requests, feature_flags, module_settings
- file_storage
- document_folders, documents, document_versions, document_permissions

``holidays.date`` mirrors ``holiday_date`` for the calendar UI; a trigger
keeps the two in step and older rows are copied across.
"""

from typing import List

from ..engine.invariants import ColumnPresenceCheck, InvariantCheck
from ..model import (
    CheckSpec,
    ColumnMigrationRule,
    Constant,
    CopyFrom,
    Expression,
    IndexSpec,
    RenameRule,
    TableSpec,
    TriggerBinding,
    UniqueSpec,
    agency_column,
    column,
    created_at,
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
    EMPTY_OBJECT,
    EMPTY_TEXT_ARRAY,
    INTEGER,
    JSONB,
    NOW,
    TEXT,
    TEXT_ARRAY,
    TIMESTAMPTZ,
    varchar,
)
from .base import SchemaModule

NOTIFICATIONS = TableSpec(
    "notifications",
    [
        uuid_pk(),
        user_ref("user_id", nullable=False, ondelete="CASCADE"),
        column("type", TEXT, nullable=False, default="in_app"),
        column("category", TEXT, nullable=False, default="system"),
        column("title", TEXT, nullable=False),
        column("message", TEXT, nullable=False),
        column("metadata", JSONB),
        column("priority", TEXT, nullable=False, default="normal"),
        column("action_url", TEXT),
        column("read_at", TIMESTAMPTZ),
        column("sent_at", TIMESTAMPTZ),
        column("expires_at", TIMESTAMPTZ),
        # Tenant databases hold a single agency, so this stays nullable here
        agency_column(),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_notifications_user_id", ("user_id",)),
        IndexSpec("idx_notifications_agency_id", ("agency_id",)),
        IndexSpec("idx_notifications_read_at", ("read_at",)),
        IndexSpec("idx_notifications_created_at", ("created_at",)),
    ],
)

HOLIDAYS = TableSpec(
    "holidays",
    [
        uuid_pk(),
        column("name", TEXT, nullable=False),
        column("holiday_date", DATE, nullable=False),
        column("date", DATE),
        column("holiday_type", TEXT, default="public"),
        column("is_recurring", BOOLEAN, default=False),
        column("description", TEXT),
        column("is_company_holiday", BOOLEAN, default=False),
        column("is_national_holiday", BOOLEAN, default=False),
        agency_column(),
        *timestamps(),
    ],
    unique=[UniqueSpec(("holiday_date", "name", "agency_id"))],
    indexes=[
        IndexSpec("idx_holidays_date", ("date",)),
        IndexSpec("idx_holidays_holiday_date", ("holiday_date",)),
        IndexSpec("idx_holidays_agency_id", ("agency_id",)),
    ],
    triggers=[
        TriggerBinding(
            "sync_holidays_date_trigger",
            "sync_holidays_date",
            events=("INSERT", "UPDATE"),
        ),
    ],
    migrations=[
        ColumnMigrationRule("date", CopyFrom("holiday_date")),
        ColumnMigrationRule(
            "is_company_holiday",
            Expression("COALESCE(holiday_type = 'company', false)", depends_on=("holiday_type",)),
        ),
        ColumnMigrationRule(
            "is_national_holiday",
            Expression(
                "COALESCE(holiday_type IN ('public', 'national'), false)",
                depends_on=("holiday_type",),
            ),
        ),
    ],
    critical=True,
)

COMPANY_EVENTS = TableSpec(
    "company_events",
    [
        uuid_pk(),
        column("title", TEXT, nullable=False),
        column("description", TEXT),
        column("event_type", TEXT),
        column("start_date", TIMESTAMPTZ, nullable=False),
        column("end_date", TIMESTAMPTZ),
        column("location", TEXT),
        column("is_all_day", BOOLEAN, default=False),
        column("color", TEXT, default="#3b82f6"),
        created_by_column(),
        agency_column(),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_company_events_agency_id", ("agency_id",)),
        IndexSpec("idx_company_events_start_date", ("start_date",)),
    ],
    renames=[RenameRule("all_day", "is_all_day")],
    critical=True,
)

CALENDAR_SETTINGS = TableSpec(
    "calendar_settings",
    [
        uuid_pk(),
        column("setting_key", TEXT, nullable=False, unique=True),
        column("setting_value", JSONB),
        *timestamps(),
    ],
)

REPORTS = TableSpec(
    "reports",
    [
        uuid_pk(),
        column("name", TEXT, nullable=False),
        column("report_type", TEXT, nullable=False, default="custom"),
        column("description", TEXT),
        column("parameters", JSONB),
        column("file_path", TEXT),
        column("file_name", TEXT),
        column("file_size", BIGINT),
        user_ref("generated_by"),
        column("expires_at", TIMESTAMPTZ),
        column("is_public", BOOLEAN, default=False),
        agency_column(),
        column("generated_at", TIMESTAMPTZ, default=NOW),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_reports_agency_id", ("agency_id",)),
        IndexSpec("idx_reports_type", ("report_type",), alternatives=(("type",),)),
        IndexSpec("idx_reports_generated_at", ("generated_at",)),
    ],
    renames=[RenameRule("type", "report_type")],
    migrations=[ColumnMigrationRule("report_type", Constant("custom"), not_null=True)],
)

CUSTOM_REPORTS = TableSpec(
    "custom_reports",
    [
        uuid_pk(),
        column("name", TEXT, nullable=False),
        column("description", TEXT),
        column("report_type", TEXT, nullable=False),
        column("query_config", JSONB),
        created_by_column(),
        agency_column(),
        # user_id is what the report builder writes
        user_ref("user_id"),
        column("data_sources", TEXT_ARRAY, default=EMPTY_TEXT_ARRAY),
        column("is_public", BOOLEAN, default=False),
        column("is_scheduled", BOOLEAN, default=False),
        column("filters", JSONB),
        column("aggregations", JSONB),
        column("group_by", TEXT_ARRAY, default=EMPTY_TEXT_ARRAY),
        column("visualizations", JSONB),
        column("schedule_config", JSONB),
        column("is_template", BOOLEAN, default=False),
        column("category", varchar(100)),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_custom_reports_agency_id", ("agency_id",)),
        IndexSpec("idx_custom_reports_user_id", ("user_id",)),
    ],
)

ROLE_CHANGE_REQUESTS = TableSpec(
    "role_change_requests",
    [
        uuid_pk(),
        user_ref("user_id", nullable=False, ondelete="CASCADE"),
        column("requested_role", TEXT, nullable=False),
        column("previous_role", TEXT),
        column("reason", TEXT),
        column("status", TEXT, default="pending"),
        user_ref("requested_by"),
        user_ref("reviewed_by"),
        column("reviewed_at", TIMESTAMPTZ),
        *timestamps(),
    ],
)

FEATURE_FLAGS = TableSpec(
    "feature_flags",
    [
        uuid_pk(),
        column("feature_key", TEXT, nullable=False, unique=True),
        column("feature_name", TEXT, nullable=False),
        column("description", TEXT),
        column("is_enabled", BOOLEAN, default=False),
        column("settings", JSONB),
        *timestamps(),
    ],
)

FILE_STORAGE = TableSpec(
    "file_storage",
    [
        uuid_pk(),
        column("bucket_name", TEXT, nullable=False),
        column("file_path", TEXT, nullable=False),
        column("file_name", TEXT),
        column("file_size", BIGINT),
        column("mime_type", TEXT),
        user_ref("uploaded_by"),
        created_at(),
    ],
    critical=True,
)

MODULE_SETTINGS = TableSpec(
    "module_settings",
    [
        uuid_pk(),
        agency_column(nullable=False),
        # inventory, procurement, assets, workflow or integration
        column("module", varchar(100), nullable=False),
        column("settings", JSONB, default=EMPTY_OBJECT),
        created_by_column(),
        *timestamps(),
    ],
    unique=[UniqueSpec(("agency_id", "module"))],
    indexes=[
        IndexSpec("idx_module_settings_agency_id", ("agency_id",)),
        IndexSpec("idx_module_settings_module", ("module",)),
    ],
)

DOCUMENT_FOLDERS = TableSpec(
    "document_folders",
    [
        uuid_pk(),
        column("name", TEXT, nullable=False),
        column("description", TEXT),
        ref("parent_folder_id", "document_folders.id", ondelete="CASCADE"),
        user_ref("created_by", nullable=False, ondelete="CASCADE"),
        agency_column(nullable=False),
        *timestamps(nullable=False),
    ],
    indexes=[
        IndexSpec("idx_document_folders_agency_id", ("agency_id",)),
        IndexSpec("idx_document_folders_parent_folder_id", ("parent_folder_id",)),
        IndexSpec("idx_document_folders_created_by", ("created_by",)),
        IndexSpec("idx_document_folders_name", ("name",)),
    ],
    critical=True,
)

DOCUMENTS = TableSpec(
    "documents",
    [
        uuid_pk(),
        column("name", TEXT, nullable=False),
        column("description", TEXT),
        column("file_path", TEXT, nullable=False),
        column("file_size", BIGINT, nullable=False, default=0),
        column("file_type", TEXT, nullable=False),
        user_ref("uploaded_by", nullable=False, ondelete="CASCADE"),
        ref("folder_id", "document_folders.id", ondelete="SET NULL"),
        agency_column(nullable=False),
        column("tags", TEXT_ARRAY, default=EMPTY_TEXT_ARRAY),
        column("is_public", BOOLEAN, nullable=False, default=False),
        column("download_count", INTEGER, nullable=False, default=0),
        *timestamps(nullable=False),
    ],
    indexes=[
        IndexSpec("idx_documents_agency_id", ("agency_id",)),
        IndexSpec("idx_documents_folder_id", ("folder_id",)),
        IndexSpec("idx_documents_uploaded_by", ("uploaded_by",)),
        IndexSpec("idx_documents_name", ("name",)),
        IndexSpec("idx_documents_tags", ("tags",), using="gin"),
        IndexSpec("idx_documents_created_at", ("created_at",)),
        IndexSpec("idx_documents_is_public", ("is_public",)),
    ],
    critical=True,
)

DOCUMENT_VERSIONS = TableSpec(
    "document_versions",
    [
        uuid_pk(),
        ref("document_id", "documents.id", nullable=False, ondelete="CASCADE"),
        column("version_number", INTEGER, nullable=False),
        column("file_path", TEXT, nullable=False),
        user_ref("uploaded_by", nullable=False, ondelete="CASCADE"),
        column("upload_date", TIMESTAMPTZ, nullable=False, default=NOW),
        column("change_summary", TEXT),
        column("is_current", BOOLEAN, nullable=False, default=False),
        created_at(nullable=False),
    ],
    indexes=[
        IndexSpec("idx_document_versions_document_id", ("document_id",)),
        IndexSpec("idx_document_versions_uploaded_by", ("uploaded_by",)),
        IndexSpec("idx_document_versions_is_current", ("is_current",)),
        IndexSpec(
            "idx_document_versions_unique",
            ("document_id", "version_number"),
            unique=True,
        ),
        # At most one current version per document
        IndexSpec(
            "idx_document_versions_one_current",
            ("document_id",),
            unique=True,
            where="is_current = true",
        ),
    ],
    critical=True,
)

DOCUMENT_PERMISSIONS = TableSpec(
    "document_permissions",
    [
        uuid_pk(),
        ref("document_id", "documents.id", nullable=False, ondelete="CASCADE"),
        user_ref("user_id", nullable=False, ondelete="CASCADE"),
        column("role", TEXT),
        column("permission_type", TEXT, nullable=False),
        user_ref("granted_by", nullable=False, ondelete="CASCADE"),
        created_at(nullable=False),
    ],
    unique=[UniqueSpec(("document_id", "user_id"))],
    checks=[
        CheckSpec(
            "document_permissions_permission_type_check",
            "permission_type IN ('read', 'write', 'admin')",
        ),
    ],
    indexes=[
        IndexSpec("idx_document_permissions_document_id", ("document_id",)),
        IndexSpec("idx_document_permissions_user_id", ("user_id",)),
        IndexSpec("idx_document_permissions_permission_type", ("permission_type",)),
    ],
    critical=True,
)


class MiscModule(SchemaModule):
    name = "misc"
    depends_on = ("auth",)
    tables = (
        NOTIFICATIONS,
        HOLIDAYS,
        COMPANY_EVENTS,
        CALENDAR_SETTINGS,
        REPORTS,
        CUSTOM_REPORTS,
        ROLE_CHANGE_REQUESTS,
        FEATURE_FLAGS,
        FILE_STORAGE,
        MODULE_SETTINGS,
        DOCUMENT_FOLDERS,
        DOCUMENTS,
        DOCUMENT_VERSIONS,
        DOCUMENT_PERMISSIONS,
    )

    def invariants(self) -> List[InvariantCheck]:
        return [ColumnPresenceCheck(HOLIDAYS, ("date",))]
