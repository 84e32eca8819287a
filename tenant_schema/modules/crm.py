"""
CRM schema.

Manages:
- lead_sources, leads, crm_activities, sales_pipeline
- lead_scores, opportunities, email_tracking, customer_segments,
  client_segment_assignments: CRM extensions in a separate module

``leads.pipeline_stage`` replaced ``stage`` for the pipeline board; older
rows are copied across.
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
    created_by_column,
    ref,
    timestamps,
    user_ref,
    uuid_pk,
)
from ..model.columns import (
    BOOLEAN,
    DATE,
    INTEGER,
    JSONB,
    MONEY,
    NOW,
    TEXT,
    TEXT_ARRAY,
    TIMESTAMPTZ,
    UUID,
    varchar,
)
from .base import SchemaModule

LEAD_SOURCES = TableSpec(
    "lead_sources",
    [
        uuid_pk(),
        column("name", TEXT, nullable=False),
        column("description", TEXT),
        column("is_active", BOOLEAN, default=True),
        agency_column(),
        *timestamps(),
    ],
    unique=[UniqueSpec(("name", "agency_id"))],
    indexes=[
        IndexSpec("idx_lead_sources_agency_id", ("agency_id",)),
        IndexSpec("idx_lead_sources_is_active", ("is_active",)),
    ],
)

LEADS = TableSpec(
    "leads",
    [
        uuid_pk(),
        column("lead_number", TEXT),
        ref("lead_source_id", "lead_sources.id"),
        ref("source_id", "lead_sources.id"),
        column("name", TEXT),
        column("contact_name", TEXT),
        column("company_name", TEXT, nullable=False),
        column("email", TEXT),
        column("phone", TEXT),
        column("address", TEXT),
        column("website", TEXT),
        column("job_title", TEXT),
        column("industry", TEXT),
        column("location", TEXT),
        column("status", TEXT, default="new"),
        column("priority", TEXT, default="medium"),
        column("stage", TEXT),
        column("pipeline_stage", TEXT),
        column("value", MONEY),
        column("estimated_value", MONEY),
        column("probability", INTEGER, default=0),
        column("expected_close_date", DATE),
        column("due_date", DATE),
        column("follow_up_date", DATE),
        column("description", TEXT),
        column("notes", TEXT),
        column("tags", TEXT_ARRAY),
        column("custom_fields", JSONB),
        user_ref("assigned_to"),
        column("assigned_team", UUID),
        created_by_column(),
        agency_column(),
        ref("converted_to_client_id", "clients.id"),
        *timestamps(),
    ],
    unique=[UniqueSpec(("lead_number", "agency_id"))],
    indexes=[
        IndexSpec("idx_leads_agency_id", ("agency_id",)),
        IndexSpec("idx_leads_source_id", ("source_id",)),
        IndexSpec("idx_leads_lead_source_id", ("lead_source_id",)),
        IndexSpec("idx_leads_status", ("status",)),
        IndexSpec("idx_leads_priority", ("priority",)),
        IndexSpec("idx_leads_assigned_to", ("assigned_to",)),
        IndexSpec("idx_leads_due_date", ("due_date",)),
        IndexSpec("idx_leads_follow_up_date", ("follow_up_date",)),
        IndexSpec("idx_leads_expected_close_date", ("expected_close_date",)),
        IndexSpec("idx_leads_created_at", ("created_at",)),
        IndexSpec("idx_leads_converted_to_client_id", ("converted_to_client_id",)),
        IndexSpec("idx_leads_pipeline_stage", ("pipeline_stage",)),
    ],
    migrations=[ColumnMigrationRule("pipeline_stage", CopyFrom("stage"))],
)

CRM_ACTIVITIES = TableSpec(
    "crm_activities",
    [
        uuid_pk(),
        ref("lead_id", "leads.id", ondelete="CASCADE"),
        ref("client_id", "clients.id", ondelete="SET NULL"),
        column("activity_type", TEXT, nullable=False),
        column("subject", TEXT, nullable=False),
        column("description", TEXT),
        column("activity_date", TIMESTAMPTZ, nullable=False),
        column("due_date", TIMESTAMPTZ),
        column("completed_date", TIMESTAMPTZ),
        column("status", TEXT, default="pending"),
        column("duration", INTEGER),
        column("outcome", TEXT),
        column("location", TEXT),
        column("attendees", TEXT_ARRAY),
        column("agenda", TEXT),
        column("attachments", JSONB),
        user_ref("assigned_to"),
        created_by_column(),
        agency_column(),
        # Aliases kept for older API clients
        column("type", TEXT),
        column("title", TEXT),
        column("related_entity_type", TEXT),
        column("related_entity_id", UUID),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_crm_activities_agency_id", ("agency_id",)),
        IndexSpec("idx_crm_activities_lead_id", ("lead_id",)),
        IndexSpec("idx_crm_activities_client_id", ("client_id",)),
        IndexSpec("idx_crm_activities_status", ("status",)),
        IndexSpec("idx_crm_activities_activity_type", ("activity_type",)),
        IndexSpec("idx_crm_activities_due_date", ("due_date",)),
        IndexSpec("idx_crm_activities_activity_date", ("activity_date",)),
        IndexSpec("idx_crm_activities_assigned_to", ("assigned_to",)),
        IndexSpec("idx_crm_activities_created_at", ("created_at",)),
    ],
)

SALES_PIPELINE = TableSpec(
    "sales_pipeline",
    [
        uuid_pk(),
        column("stage_name", TEXT, nullable=False),
        column("stage_order", INTEGER, nullable=False),
        column("description", TEXT),
        column("probability", INTEGER, default=0),
        column("color", TEXT),
        column("is_active", BOOLEAN, default=True),
        agency_column(),
        *timestamps(),
    ],
    unique=[UniqueSpec(("stage_name", "agency_id"))],
    indexes=[
        IndexSpec("idx_sales_pipeline_agency_id", ("agency_id",)),
        IndexSpec("idx_sales_pipeline_stage_order", ("stage_order",)),
        IndexSpec("idx_sales_pipeline_is_active", ("is_active",)),
    ],
)


class CrmModule(SchemaModule):
    name = "crm"
    depends_on = ("auth", "clients_financial")
    tables = (LEAD_SOURCES, LEADS, CRM_ACTIVITIES, SALES_PIPELINE)


LEAD_SCORES = TableSpec(
    "lead_scores",
    [
        uuid_pk(),
        ref("lead_id", "leads.id", nullable=False, ondelete="CASCADE"),
        agency_column(nullable=False),
        column("score", INTEGER, default=0),
        column("score_breakdown", JSONB),
        column("last_calculated_at", TIMESTAMPTZ, default=NOW),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_lead_scores_lead_id", ("lead_id",)),
        IndexSpec("idx_lead_scores_agency_id", ("agency_id",)),
        IndexSpec("idx_lead_scores_score", ("score",)),
    ],
)

OPPORTUNITIES = TableSpec(
    "opportunities",
    [
        uuid_pk(),
        agency_column(nullable=False),
        ref("lead_id", "leads.id"),
        ref("client_id", "clients.id"),
        column("opportunity_name", varchar(255), nullable=False),
        column("description", TEXT),
        column("stage", varchar(50), default="prospecting"),
        column("probability", INTEGER, default=0),
        column("expected_value", MONEY),
        column("expected_close_date", DATE),
        column("actual_close_date", DATE),
        column("currency", varchar(10), default="INR"),
        column("source", varchar(100)),
        user_ref("owner_id"),
        created_by_column(),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_opportunities_agency_id", ("agency_id",)),
        IndexSpec("idx_opportunities_lead_id", ("lead_id",)),
        IndexSpec("idx_opportunities_client_id", ("client_id",)),
        IndexSpec("idx_opportunities_stage", ("stage",)),
        IndexSpec("idx_opportunities_owner_id", ("owner_id",)),
    ],
)

EMAIL_TRACKING = TableSpec(
    "email_tracking",
    [
        uuid_pk(),
        agency_column(nullable=False),
        column("related_type", varchar(50)),
        column("related_id", UUID),
        column("email_to", TEXT, nullable=False),
        column("email_from", TEXT, nullable=False),
        column("subject", TEXT),
        column("body", TEXT),
        column("status", varchar(50), default="sent"),
        column("sent_at", TIMESTAMPTZ, default=NOW),
        column("opened_at", TIMESTAMPTZ),
        column("clicked_at", TIMESTAMPTZ),
        column("open_count", INTEGER, default=0),
        column("click_count", INTEGER, default=0),
        column("tracking_id", varchar(100), unique=True),
        created_at(),
    ],
    indexes=[
        IndexSpec("idx_email_tracking_agency_id", ("agency_id",)),
        IndexSpec("idx_email_tracking_related", ("related_type", "related_id")),
        IndexSpec("idx_email_tracking_tracking_id", ("tracking_id",)),
        IndexSpec("idx_email_tracking_status", ("status",)),
    ],
)

CUSTOMER_SEGMENTS = TableSpec(
    "customer_segments",
    [
        uuid_pk(),
        agency_column(nullable=False),
        column("segment_name", varchar(255), nullable=False),
        column("description", TEXT),
        column("criteria", JSONB),
        column("client_count", INTEGER, default=0),
        created_by_column(),
        *timestamps(),
    ],
    indexes=[IndexSpec("idx_customer_segments_agency_id", ("agency_id",))],
)

CLIENT_SEGMENT_ASSIGNMENTS = TableSpec(
    "client_segment_assignments",
    [
        uuid_pk(),
        ref("client_id", "clients.id", nullable=False, ondelete="CASCADE"),
        ref("segment_id", "customer_segments.id", nullable=False, ondelete="CASCADE"),
        column("assigned_at", TIMESTAMPTZ, default=NOW),
    ],
    unique=[UniqueSpec(("client_id", "segment_id"))],
    indexes=[
        IndexSpec("idx_client_segment_assignments_client_id", ("client_id",)),
        IndexSpec("idx_client_segment_assignments_segment_id", ("segment_id",)),
    ],
)


class CrmEnhancementsModule(SchemaModule):
    name = "crm_enhancements"
    depends_on = ("crm",)
    tables = (
        LEAD_SCORES,
        OPPORTUNITIES,
        EMAIL_TRACKING,
        CUSTOMER_SEGMENTS,
        CLIENT_SEGMENT_ASSIGNMENTS,
    )
