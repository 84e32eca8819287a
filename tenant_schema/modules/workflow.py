"""
Workflow engine schema.

Manages:
- workflows: workflow definitions (audited)
- workflow_steps: ordered step definitions
- workflow_instances: running workflows bound to an entity
- workflow_approvals: per-approver decisions
- automation_rules: trigger/action rules (audited)
"""

from ..model import (
    IndexSpec,
    TableSpec,
    UniqueSpec,
    agency_column,
    column,
    created_by_column,
    ref,
    timestamps,
    user_ref,
    uuid_pk,
)
from ..model.columns import BOOLEAN, EMPTY_OBJECT, INTEGER, JSONB, NOW, TEXT, TIMESTAMPTZ, UUID, varchar
from .base import SchemaModule

WORKFLOWS = TableSpec(
    "workflows",
    [
        uuid_pk(),
        agency_column(nullable=False),
        column("name", varchar(255), nullable=False),
        column("description", TEXT),
        # approval, notification, automation or custom
        column("workflow_type", varchar(50), nullable=False),
        column("entity_type", varchar(100), nullable=False),
        column("trigger_event", varchar(100)),
        column("is_active", BOOLEAN, default=True),
        # system workflows cannot be deleted
        column("is_system", BOOLEAN, default=False),
        column("version", INTEGER, default=1),
        column("configuration", JSONB, default=EMPTY_OBJECT),
        created_by_column(),
        *timestamps(),
    ],
    unique=[UniqueSpec(("agency_id", "name", "version"))],
    indexes=[
        IndexSpec("idx_workflows_agency_id", ("agency_id",)),
        IndexSpec("idx_workflows_workflow_type", ("workflow_type",)),
        IndexSpec("idx_workflows_entity_type", ("entity_type",)),
        IndexSpec("idx_workflows_is_active", ("is_active",)),
        IndexSpec("idx_workflows_trigger_event", ("trigger_event",)),
    ],
    audited=True,
)

WORKFLOW_STEPS = TableSpec(
    "workflow_steps",
    [
        uuid_pk(),
        ref("workflow_id", "workflows.id", nullable=False, ondelete="CASCADE"),
        column("step_number", INTEGER, nullable=False),
        column("step_name", varchar(255), nullable=False),
        # approval, notification, condition, action or delay
        column("step_type", varchar(50), nullable=False),
        column("approver_type", varchar(50)),
        user_ref("approver_id"),
        column("approver_role", varchar(50)),
        column("approver_department_id", UUID),
        column("condition_expression", TEXT),
        column("action_config", JSONB, default=EMPTY_OBJECT),
        column("timeout_hours", INTEGER),
        column("escalation_enabled", BOOLEAN, default=False),
        column("escalation_after_hours", INTEGER),
        user_ref("escalation_to"),
        column("is_required", BOOLEAN, default=True),
        column("is_parallel", BOOLEAN, default=False),
        # parallel steps share a sequence group
        column("sequence_group", INTEGER, default=0),
        column("notes", TEXT),
        *timestamps(),
    ],
    unique=[UniqueSpec(("workflow_id", "step_number"))],
    indexes=[
        IndexSpec("idx_workflow_steps_workflow_id", ("workflow_id",)),
        IndexSpec("idx_workflow_steps_step_number", ("step_number",)),
        IndexSpec("idx_workflow_steps_step_type", ("step_type",)),
        IndexSpec("idx_workflow_steps_approver_id", ("approver_id",)),
        IndexSpec("idx_workflow_steps_sequence_group", ("sequence_group",)),
    ],
)

WORKFLOW_INSTANCES = TableSpec(
    "workflow_instances",
    [
        uuid_pk(),
        agency_column(nullable=False),
        ref("workflow_id", "workflows.id", nullable=False, ondelete="CASCADE"),
        column("entity_type", varchar(100), nullable=False),
        column("entity_id", UUID, nullable=False),
        column("status", varchar(50), default="pending"),
        column("current_step_number", INTEGER, default=1),
        user_ref("started_by"),
        column("started_at", TIMESTAMPTZ, default=NOW),
        column("completed_at", TIMESTAMPTZ),
        user_ref("completed_by"),
        column("rejection_reason", TEXT),
        column("metadata", JSONB, default=EMPTY_OBJECT),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_workflow_instances_agency_id", ("agency_id",)),
        IndexSpec("idx_workflow_instances_workflow_id", ("workflow_id",)),
        IndexSpec("idx_workflow_instances_entity", ("entity_type", "entity_id")),
        IndexSpec("idx_workflow_instances_status", ("status",)),
        IndexSpec("idx_workflow_instances_started_by", ("started_by",)),
        IndexSpec("idx_workflow_instances_started_at", ("started_at",)),
    ],
)

WORKFLOW_APPROVALS = TableSpec(
    "workflow_approvals",
    [
        uuid_pk(),
        agency_column(nullable=False),
        ref("instance_id", "workflow_instances.id", nullable=False, ondelete="CASCADE"),
        ref("step_id", "workflow_steps.id", nullable=False),
        column("step_number", INTEGER, nullable=False),
        user_ref("approver_id", nullable=False),
        # pending, approved, rejected, skipped or delegated
        column("status", varchar(50), default="pending"),
        column("action_taken_at", TIMESTAMPTZ),
        column("comments", TEXT),
        user_ref("delegated_to"),
        column("is_timeout", BOOLEAN, default=False),
        column("timeout_at", TIMESTAMPTZ),
        *timestamps(),
    ],
    unique=[UniqueSpec(("instance_id", "step_id", "approver_id"))],
    indexes=[
        IndexSpec("idx_workflow_approvals_agency_id", ("agency_id",)),
        IndexSpec("idx_workflow_approvals_instance_id", ("instance_id",)),
        IndexSpec("idx_workflow_approvals_step_id", ("step_id",)),
        IndexSpec("idx_workflow_approvals_approver_id", ("approver_id",)),
        IndexSpec("idx_workflow_approvals_status", ("status",)),
        IndexSpec("idx_workflow_approvals_action_taken_at", ("action_taken_at",)),
    ],
)

AUTOMATION_RULES = TableSpec(
    "automation_rules",
    [
        uuid_pk(),
        agency_column(nullable=False),
        column("name", varchar(255), nullable=False),
        column("description", TEXT),
        column("rule_type", varchar(50), nullable=False),
        column("entity_type", varchar(100), nullable=False),
        column("trigger_event", varchar(100), nullable=False),
        column("trigger_condition", JSONB, default=EMPTY_OBJECT),
        column("action_type", varchar(50), nullable=False),
        column("action_config", JSONB, default=EMPTY_OBJECT),
        column("is_active", BOOLEAN, default=True),
        # higher runs first
        column("priority", INTEGER, default=0),
        column("execution_count", INTEGER, default=0),
        column("last_executed_at", TIMESTAMPTZ),
        created_by_column(),
        *timestamps(),
    ],
    unique=[UniqueSpec(("agency_id", "name"))],
    indexes=[
        IndexSpec("idx_automation_rules_agency_id", ("agency_id",)),
        IndexSpec("idx_automation_rules_rule_type", ("rule_type",)),
        IndexSpec("idx_automation_rules_entity_type", ("entity_type",)),
        IndexSpec("idx_automation_rules_trigger_event", ("trigger_event",)),
        IndexSpec("idx_automation_rules_is_active", ("is_active",)),
        IndexSpec("idx_automation_rules_priority", ("priority",)),
    ],
    audited=True,
)


class WorkflowModule(SchemaModule):
    name = "workflow"
    depends_on = ("auth",)
    tables = (
        WORKFLOWS,
        WORKFLOW_STEPS,
        WORKFLOW_INSTANCES,
        WORKFLOW_APPROVALS,
        AUTOMATION_RULES,
    )
