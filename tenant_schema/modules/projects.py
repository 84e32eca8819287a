"""
Projects and tasks.

Manages:
- projects, tasks: delivery tracking with budgets and timelines
- task_assignments, task_comments, task_time_tracking
- project_milestones, project_risks, project_issues, project_dependencies,
  project_resources: planning extensions in a separate module

Project and task tables became tenant scoped after release. Rows that
predate ``agency_id`` are assigned the sentinel agency before the column is
made NOT NULL.
"""

import uuid

from ..model import (
    CheckSpec,
    Coalesce,
    ColumnMigrationRule,
    Constant,
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
    CURRENT_DATE,
    DATE,
    EMPTY_LIST,
    EMPTY_OBJECT,
    INTEGER,
    JSONB,
    MONEY,
    NOW,
    SENTINEL_AGENCY_ID,
    TEXT,
    TIMESTAMPTZ,
    UUID,
    numeric,
    varchar,
)
from .base import SchemaModule

HOURS = numeric(10, 2)

# Rows created before tenant scoping belong to no agency
LEGACY_AGENCY = ColumnMigrationRule("agency_id", Constant(uuid.UUID(SENTINEL_AGENCY_ID)))


def _progress_check(table: str) -> CheckSpec:
    return CheckSpec(f"{table}_progress_check", "progress >= 0 AND progress <= 100")


PROJECTS = TableSpec(
    "projects",
    [
        uuid_pk(),
        column("name", TEXT, nullable=False),
        column("description", TEXT),
        column("project_code", TEXT),
        column("project_type", TEXT),
        column("status", TEXT, default="planning"),
        column("priority", TEXT, default="medium"),
        column("start_date", DATE),
        column("end_date", DATE),
        column("deadline", DATE),
        column("budget", MONEY),
        column("actual_cost", MONEY, default=0),
        column("allocated_budget", MONEY),
        column("cost_center", TEXT),
        column("currency", TEXT, default="USD"),
        ref("client_id", "clients.id", ondelete="SET NULL"),
        user_ref("project_manager_id", ondelete="SET NULL"),
        user_ref("account_manager_id", ondelete="SET NULL"),
        column("assigned_team", JSONB, default=EMPTY_LIST),
        column("departments", JSONB, default=EMPTY_LIST),
        column("tags", JSONB, default=EMPTY_LIST),
        column("categories", JSONB, default=EMPTY_LIST),
        column("custom_fields", JSONB, default=EMPTY_OBJECT),
        column("progress", INTEGER, default=0),
        agency_column(nullable=False),
        created_by_column(),
        *timestamps(),
    ],
    checks=[
        _progress_check("projects"),
        CheckSpec(
            "projects_status_check",
            "status IN ('planning', 'active', 'in_progress', 'on_hold', 'completed', 'cancelled')",
        ),
        CheckSpec("projects_priority_check", "priority IN ('low', 'medium', 'high', 'critical')"),
    ],
    indexes=[
        IndexSpec("idx_projects_agency_id", ("agency_id",)),
        IndexSpec("idx_projects_client_id", ("client_id",)),
        IndexSpec("idx_projects_status", ("status",)),
        IndexSpec("idx_projects_project_manager_id", ("project_manager_id",)),
        IndexSpec("idx_projects_created_at", ("created_at DESC",)),
        IndexSpec("idx_projects_project_code", ("project_code",), where="project_code IS NOT NULL"),
    ],
    migrations=[LEGACY_AGENCY],
    critical=True,
)

TASKS = TableSpec(
    "tasks",
    [
        uuid_pk(),
        ref("project_id", "projects.id", ondelete="CASCADE"),
        column("title", TEXT, nullable=False),
        column("description", TEXT),
        column("task_type", TEXT),
        column("status", TEXT, default="todo"),
        column("priority", TEXT, default="medium"),
        column("due_date", DATE),
        column("start_date", DATE),
        column("estimated_hours", HOURS),
        column("actual_hours", HOURS, default=0),
        column("progress", INTEGER, default=0),
        user_ref("assignee_id", ondelete="SET NULL"),
        created_by_column(),
        column("completed_at", TIMESTAMPTZ),
        column("tags", JSONB, default=EMPTY_LIST),
        column("attachments", JSONB, default=EMPTY_LIST),
        column("checklist", JSONB, default=EMPTY_LIST),
        column("dependencies", JSONB, default=EMPTY_LIST),
        column("custom_fields", JSONB, default=EMPTY_OBJECT),
        agency_column(nullable=False),
        *timestamps(),
    ],
    checks=[
        _progress_check("tasks"),
        CheckSpec(
            "tasks_status_check",
            "status IN ('todo', 'in_progress', 'in_review', 'blocked', 'completed', 'cancelled')",
        ),
        CheckSpec(
            "tasks_priority_check",
            "priority IN ('low', 'medium', 'high', 'critical', 'urgent')",
        ),
    ],
    indexes=[
        IndexSpec("idx_tasks_agency_id", ("agency_id",)),
        IndexSpec("idx_tasks_project_id", ("project_id",)),
        IndexSpec("idx_tasks_assignee_id", ("assignee_id",)),
        IndexSpec("idx_tasks_status", ("status",)),
        IndexSpec("idx_tasks_priority", ("priority",)),
        IndexSpec("idx_tasks_due_date", ("due_date",)),
        IndexSpec("idx_tasks_created_at", ("created_at DESC",)),
    ],
    migrations=[LEGACY_AGENCY],
    critical=True,
)

TASK_ASSIGNMENTS = TableSpec(
    "task_assignments",
    [
        uuid_pk(),
        ref("task_id", "tasks.id", nullable=False, ondelete="CASCADE"),
        user_ref("user_id", nullable=False, ondelete="CASCADE"),
        column("assigned_at", TIMESTAMPTZ, default=NOW),
        user_ref("assigned_by"),
        agency_column(nullable=False),
        *timestamps(),
    ],
    unique=[UniqueSpec(("task_id", "user_id"))],
    indexes=[
        IndexSpec("idx_task_assignments_agency_id", ("agency_id",)),
        IndexSpec("idx_task_assignments_task_id", ("task_id",)),
        IndexSpec("idx_task_assignments_user_id", ("user_id",)),
    ],
    migrations=[LEGACY_AGENCY],
)

TASK_COMMENTS = TableSpec(
    "task_comments",
    [
        uuid_pk(),
        ref("task_id", "tasks.id", nullable=False, ondelete="CASCADE"),
        user_ref("user_id", nullable=False, ondelete="CASCADE"),
        column("comment", TEXT, nullable=False),
        ref("parent_comment_id", "task_comments.id", ondelete="CASCADE"),
        column("attachments", JSONB, default=EMPTY_LIST),
        column("mentions", JSONB, default=EMPTY_LIST),
        agency_column(nullable=False),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_task_comments_agency_id", ("agency_id",)),
        IndexSpec("idx_task_comments_task_id", ("task_id",)),
        IndexSpec("idx_task_comments_user_id", ("user_id",)),
        IndexSpec("idx_task_comments_parent_id", ("parent_comment_id",)),
    ],
    migrations=[LEGACY_AGENCY],
)

TASK_TIME_TRACKING = TableSpec(
    "task_time_tracking",
    [
        uuid_pk(),
        ref("task_id", "tasks.id", nullable=False, ondelete="CASCADE"),
        user_ref("user_id", nullable=False, ondelete="CASCADE"),
        column("date", DATE, nullable=False, default=CURRENT_DATE),
        column("hours_logged", HOURS, nullable=False, default=0),
        column("start_time", TIMESTAMPTZ, default=NOW),
        column("end_time", TIMESTAMPTZ),
        column("duration_minutes", INTEGER),
        column("description", TEXT),
        column("billable", BOOLEAN, default=True),
        column("hourly_rate", HOURS),
        agency_column(nullable=False),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_task_time_tracking_agency_id", ("agency_id",)),
        IndexSpec("idx_task_time_tracking_task_id", ("task_id",)),
        IndexSpec("idx_task_time_tracking_user_id", ("user_id",)),
        IndexSpec("idx_task_time_tracking_date", ("date",)),
    ],
    migrations=[
        LEGACY_AGENCY,
        ColumnMigrationRule("start_time", Coalesce(("created_at",), fallback="NOW()")),
    ],
)


class ProjectsTasksModule(SchemaModule):
    name = "projects_tasks"
    depends_on = ("auth", "clients_financial")
    tables = (PROJECTS, TASKS, TASK_ASSIGNMENTS, TASK_COMMENTS, TASK_TIME_TRACKING)


# Planning extensions

RISK_SCORE = """
CASE
  WHEN probability = 'low' AND impact = 'low' THEN 1
  WHEN probability = 'low' AND impact = 'medium' THEN 2
  WHEN probability = 'low' AND impact = 'high' THEN 3
  WHEN probability = 'medium' AND impact = 'low' THEN 2
  WHEN probability = 'medium' AND impact = 'medium' THEN 4
  WHEN probability = 'medium' AND impact = 'high' THEN 6
  WHEN probability = 'high' AND impact = 'low' THEN 3
  WHEN probability = 'high' AND impact = 'medium' THEN 6
  WHEN probability = 'high' AND impact = 'high' THEN 9
  ELSE 0
END
""".strip()


def _project_ref():
    return ref("project_id", "projects.id", nullable=False, ondelete="CASCADE")


PROJECT_MILESTONES = TableSpec(
    "project_milestones",
    [
        uuid_pk(),
        _project_ref(),
        agency_column(nullable=False),
        column("name", varchar(255), nullable=False),
        column("description", TEXT),
        column("target_date", DATE, nullable=False),
        column("status", varchar(50), default="pending"),
        column("completion_date", DATE),
        column("is_critical", BOOLEAN, default=False),
        created_by_column(),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_project_milestones_project_id", ("project_id",)),
        IndexSpec("idx_project_milestones_agency_id", ("agency_id",)),
        IndexSpec("idx_project_milestones_target_date", ("target_date",)),
    ],
)

PROJECT_RISKS = TableSpec(
    "project_risks",
    [
        uuid_pk(),
        _project_ref(),
        agency_column(nullable=False),
        column("risk_title", varchar(255), nullable=False),
        column("description", TEXT),
        column("category", varchar(100)),
        column("probability", varchar(20), default="medium"),
        column("impact", varchar(20), default="medium"),
        column("risk_score", INTEGER, computed=RISK_SCORE),
        column("status", varchar(50), default="open"),
        column("mitigation_plan", TEXT),
        user_ref("owner_id"),
        column("identified_date", DATE, default=CURRENT_DATE),
        column("resolved_date", DATE),
        created_by_column(),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_project_risks_project_id", ("project_id",)),
        IndexSpec("idx_project_risks_agency_id", ("agency_id",)),
        IndexSpec("idx_project_risks_status", ("status",)),
        IndexSpec("idx_project_risks_risk_score", ("risk_score",)),
    ],
)

PROJECT_ISSUES = TableSpec(
    "project_issues",
    [
        uuid_pk(),
        _project_ref(),
        agency_column(nullable=False),
        column("issue_title", varchar(255), nullable=False),
        column("description", TEXT),
        column("priority", varchar(20), default="medium"),
        column("status", varchar(50), default="open"),
        column("issue_type", varchar(50)),
        user_ref("assigned_to"),
        user_ref("reported_by"),
        column("due_date", DATE),
        column("resolved_date", DATE),
        column("resolution_notes", TEXT),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_project_issues_project_id", ("project_id",)),
        IndexSpec("idx_project_issues_agency_id", ("agency_id",)),
        IndexSpec("idx_project_issues_status", ("status",)),
        IndexSpec("idx_project_issues_priority", ("priority",)),
        IndexSpec("idx_project_issues_assigned_to", ("assigned_to",)),
    ],
)

PROJECT_DEPENDENCIES = TableSpec(
    "project_dependencies",
    [
        uuid_pk(),
        _project_ref(),
        agency_column(nullable=False),
        ref("predecessor_task_id", "tasks.id", nullable=False, ondelete="CASCADE"),
        ref("successor_task_id", "tasks.id", nullable=False, ondelete="CASCADE"),
        column("dependency_type", varchar(50), default="finish_to_start"),
        column("lag_days", INTEGER, default=0),
        created_at(),
    ],
    indexes=[
        IndexSpec("idx_project_dependencies_project_id", ("project_id",)),
        IndexSpec("idx_project_dependencies_predecessor", ("predecessor_task_id",)),
        IndexSpec("idx_project_dependencies_successor", ("successor_task_id",)),
    ],
)

PROJECT_RESOURCES = TableSpec(
    "project_resources",
    [
        uuid_pk(),
        _project_ref(),
        agency_column(nullable=False),
        column("resource_type", varchar(50), nullable=False),
        column("resource_id", UUID),
        column("allocation_percentage", numeric(5, 2), default=100),
        column("start_date", DATE),
        column("end_date", DATE),
        column("hourly_rate", MONEY),
        column("estimated_hours", HOURS),
        column("actual_hours", HOURS, default=0),
        column("notes", TEXT),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_project_resources_project_id", ("project_id",)),
        IndexSpec("idx_project_resources_agency_id", ("agency_id",)),
        IndexSpec("idx_project_resources_resource_id", ("resource_id",)),
    ],
)


class ProjectEnhancementsModule(SchemaModule):
    name = "project_enhancements"
    depends_on = ("projects_tasks",)
    tables = (
        PROJECT_MILESTONES,
        PROJECT_RISKS,
        PROJECT_ISSUES,
        PROJECT_DEPENDENCIES,
        PROJECT_RESOURCES,
    )
