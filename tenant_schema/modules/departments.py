"""
Departments and teams.

Manages:
- departments: organizational units with a parent hierarchy
- team_assignments: user/department membership
- department_hierarchy: explicit parent/child links
- team_members: team composition
"""

from ..model import IndexSpec, TableSpec, UniqueSpec, agency_column, column, created_at, ref, timestamps, user_ref, uuid_pk
from ..model.columns import BOOLEAN, DATE, MONEY, NOW, TEXT, TIMESTAMPTZ, UUID
from .base import SchemaModule

DEPARTMENTS = TableSpec(
    "departments",
    [
        uuid_pk(),
        column("name", TEXT, nullable=False),
        column("description", TEXT),
        ref("manager_id", "profiles.user_id", ondelete="SET NULL"),
        ref("parent_department_id", "departments.id", ondelete="SET NULL"),
        column("budget", MONEY, default=0),
        column("is_active", BOOLEAN, default=True),
        agency_column(),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_departments_manager_id", ("manager_id",)),
        IndexSpec("idx_departments_parent_department_id", ("parent_department_id",)),
        IndexSpec("idx_departments_agency_id", ("agency_id",)),
        IndexSpec("idx_departments_name", ("name",)),
    ],
)

TEAM_ASSIGNMENTS = TableSpec(
    "team_assignments",
    [
        uuid_pk(),
        user_ref("user_id", nullable=False, ondelete="CASCADE"),
        column("department_id", UUID),
        column("role", TEXT),
        column("position_title", TEXT),
        column("role_in_department", TEXT),
        column("start_date", DATE),
        column("is_active", BOOLEAN, default=True),
        agency_column(),
        column("assigned_at", TIMESTAMPTZ, default=NOW),
        user_ref("assigned_by"),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_team_assignments_user_id", ("user_id",)),
        IndexSpec("idx_team_assignments_department_id", ("department_id",)),
        IndexSpec("idx_team_assignments_is_active", ("is_active",)),
        IndexSpec("idx_team_assignments_agency_id", ("agency_id",)),
    ],
)

DEPARTMENT_HIERARCHY = TableSpec(
    "department_hierarchy",
    [
        uuid_pk(),
        ref("parent_department_id", "departments.id", ondelete="CASCADE"),
        ref("child_department_id", "departments.id", ondelete="CASCADE"),
        created_at(),
    ],
    unique=[UniqueSpec(("parent_department_id", "child_department_id"))],
)

TEAM_MEMBERS = TableSpec(
    "team_members",
    [
        uuid_pk(),
        column("team_id", UUID),
        user_ref("user_id", nullable=False, ondelete="CASCADE"),
        column("role", TEXT),
        column("joined_at", TIMESTAMPTZ, default=NOW),
        *timestamps(),
    ],
)


class DepartmentsModule(SchemaModule):
    name = "departments"
    depends_on = ("auth",)
    tables = (DEPARTMENTS, TEAM_ASSIGNMENTS, DEPARTMENT_HIERARCHY, TEAM_MEMBERS)
