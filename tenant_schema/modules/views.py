"""Cross-module views, created after every table they read exists."""

from ..model import ViewSpec
from .base import SchemaModule

# One row per user; agency_id prefers the profile over the employee record.
UNIFIED_EMPLOYEES = ViewSpec(
    "unified_employees",
    """
SELECT
  COALESCE(ed.id, p.id, u.id) AS id,
  u.id AS user_id,
  ed.id AS employee_detail_id,
  p.id AS profile_id,
  COALESCE(p.agency_id, ed.agency_id) AS agency_id,
  COALESCE(ed.first_name || ' ' || ed.last_name, p.full_name, u.email) AS display_name,
  ed.first_name,
  ed.last_name,
  p.full_name,
  u.email,
  ed.employee_id,
  p.phone,
  p.department,
  p.position,
  ed.employment_type,
  ed.work_location,
  ed.supervisor_id,
  COALESCE(ed.is_active, p.is_active, u.is_active, true) AS is_active,
  (u.is_active = true
    AND (p.id IS NULL OR p.is_active = true)
    AND (ed.id IS NULL OR ed.is_active = true)) AS is_fully_active,
  ed.date_of_birth,
  p.hire_date,
  p.hire_date AS profile_hire_date,
  u.created_at,
  ed.created_at AS employee_detail_created_at,
  p.created_at AS profile_created_at,
  ur.role
FROM {schema}.users u
LEFT JOIN {schema}.profiles p ON p.user_id = u.id
LEFT JOIN {schema}.employee_details ed ON ed.user_id = u.id
LEFT JOIN LATERAL (
  SELECT role FROM {schema}.user_roles
  WHERE user_id = u.id
  ORDER BY assigned_at DESC
  LIMIT 1
) ur ON true
""",
    requires=("users", "profiles", "employee_details", "user_roles"),
)


class ViewsModule(SchemaModule):
    name = "views"
    depends_on = ("auth", "hr")
    views = (UNIFIED_EMPLOYEES,)
