"""
Shared capabilities: extensions, the role enum and shared procedures.

Procedure bodies are templates; ``{schema}`` is replaced at render time.
"""

from sqlalchemy.dialects import postgresql

from ..model.routines import Capabilities, EnumSpec, FunctionSpec

EXTENSIONS = ["uuid-ossp", "pgcrypto"]

# Append-only: existing databases gain new values, never lose old ones
APP_ROLE_VALUES = (
    "super_admin",
    "ceo",
    "cto",
    "cfo",
    "coo",
    "admin",
    "operations_manager",
    "department_head",
    "team_lead",
    "project_manager",
    "hr",
    "finance_manager",
    "sales_manager",
    "marketing_manager",
    "quality_assurance",
    "it_support",
    "legal_counsel",
    "business_analyst",
    "customer_success",
    "employee",
    "contractor",
    "intern",
)

APP_ROLE_ENUM = EnumSpec("app_role", APP_ROLE_VALUES)

# Column type for role columns; the type itself is created by the bootstrapper
APP_ROLE = postgresql.ENUM(*APP_ROLE_VALUES, name="app_role", create_type=False)

UPDATE_UPDATED_AT = FunctionSpec(
    "update_updated_at_column",
    """
CREATE OR REPLACE FUNCTION {schema}.update_updated_at_column()
RETURNS TRIGGER AS $$
BEGIN
  NEW.updated_at = NOW();
  RETURN NEW;
END;
$$ LANGUAGE plpgsql;
""",
)

CURRENT_USER_ID = FunctionSpec(
    "current_user_id",
    """
CREATE OR REPLACE FUNCTION {schema}.current_user_id()
RETURNS UUID AS $$
DECLARE
  user_id_text TEXT;
BEGIN
  BEGIN
    user_id_text := current_setting('app.current_user_id', true);
  EXCEPTION WHEN OTHERS THEN
    RETURN NULL;
  END;

  IF user_id_text IS NULL OR user_id_text = '' THEN
    RETURN NULL;
  END IF;

  BEGIN
    RETURN user_id_text::UUID;
  EXCEPTION WHEN OTHERS THEN
    RETURN NULL;
  END;
END;
$$ LANGUAGE plpgsql STABLE;
""",
)

# users has no user_id column, so its record id is always its own id
LOG_AUDIT_CHANGE = FunctionSpec(
    "log_audit_change",
    """
CREATE OR REPLACE FUNCTION {schema}.log_audit_change()
RETURNS TRIGGER AS $$
DECLARE
  v_user_id uuid;
  v_record_id uuid;
BEGIN
  v_user_id := {schema}.current_user_id();

  IF TG_OP = 'INSERT' THEN
    IF TG_TABLE_NAME = 'users' THEN
      v_record_id := NEW.id;
    ELSE
      v_record_id := COALESCE((to_jsonb(NEW)->>'user_id')::uuid, NEW.id);
    END IF;
    INSERT INTO {schema}.audit_logs(table_name, action, user_id, record_id, old_values, new_values, created_at)
    VALUES (TG_TABLE_NAME, lower(TG_OP), v_user_id, v_record_id, NULL, to_jsonb(NEW), now());
    RETURN NEW;
  ELSIF TG_OP = 'UPDATE' THEN
    IF TG_TABLE_NAME = 'users' THEN
      v_record_id := COALESCE(NEW.id, OLD.id);
    ELSE
      v_record_id := COALESCE(
        (to_jsonb(NEW)->>'user_id')::uuid,
        (to_jsonb(OLD)->>'user_id')::uuid,
        COALESCE(NEW.id, OLD.id)
      );
    END IF;
    INSERT INTO {schema}.audit_logs(table_name, action, user_id, record_id, old_values, new_values, created_at)
    VALUES (TG_TABLE_NAME, lower(TG_OP), v_user_id, v_record_id, to_jsonb(OLD), to_jsonb(NEW), now());
    RETURN NEW;
  ELSIF TG_OP = 'DELETE' THEN
    IF TG_TABLE_NAME = 'users' THEN
      v_record_id := OLD.id;
    ELSE
      v_record_id := COALESCE((to_jsonb(OLD)->>'user_id')::uuid, OLD.id);
    END IF;
    INSERT INTO {schema}.audit_logs(table_name, action, user_id, record_id, old_values, new_values, created_at)
    VALUES (TG_TABLE_NAME, lower(TG_OP), v_user_id, v_record_id, to_jsonb(OLD), NULL, now());
    RETURN OLD;
  END IF;
  RETURN COALESCE(NEW, OLD);
END;
$$ LANGUAGE plpgsql;
""",
)

SYNC_ATTENDANCE_EMPLOYEE_ID = FunctionSpec(
    "sync_attendance_employee_id",
    """
CREATE OR REPLACE FUNCTION {schema}.sync_attendance_employee_id()
RETURNS TRIGGER AS $$
BEGIN
  IF NEW.employee_id IS NULL AND NEW.user_id IS NOT NULL THEN
    NEW.employee_id := NEW.user_id;
  ELSIF NEW.user_id IS NULL AND NEW.employee_id IS NOT NULL THEN
    NEW.user_id := NEW.employee_id;
  END IF;
  IF NEW.hours_worked IS NULL AND NEW.total_hours IS NOT NULL THEN
    NEW.hours_worked := NEW.total_hours;
  END IF;
  IF NEW.total_hours IS NULL AND NEW.hours_worked IS NOT NULL THEN
    NEW.total_hours := NEW.hours_worked;
  END IF;
  NEW.updated_at := NOW();
  RETURN NEW;
END;
$$ LANGUAGE plpgsql;
""",
)

SYNC_EMPLOYEE_SALARY = FunctionSpec(
    "sync_employee_salary",
    """
CREATE OR REPLACE FUNCTION {schema}.sync_employee_salary()
RETURNS TRIGGER AS $$
BEGIN
  IF NEW.salary IS NULL AND NEW.base_salary IS NOT NULL THEN
    NEW.salary := NEW.base_salary;
  END IF;
  IF NEW.base_salary IS NULL AND NEW.salary IS NOT NULL THEN
    NEW.base_salary := NEW.salary;
  END IF;
  IF NEW.base_salary IS NULL THEN
    NEW.base_salary := COALESCE(NEW.salary, 0);
  END IF;
  IF NEW.salary_frequency IS NULL AND NEW.pay_frequency IS NOT NULL THEN
    NEW.salary_frequency := NEW.pay_frequency;
  END IF;
  IF NEW.pay_frequency IS NULL AND NEW.salary_frequency IS NOT NULL THEN
    NEW.pay_frequency := NEW.salary_frequency;
  END IF;
  RETURN NEW;
END;
$$ LANGUAGE plpgsql;
""",
)

SYNC_HOLIDAYS_DATE = FunctionSpec(
    "sync_holidays_date",
    """
CREATE OR REPLACE FUNCTION {schema}.sync_holidays_date()
RETURNS TRIGGER AS $$
BEGIN
  IF NEW.date IS NULL AND NEW.holiday_date IS NOT NULL THEN
    NEW.date := NEW.holiday_date;
  ELSIF NEW.holiday_date IS NULL AND NEW.date IS NOT NULL THEN
    NEW.holiday_date := NEW.date;
  END IF;
  RETURN NEW;
END;
$$ LANGUAGE plpgsql;
""",
)

SHARED_FUNCTIONS = [
    UPDATE_UPDATED_AT,
    CURRENT_USER_ID,
    LOG_AUDIT_CHANGE,
    SYNC_ATTENDANCE_EMPLOYEE_ID,
    SYNC_EMPLOYEE_SALARY,
    SYNC_HOLIDAYS_DATE,
]

CAPABILITIES = Capabilities(
    extensions=list(EXTENSIONS),
    enums=[APP_ROLE_ENUM],
    functions=list(SHARED_FUNCTIONS),
)
