"""
Authentication and authorization schema.

Manages:
- users: core accounts (email, password hash, 2FA state)
- profiles: extended user profiles carrying agency_id
- user_roles: role assignments per agency
- audit_logs: audit trail written by log_audit_change()
- permissions, role_permissions, user_permissions: permission model
- user_preferences: per-user settings
"""

from ..model import (
    ColumnSpec,
    IndexSpec,
    TableSpec,
    UniqueSpec,
    agency_column,
    column,
    timestamps,
    user_ref,
    uuid_pk,
)
from ..model.columns import (
    BOOLEAN,
    DATE,
    EMPTY_OBJECT,
    INET,
    JSONB,
    NOW,
    TEXT,
    TEXT_ARRAY,
    TIMESTAMPTZ,
    UUID,
)
from .base import SchemaModule
from .shared import APP_ROLE

USERS = TableSpec(
    "users",
    [
        uuid_pk(),
        column("email", TEXT, nullable=False, unique=True),
        column("password_hash", TEXT, nullable=False),
        column("email_confirmed", BOOLEAN, default=False),
        column("is_active", BOOLEAN, default=True),
        *timestamps(),
        column("last_sign_in_at", TIMESTAMPTZ),
        column("raw_user_meta_data", JSONB),
        # 2FA and password policy (added after first release)
        column("two_factor_secret", TEXT),
        column("two_factor_enabled", BOOLEAN, default=False),
        column("recovery_codes", TEXT_ARRAY),
        column("two_factor_verified_at", TIMESTAMPTZ),
        column("password_changed_at", TIMESTAMPTZ),
        column("password_policy_id", UUID),
    ],
    indexes=[IndexSpec("idx_users_email", ("email",))],
    audited=True,
    critical=True,
)

PROFILES = TableSpec(
    "profiles",
    [
        uuid_pk(),
        ColumnSpec("user_id", UUID, nullable=False, unique=True, references="users.id", ondelete="CASCADE"),
        agency_column(),
        column("full_name", TEXT),
        column("phone", TEXT),
        column("department", TEXT),
        column("position", TEXT),
        column("hire_date", DATE),
        column("avatar_url", TEXT),
        column("is_active", BOOLEAN, default=True),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_profiles_user_id", ("user_id",)),
        IndexSpec("idx_profiles_agency_id", ("agency_id",)),
    ],
    audited=True,
    critical=True,
)

USER_ROLES = TableSpec(
    "user_roles",
    [
        uuid_pk(),
        user_ref("user_id", nullable=False, ondelete="CASCADE"),
        column("role", APP_ROLE, nullable=False),
        agency_column(),
        column("assigned_at", TIMESTAMPTZ, default=NOW),
        user_ref("assigned_by"),
    ],
    unique=[UniqueSpec(("user_id", "role", "agency_id"), "user_roles_user_id_role_agency_id_key")],
    indexes=[
        IndexSpec("idx_user_roles_user_id", ("user_id",)),
        IndexSpec("idx_user_roles_agency_id", ("agency_id",)),
    ],
    critical=True,
)

AUDIT_LOGS = TableSpec(
    "audit_logs",
    [
        uuid_pk(),
        column("table_name", TEXT, nullable=False),
        column("action", TEXT, nullable=False),
        user_ref("user_id"),
        column("record_id", UUID),
        column("old_values", JSONB),
        column("new_values", JSONB),
        column("ip_address", INET),
        column("user_agent", TEXT),
        column("created_at", TIMESTAMPTZ, default=NOW),
    ],
    indexes=[
        IndexSpec("idx_audit_logs_user_id", ("user_id",)),
        IndexSpec("idx_audit_logs_table_name", ("table_name",)),
    ],
    critical=True,
)

PERMISSIONS = TableSpec(
    "permissions",
    [
        uuid_pk(),
        column("name", TEXT, nullable=False, unique=True),
        column("category", TEXT, nullable=False),
        column("description", TEXT),
        column("is_active", BOOLEAN, default=True),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_permissions_category", ("category",)),
        IndexSpec("idx_permissions_name", ("name",)),
    ],
)

ROLE_PERMISSIONS = TableSpec(
    "role_permissions",
    [
        uuid_pk(),
        column("role", TEXT, nullable=False),
        ColumnSpec("permission_id", UUID, nullable=False, references="permissions.id", ondelete="CASCADE"),
        column("granted", BOOLEAN, default=True),
        *timestamps(),
    ],
    unique=[UniqueSpec(("role", "permission_id"))],
    indexes=[
        IndexSpec("idx_role_permissions_role", ("role",)),
        IndexSpec("idx_role_permissions_permission_id", ("permission_id",)),
    ],
)

USER_PERMISSIONS = TableSpec(
    "user_permissions",
    [
        uuid_pk(),
        user_ref("user_id", nullable=False, ondelete="CASCADE"),
        ColumnSpec("permission_id", UUID, nullable=False, references="permissions.id", ondelete="CASCADE"),
        column("granted", BOOLEAN, nullable=False),
        user_ref("granted_by"),
        column("granted_at", TIMESTAMPTZ, default=NOW),
        column("reason", TEXT),
        column("expires_at", TIMESTAMPTZ),
        *timestamps(),
    ],
    unique=[UniqueSpec(("user_id", "permission_id"))],
    indexes=[
        IndexSpec("idx_user_permissions_user_id", ("user_id",)),
        IndexSpec("idx_user_permissions_permission_id", ("permission_id",)),
        IndexSpec("idx_user_permissions_granted", ("granted",)),
    ],
)

USER_PREFERENCES = TableSpec(
    "user_preferences",
    [
        uuid_pk(),
        ColumnSpec("user_id", UUID, nullable=False, unique=True, references="users.id", ondelete="CASCADE"),
        column("preferences", JSONB, default=EMPTY_OBJECT),
        column("theme", TEXT, default="light"),
        column("language", TEXT, default="en"),
        column("timezone", TEXT),
        column("date_format", TEXT),
        column("time_format", TEXT),
        column("notifications_enabled", BOOLEAN, default=True),
        column("email_notifications", BOOLEAN, default=True),
        *timestamps(),
    ],
    indexes=[IndexSpec("idx_user_preferences_user_id", ("user_id",))],
)


class AuthModule(SchemaModule):
    name = "auth"
    tables = (
        USERS,
        PROFILES,
        USER_ROLES,
        AUDIT_LOGS,
        PERMISSIONS,
        ROLE_PERMISSIONS,
        USER_PERMISSIONS,
        USER_PREFERENCES,
    )
