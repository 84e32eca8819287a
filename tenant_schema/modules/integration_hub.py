"""
Integration hub schema.

Manages:
- api_keys: hashed API keys with rate limits (audited)
- integrations: third-party integration definitions (audited)
- integration_logs: execution log per integration
"""

from ..model import (
    IndexSpec,
    TableSpec,
    UniqueSpec,
    agency_column,
    column,
    created_at,
    created_by_column,
    ref,
    timestamps,
    uuid_pk,
)
from ..model.columns import (
    BOOLEAN,
    EMPTY_LIST,
    EMPTY_OBJECT,
    INTEGER,
    JSONB,
    TEXT,
    TEXT_ARRAY,
    TIMESTAMPTZ,
    varchar,
)
from .base import SchemaModule


def _counter(name):
    return column(name, INTEGER, default=0)


API_KEYS = TableSpec(
    "api_keys",
    [
        uuid_pk(),
        agency_column(nullable=False),
        column("name", varchar(255), nullable=False),
        column("key_hash", TEXT, nullable=False),
        # first characters of the raw key, for display
        column("key_prefix", varchar(20), nullable=False),
        column("permissions", JSONB, default=EMPTY_LIST),
        column("scopes", JSONB, default=EMPTY_LIST),
        column("rate_limit_per_minute", INTEGER, default=60),
        column("rate_limit_per_hour", INTEGER, default=1000),
        column("rate_limit_per_day", INTEGER, default=10000),
        column("expires_at", TIMESTAMPTZ),
        column("last_used_at", TIMESTAMPTZ),
        _counter("usage_count"),
        column("is_active", BOOLEAN, default=True),
        column("ip_whitelist", TEXT_ARRAY),
        column("notes", TEXT),
        created_by_column(),
        *timestamps(),
    ],
    indexes=[
        IndexSpec("idx_api_keys_agency_id", ("agency_id",)),
        IndexSpec("idx_api_keys_key_prefix", ("key_prefix",)),
        IndexSpec("idx_api_keys_is_active", ("is_active",)),
        IndexSpec("idx_api_keys_expires_at", ("expires_at",)),
    ],
    audited=True,
)

INTEGRATIONS = TableSpec(
    "integrations",
    [
        uuid_pk(),
        agency_column(nullable=False),
        column("name", varchar(255), nullable=False),
        column("integration_type", varchar(100), nullable=False),
        column("provider", varchar(100)),
        column("description", TEXT),
        column("status", varchar(50), default="inactive"),
        column("configuration", JSONB, default=EMPTY_OBJECT),
        column("credentials_encrypted", TEXT),
        column("webhook_url", TEXT),
        column("api_endpoint", TEXT),
        # oauth, api_key, basic, bearer or custom
        column("authentication_type", varchar(50)),
        column("is_system", BOOLEAN, default=False),
        column("sync_enabled", BOOLEAN, default=False),
        column("sync_frequency", varchar(50)),
        column("last_sync_at", TIMESTAMPTZ),
        column("last_sync_status", varchar(50)),
        column("last_sync_error", TEXT),
        _counter("error_count"),
        _counter("success_count"),
        column("metadata", JSONB, default=EMPTY_OBJECT),
        created_by_column(),
        *timestamps(),
    ],
    unique=[UniqueSpec(("agency_id", "name"))],
    indexes=[
        IndexSpec("idx_integrations_agency_id", ("agency_id",)),
        IndexSpec("idx_integrations_integration_type", ("integration_type",)),
        IndexSpec("idx_integrations_provider", ("provider",)),
        IndexSpec("idx_integrations_status", ("status",)),
        IndexSpec("idx_integrations_is_system", ("is_system",)),
    ],
    audited=True,
)

INTEGRATION_LOGS = TableSpec(
    "integration_logs",
    [
        uuid_pk(),
        agency_column(nullable=False),
        ref("integration_id", "integrations.id", nullable=False, ondelete="CASCADE"),
        # sync, webhook, api_call, error or info
        column("log_type", varchar(50), nullable=False),
        column("event_type", varchar(100)),
        column("status", varchar(50), default="pending"),
        # inbound or outbound
        column("direction", varchar(20)),
        column("request_data", JSONB),
        column("response_data", JSONB),
        column("error_message", TEXT),
        column("error_stack", TEXT),
        column("execution_time_ms", INTEGER),
        _counter("records_processed"),
        _counter("records_success"),
        _counter("records_failed"),
        column("metadata", JSONB, default=EMPTY_OBJECT),
        created_at(),
    ],
    indexes=[
        IndexSpec("idx_integration_logs_agency_id", ("agency_id",)),
        IndexSpec("idx_integration_logs_integration_id", ("integration_id",)),
        IndexSpec("idx_integration_logs_log_type", ("log_type",)),
        IndexSpec("idx_integration_logs_status", ("status",)),
        IndexSpec("idx_integration_logs_event_type", ("event_type",)),
        IndexSpec("idx_integration_logs_created_at", ("created_at",)),
    ],
)


class IntegrationHubModule(SchemaModule):
    name = "integration_hub"
    depends_on = ("auth",)
    tables = (API_KEYS, INTEGRATIONS, INTEGRATION_LOGS)
