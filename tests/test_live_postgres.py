"""
End-to-end runs against a real PostgreSQL server.

Set TEST_DATABASE_URL to a disposable database to enable these tests. Each
test works in its own schema, dropped afterwards.
"""

import uuid

import pytest
import sqlalchemy as sa

from tenant_schema.catalog.postgres import PostgresBackend
from tenant_schema.config import Settings
from tenant_schema.core.orchestrator import reconcile_schema
from tenant_schema.core.validator import ensure_tenant_schema
from tenant_schema.db import dispose_engines, get_engine, tenant_connection
from tenant_schema.engine.drift import detect_drift
from tenant_schema.modules import default_registry

pytestmark = pytest.mark.live


@pytest.fixture
def live_settings(live_database_url):
    schema = f"tenant_test_{uuid.uuid4().hex[:8]}"
    engine = get_engine(live_database_url)
    with engine.connect() as connection:
        connection.execute(sa.text(f"CREATE SCHEMA {schema}"))
        connection.commit()
    yield Settings(
        _env_file=None,
        database_url=live_database_url,
        tenant_schema_name=schema,
        race_retry_delay_seconds=0.05,
    )
    with engine.connect() as connection:
        connection.execute(sa.text(f"DROP SCHEMA IF EXISTS {schema} CASCADE"))
        connection.commit()
    dispose_engines()


class TestLivePostgres:
    def test_fresh_schema_converges(self, live_settings, observer):
        with tenant_connection(live_settings.database_url) as connection:
            first = reconcile_schema(connection, observer=observer, settings=live_settings)
            second = reconcile_schema(connection, observer=observer, settings=live_settings)
            backend = PostgresBackend(connection, schema=live_settings.tenant_schema_name)
            drift = detect_drift(backend, default_registry())
            version = backend.get_schema_info("schema_version")

        assert "users" in first.actions_of("table_created")
        assert second.actions_of("table_created") == []
        assert drift.is_clean, drift.to_dict()
        assert version == live_settings.schema_version

    def test_legacy_column_is_backfilled(self, live_settings, observer):
        schema = live_settings.tenant_schema_name
        with tenant_connection(live_settings.database_url) as connection:
            reconcile_schema(connection, observer=observer, settings=live_settings)
            connection.execute(
                sa.text(
                    f"INSERT INTO {schema}.holidays (name, holiday_date) "
                    "VALUES ('Founders Day', DATE '2024-03-01')"
                )
            )
            connection.execute(sa.text(f"ALTER TABLE {schema}.holidays DROP COLUMN date"))
            connection.commit()

            report = reconcile_schema(connection, observer=observer, settings=live_settings)
            value = connection.execute(
                sa.text(f"SELECT date FROM {schema}.holidays WHERE name = 'Founders Day'")
            ).scalar()
            connection.commit()

        assert "holidays.date" in report.actions_of("column_added")
        assert str(value) == "2024-03-01"

    def test_front_door_caches(self, live_settings, observer):
        def factory():
            return tenant_connection(live_settings.database_url)

        first = ensure_tenant_schema("live", factory, settings=live_settings, observer=observer)
        second = ensure_tenant_schema("live", factory, settings=live_settings, observer=observer)

        assert second is first
        assert first.changed
