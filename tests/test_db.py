"""Tests for database URL handling."""

from tenant_schema.db import dispose_engines, get_database_url, get_engine, tenant_database_url
from tenant_schema.db.base import DEFAULT_DATABASE_URL


class TestDatabaseUrl:
    def test_plain_postgres_gets_sync_driver(self):
        url = get_database_url("postgresql://app:secret@db:5432/main")
        assert url == "postgresql+psycopg://app:secret@db:5432/main"

    def test_async_driver_is_replaced(self):
        url = get_database_url("postgresql+asyncpg://app:secret@db/main")
        assert url.startswith("postgresql+psycopg://")

    def test_explicit_sync_driver_is_kept(self):
        url = get_database_url("postgresql+psycopg2://app:secret@db/main")
        assert url.startswith("postgresql+psycopg2://")

    def test_environment_fallback(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgres://app:secret@db/fromenv")
        assert get_database_url().endswith("/fromenv")

        monkeypatch.delenv("DATABASE_URL")
        assert get_database_url() == DEFAULT_DATABASE_URL

    def test_password_is_not_masked(self):
        assert "secret" in get_database_url("postgresql://app:secret@db/main")


class TestTenantDatabaseUrl:
    def test_switches_database(self):
        url = tenant_database_url("postgresql://app:secret@db:5432/main", "tenant_acme")
        assert url == "postgresql+psycopg://app:secret@db:5432/tenant_acme"


class TestEngines:
    def test_engine_is_cached_per_url(self):
        try:
            first = get_engine("postgresql://app:secret@db/tenant_a")
            assert get_engine("postgresql://app:secret@db/tenant_a") is first
            assert get_engine("postgresql://app:secret@db/tenant_b") is not first
        finally:
            dispose_engines()
