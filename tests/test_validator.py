"""Tests for the cached validation front door."""

import threading
from contextlib import contextmanager

import pytest

from tenant_schema.core import validator
from tenant_schema.core.errors import ReconciliationError, StatementFailed
from tenant_schema.core.validator import clear_schema_cache, ensure_tenant_schema
from tenant_schema.engine.context import ReconcileReport


class Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def calls(monkeypatch):
    """Replace the real reconciliation with a recorder."""
    made = []

    def fake_reconcile(connection, *, modules=None, observer=None, settings=None):
        made.append(connection)
        return ReconcileReport(database="tenant_a", schema_version=settings.schema_version)

    monkeypatch.setattr(validator, "reconcile_schema", fake_reconcile)
    return made


@pytest.fixture
def connections():
    opened = []

    @contextmanager
    def factory():
        opened.append("open")
        try:
            yield f"connection-{opened.count('open')}"
        finally:
            opened.append("closed")

    factory.opened = opened
    return factory


class TestEnsureTenantSchema:
    """Reconcile at most once per interval per tenant."""

    def test_first_call_reconciles(self, calls, connections, settings, observer):
        report = ensure_tenant_schema("tenant_a", connections, settings=settings, observer=observer)

        assert calls == ["connection-1"]
        assert connections.opened == ["open", "closed"]
        assert report.schema_version == settings.schema_version
        assert not report.skipped

    def test_cached_within_interval(self, calls, connections, settings, observer):
        clock = Clock()
        first = ensure_tenant_schema("tenant_a", connections, settings=settings, observer=observer, clock=clock)
        clock.now += settings.schema_check_interval_seconds - 1
        second = ensure_tenant_schema("tenant_a", connections, settings=settings, observer=observer, clock=clock)

        assert second is first
        assert len(calls) == 1
        assert "schema_check_cached" in observer.names("debug")

    def test_expired_cache_reconciles_again(self, calls, connections, settings, observer):
        clock = Clock()
        ensure_tenant_schema("tenant_a", connections, settings=settings, observer=observer, clock=clock)
        clock.now += settings.schema_check_interval_seconds
        ensure_tenant_schema("tenant_a", connections, settings=settings, observer=observer, clock=clock)

        assert len(calls) == 2

    def test_force_bypasses_cache(self, calls, connections, settings, observer):
        ensure_tenant_schema("tenant_a", connections, settings=settings, observer=observer)
        ensure_tenant_schema("tenant_a", connections, force=True, settings=settings, observer=observer)

        assert len(calls) == 2

    def test_tenants_are_cached_separately(self, calls, connections, settings, observer):
        ensure_tenant_schema("tenant_a", connections, settings=settings, observer=observer)
        ensure_tenant_schema("tenant_b", connections, settings=settings, observer=observer)

        assert len(calls) == 2

    def test_kill_switch_touches_nothing(self, calls, connections, settings, observer):
        settings.disable_schema_checks = True
        report = ensure_tenant_schema("tenant_a", connections, settings=settings, observer=observer)

        assert report.skipped
        assert report.reason == "disabled_by_env"
        assert calls == []
        assert connections.opened == []

    def test_main_database_is_skipped(self, calls, connections, settings, observer):
        report = ensure_tenant_schema(None, connections, settings=settings, observer=observer)

        assert report.skipped
        assert report.reason == "main_database"
        assert calls == []

    def test_concurrent_caller_gets_in_progress(self, monkeypatch, connections, settings, observer):
        started = threading.Event()
        release = threading.Event()
        results = {}

        def slow_reconcile(connection, **kwargs):
            started.set()
            release.wait(timeout=5)
            return ReconcileReport(database="tenant_a")

        monkeypatch.setattr(validator, "reconcile_schema", slow_reconcile)
        worker = threading.Thread(
            target=lambda: results.setdefault(
                "first", ensure_tenant_schema("tenant_a", connections, settings=settings, observer=observer)
            )
        )
        worker.start()
        assert started.wait(timeout=5)

        second = ensure_tenant_schema("tenant_a", connections, settings=settings, observer=observer)
        release.set()
        worker.join(timeout=5)

        assert second.skipped
        assert second.reason == "in_progress"
        assert not results["first"].skipped

    def test_failure_is_not_cached(self, monkeypatch, connections, settings, observer):
        attempts = []

        def failing(connection, **kwargs):
            attempts.append(connection)
            raise ReconciliationError([StatementFailed("permission denied")])

        monkeypatch.setattr(validator, "reconcile_schema", failing)
        for _ in range(2):
            with pytest.raises(ReconciliationError):
                ensure_tenant_schema("tenant_a", connections, settings=settings, observer=observer)

        assert len(attempts) == 2
        assert connections.opened.count("closed") == 2


class TestClearSchemaCache:
    def test_clear_one_tenant(self, calls, connections, settings, observer):
        ensure_tenant_schema("tenant_a", connections, settings=settings, observer=observer)
        ensure_tenant_schema("tenant_b", connections, settings=settings, observer=observer)

        clear_schema_cache("tenant_a")
        ensure_tenant_schema("tenant_a", connections, settings=settings, observer=observer)
        ensure_tenant_schema("tenant_b", connections, settings=settings, observer=observer)

        assert len(calls) == 3

    def test_clear_all(self, calls, connections, settings, observer):
        ensure_tenant_schema("tenant_a", connections, settings=settings, observer=observer)
        clear_schema_cache()
        ensure_tenant_schema("tenant_a", connections, settings=settings, observer=observer)

        assert len(calls) == 2
