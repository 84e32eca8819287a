"""Tests for the command line interface."""

from contextlib import nullcontext

import pytest
from typer.testing import CliRunner

import tenant_schema.cli as cli
from tenant_schema.core.errors import ReconciliationError, StatementFailed
from tenant_schema.engine.context import ReconcileReport
from tenant_schema.engine.drift import SchemaDrift

runner = CliRunner()


@pytest.fixture
def offline_cli(monkeypatch):
    """Stub out connections and logging setup."""
    urls = []

    def connect(url):
        urls.append(url)
        return nullcontext(object())

    monkeypatch.setattr(cli, "tenant_connection", connect)
    monkeypatch.setattr(cli, "configure_logging", lambda settings: None)
    return urls


class TestPlan:
    def test_lists_modules_in_order(self):
        result = runner.invoke(cli.app, ["plan"])

        assert result.exit_code == 0
        assert "Module Plan" in result.output
        assert "auth" in result.output


class TestReconcile:
    def test_success(self, monkeypatch, offline_cli):
        report = ReconcileReport(database="tenant_acme", modules=["auth"], schema_version="1.0.0")
        monkeypatch.setattr(cli, "reconcile_schema", lambda connection, settings=None: report)

        result = runner.invoke(
            cli.app, ["reconcile", "--database-url", "postgresql://app:pw@db/main", "--tenant", "tenant_acme"]
        )

        assert result.exit_code == 0
        assert "Schema version 1.0.0" in result.output
        assert offline_cli == ["postgresql+psycopg://app:pw@db/tenant_acme"]

    def test_json_output(self, monkeypatch, offline_cli):
        report = ReconcileReport(database="tenant_acme")
        monkeypatch.setattr(cli, "reconcile_schema", lambda connection, settings=None: report)

        result = runner.invoke(cli.app, ["reconcile", "--json"])

        assert result.exit_code == 0
        assert '"valid": true' in result.output

    def test_failure_exits_nonzero(self, monkeypatch, offline_cli):
        def fail(connection, settings=None):
            raise ReconciliationError([StatementFailed("permission denied", module="auth")])

        monkeypatch.setattr(cli, "reconcile_schema", fail)

        result = runner.invoke(cli.app, ["reconcile"])

        assert result.exit_code == 1
        assert "statement_failed" in result.output


class TestDrift:
    """Drift exits 2 so scripts can tell it apart from errors."""

    @pytest.fixture
    def drift_result(self, monkeypatch, offline_cli):
        result = SchemaDrift()
        monkeypatch.setattr(cli, "PostgresBackend", lambda connection, schema: None)
        monkeypatch.setattr(cli, "detect_drift", lambda backend, registry: result)
        return result

    def test_clean(self, drift_result):
        result = runner.invoke(cli.app, ["drift"])

        assert result.exit_code == 0
        assert "No drift" in result.output

    def test_drift_found(self, drift_result):
        drift_result.missing_tables.append("holidays")
        drift_result.missing_columns.append("users.phone")

        result = runner.invoke(cli.app, ["drift"])

        assert result.exit_code == 2
        assert "holidays" in result.output
        assert "users.phone" in result.output
