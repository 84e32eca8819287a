"""Tests for databases left behind by older releases."""

import uuid

import pytest

from tenant_schema.engine.compat import BackwardCompatibilityPass
from tenant_schema.engine.invariants import (
    ColumnPresenceCheck,
    RenameCompletedCheck,
    TenantDiscriminatorCheck,
)
from tenant_schema.engine.tables import TableReconciler
from tenant_schema.model.columns import SENTINEL_AGENCY_ID
from tenant_schema.model.tables import ForeignKeySpec
from tenant_schema.modules.clients_financial import JOURNAL_ENTRY_LINES
from tenant_schema.modules.messaging import MESSAGE_THREADS
from tenant_schema.modules.misc import COMPANY_EVENTS, HOLIDAYS, REPORTS
from tenant_schema.modules.projects import PROJECTS


@pytest.fixture
def legacy(backend, registry):
    """A tenant database with shared procedures and the given stub tables."""
    backend.functions.update(registry.capabilities.function_names)

    def stub(*tables):
        for name in tables:
            backend.make_table(name, {"id": False})
        return backend

    return stub


class TestLegacyTables:
    """Each table converges from the shape an older release left."""

    def test_holiday_date_is_copied_to_date(self, legacy, ctx):
        backend = legacy()
        for column in ("is_company_holiday", "is_national_holiday"):
            sql = HOLIDAYS.migration_for(column).populate.sql
            flag = "company" if column == "is_company_holiday" else "public"
            backend.expressions[sql] = lambda row, flag=flag: row["holiday_type"] == flag
        backend.make_table(
            "holidays",
            {"id": False, "name": False, "holiday_date": False, "holiday_type": True},
            [
                {"id": "h1", "name": "Founders Day", "holiday_date": "2024-03-01", "holiday_type": "company"},
                {"id": "h2", "name": "Republic Day", "holiday_date": "2024-01-26", "holiday_type": "public"},
            ],
        )

        TableReconciler(ctx).ensure(HOLIDAYS)

        rows = {r["id"]: r for r in backend.rows("holidays")}
        assert rows["h1"]["date"] == "2024-03-01"
        assert rows["h1"]["is_company_holiday"] is True
        assert rows["h2"]["is_company_holiday"] is False
        assert rows["h2"]["is_national_holiday"] is True
        assert "holidays.date" in ctx.report.actions_of("backfilled")
        assert backend.get_columns("holidays")["is_company_holiday"].default == "False"
        assert backend.trigger_exists("holidays", "sync_holidays_date_trigger")

    def test_company_events_all_day_is_renamed(self, legacy, ctx):
        backend = legacy("users")
        backend.make_table(
            "company_events",
            {"id": False, "title": False, "start_date": False, "all_day": True},
            [{"id": "e1", "title": "Offsite", "start_date": "2024-05-01", "all_day": True}],
        )

        TableReconciler(ctx).ensure(COMPANY_EVENTS)

        columns = backend.get_columns("company_events")
        assert "is_all_day" in columns
        assert "all_day" not in columns
        assert backend.rows("company_events")[0]["is_all_day"] is True
        assert ctx.report.actions_of("column_renamed") == ["company_events.is_all_day"]

    def test_reports_type_becomes_report_type(self, legacy, ctx):
        backend = legacy("users")
        backend.make_table(
            "reports",
            {"id": False, "name": False, "type": True},
            [{"id": "r1", "name": "Q1", "type": "sales"}, {"id": "r2", "name": "Q2", "type": None}],
        )

        TableReconciler(ctx).ensure(REPORTS)

        values = {r["id"]: r["report_type"] for r in backend.rows("reports")}
        assert values == {"r1": "sales", "r2": "custom"}
        assert not backend.get_columns("reports")["report_type"].nullable
        assert backend.index_exists("idx_reports_type")

    def test_message_threads_with_legacy_columns_are_rebuilt(self, legacy, ctx, observer):
        backend = legacy("users", "message_channels")
        backend.make_table(
            "message_threads",
            {"id": False, "thread_type": True, "participants": True},
            [{"id": "t1", "thread_type": "direct", "participants": "[]"}],
        )

        created = TableReconciler(ctx).ensure(MESSAGE_THREADS)

        assert created
        columns = backend.get_columns("message_threads")
        assert "participants" not in columns
        assert "channel_id" in columns
        assert backend.rows("message_threads") == []
        assert ctx.report.actions_of("table_dropped") == ["message_threads"]
        rebuilt = observer.find("table_rebuilt")[0]
        assert rebuilt["legacy"] == ["thread_type", "participants"]

    def test_rebuild_keeps_foreign_keys_held_by_other_tables(self, legacy, ctx):
        backend = legacy("users", "message_channels")
        backend.make_table("message_threads", {"id": False, "thread_type": True})
        backend.make_table("messages", {"id": False, "thread_id": True}, [{"id": "m1", "thread_id": "t1"}])
        backend.create_foreign_key(
            "messages",
            ForeignKeySpec("messages_thread_id_fkey", ("thread_id",), "message_threads", ondelete="CASCADE"),
        )

        TableReconciler(ctx).ensure(MESSAGE_THREADS)

        assert ctx.report.actions_of("table_dropped") == ["message_threads"]
        assert backend.constraint_exists("messages", "messages_thread_id_fkey")
        assert backend.tables["messages"].unvalidated == {"messages_thread_id_fkey"}
        assert ctx.report.actions_of("foreign_key_restored") == ["messages_thread_id_fkey"]
        assert len(backend.rows("messages")) == 1

    def test_current_message_threads_are_kept(self, legacy, ctx):
        backend = legacy("users", "message_channels")
        TableReconciler(ctx).ensure(MESSAGE_THREADS)
        backend.insert("message_threads", id="t1")

        assert not TableReconciler(ctx).ensure(MESSAGE_THREADS)
        assert len(backend.rows("message_threads")) == 1

    def test_journal_entry_lines_are_numbered(self, legacy, ctx):
        backend = legacy("journal_entries", "chart_of_accounts")
        backend.make_table(
            "journal_entry_lines",
            {"id": False, "journal_entry_id": False, "created_at": True},
            [
                {"id": "l1", "journal_entry_id": "j1", "created_at": "2024-01-01T10:00"},
                {"id": "l2", "journal_entry_id": "j1", "created_at": "2024-01-01T11:00"},
                {"id": "l3", "journal_entry_id": "j2", "created_at": "2024-01-01T09:00"},
            ],
        )

        TableReconciler(ctx).ensure(JOURNAL_ENTRY_LINES)

        numbers = {r["id"]: r["line_number"] for r in backend.rows("journal_entry_lines")}
        assert numbers == {"l1": 1, "l2": 2, "l3": 1}
        assert backend.get_columns("journal_entry_lines")["line_number"].default == "1"
        assert backend.index_exists("idx_journal_entry_lines_journal_entry_id_line_number")

    def test_projects_get_sentinel_agency(self, legacy, ctx):
        backend = legacy("users", "clients")
        backend.make_table(
            "projects",
            {"id": False, "name": False, "status": True},
            [{"id": "p1", "name": "Website", "status": "active"}],
        )

        TableReconciler(ctx).ensure(PROJECTS)

        assert backend.rows("projects")[0]["agency_id"] == uuid.UUID(SENTINEL_AGENCY_ID)
        assert not backend.get_columns("projects")["agency_id"].nullable
        assert backend.constraint_exists("projects", "projects_status_check")


class TestInvariantChecks:
    """Checks report without modifying; enforce repairs."""

    def test_rename_check_finds_unrenamed_column(self, backend, ctx):
        backend.make_table("company_events", {"id": False, "all_day": True}, [{"id": "e1", "all_day": False}])
        check = RenameCompletedCheck("company_events", COMPANY_EVENTS.renames[0])

        violations = check.check(ctx)
        assert [v.detail for v in violations] == ["still named all_day"]
        assert "all_day" in backend.get_columns("company_events")

        check.enforce(ctx)
        assert check.check(ctx) == []
        assert backend.rows("company_events")[0]["is_all_day"] is False

    def test_rename_check_copies_leftovers(self, backend, ctx):
        backend.make_table(
            "company_events",
            {"id": False, "all_day": True, "is_all_day": True},
            [{"id": "e1", "all_day": True, "is_all_day": None}],
        )
        check = RenameCompletedCheck("company_events", COMPANY_EVENTS.renames[0])

        assert check.check(ctx)[0].detail == "1 values only in all_day"
        check.enforce(ctx)
        assert backend.rows("company_events")[0]["is_all_day"] is True

    def test_tenant_discriminator_check(self, backend, ctx):
        backend.make_table("projects", {"id": False, "name": False}, [{"id": "p1", "name": "Legacy"}])
        check = TenantDiscriminatorCheck([PROJECTS, HOLIDAYS])

        violations = check.check(ctx)
        assert [(v.table, v.column, v.detail) for v in violations] == [("projects", "agency_id", "missing")]

        check.enforce(ctx)
        assert check.check(ctx) == []
        assert backend.rows("projects")[0]["agency_id"] == uuid.UUID(SENTINEL_AGENCY_ID)

    def test_column_presence_check_flags_nullable(self, backend, ctx):
        backend.make_table(
            "journal_entry_lines",
            {"id": False, "journal_entry_id": False, "created_at": True, "line_number": True},
            [{"id": "l1", "journal_entry_id": "j1", "created_at": "2024-01-01", "line_number": 0}],
        )
        check = ColumnPresenceCheck(JOURNAL_ENTRY_LINES, ("line_number",))

        assert check.check(ctx)[0].detail == "unpopulated"
        check.enforce(ctx)
        assert check.check(ctx) == []
        assert backend.rows("journal_entry_lines")[0]["line_number"] == 1

    def test_unknown_column_is_rejected(self):
        with pytest.raises(KeyError):
            ColumnPresenceCheck(HOLIDAYS, ("ghost",))


class TestBackwardCompatibilityPass:
    """The pass re-enforces every invariant once, after all modules."""

    def test_checks_are_deduplicated(self, registry):
        checks = BackwardCompatibilityPass(registry).checks()
        keys = [c.key for c in checks]

        assert len(keys) == len(set(keys))
        assert any(c.name == "tenant_discriminator" for c in checks)
        assert ("rename_completed", "company_events", "all_day", "is_all_day") in keys

    def test_pass_repairs_legacy_state(self, backend, ctx, registry, observer):
        backend.make_table("projects", {"id": False, "name": False}, [{"id": "p1", "name": "Legacy"}])
        backend.make_table(
            "company_events",
            {"id": False, "agency_id": True, "all_day": True, "is_all_day": True},
            [{"id": "e1", "agency_id": None, "all_day": True, "is_all_day": None}],
        )

        violations = BackwardCompatibilityPass(registry).run(ctx)

        assert {(v.check, v.table) for v in violations} == {
            ("tenant_discriminator", "projects"),
            ("rename_completed", "company_events"),
        }
        assert observer.find("compat_pass_finished")[0]["repaired"] == 2
        assert BackwardCompatibilityPass(registry).run(ctx) == []
