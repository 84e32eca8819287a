"""Tests for column migration on tables that already hold data."""

from tenant_schema.core.errors import BackfillFailure
from tenant_schema.engine.columns import ColumnMigrator
from tenant_schema.engine.tables import TableReconciler
from tenant_schema.model import (
    CheckSpec,
    ColumnMigrationRule,
    Constant,
    CopyFrom,
    ForeignKeySpec,
    IndexSpec,
    RenameRule,
    TableSpec,
    WindowOrdinal,
    column,
    ref,
    uuid_pk,
)
from tenant_schema.model.columns import INTEGER, TEXT, varchar


class TestEnsureColumn:
    """Add nullable, backfill, then tighten."""

    def test_added_column_is_backfilled_and_tightened(self, backend, ctx):
        backend.make_table("attendance", {"id": False, "user_id": True}, [{"id": 1, "user_id": "u1"}])
        spec = column("employee_id", TEXT, nullable=False)
        outcome = ColumnMigrator(ctx).ensure_column(
            "attendance", spec, ColumnMigrationRule("employee_id", CopyFrom("user_id"))
        )

        assert outcome.added
        assert outcome.tightened
        assert backend.rows("attendance")[0]["employee_id"] == "u1"
        assert not backend.get_columns("attendance")["employee_id"].nullable
        assert ctx.report.actions_of("column_added") == ["attendance.employee_id"]
        assert ctx.report.actions_of("backfilled") == ["attendance.employee_id"]

    def test_column_is_added_nullable_first(self, backend, ctx):
        """NOT NULL is never part of the ADD COLUMN on a populated table."""
        backend.make_table("t", {"id": False}, [{"id": 1}])
        ColumnMigrator(ctx).ensure_column("t", column("code", TEXT, nullable=False))

        assert ("set_not_null", "t.code") not in backend.statements
        assert backend.get_columns("t")["code"].nullable
        warnings = [w for w in ctx.report.warnings if isinstance(w, BackfillFailure)]
        assert warnings and warnings[0].obj == "t.code"

    def test_default_fills_existing_rows(self, backend, ctx):
        backend.make_table("t", {"id": False}, [{"id": 1}, {"id": 2}])
        ColumnMigrator(ctx).ensure_column("t", column("status", varchar(20), nullable=False, default="open"))

        assert [r["status"] for r in backend.rows("t")] == ["open", "open"]
        assert not backend.get_columns("t")["status"].nullable

    def test_missing_source_skips_backfill(self, backend, ctx, observer):
        """Absent source columns degrade to a warning and NOT NULL is skipped."""
        backend.make_table("holidays", {"id": False}, [{"id": 1}])
        ColumnMigrator(ctx).ensure_column(
            "holidays",
            column("date", TEXT, nullable=False),
            ColumnMigrationRule("date", CopyFrom("holiday_date")),
        )

        assert backend.get_columns("holidays")["date"].nullable
        assert "backfill_skipped" in observer.names("warning")
        assert ctx.report.warnings[0].code == "backfill_failure"

    def test_backfill_error_is_a_warning(self, backend, ctx, observer):
        backend.make_table("t", {"id": False, "old": True}, [{"id": 1, "old": "x"}])
        backend.failures["backfill:t.new"] = RuntimeError("statement timeout")
        outcome = ColumnMigrator(ctx).ensure_column(
            "t", column("new", TEXT, nullable=False), ColumnMigrationRule("new", CopyFrom("old"))
        )

        assert not outcome.complete
        assert not outcome.tightened
        assert observer.find("backfill_failed")[0]["table"] == "t"

    def test_incomplete_backfill_is_reported(self, backend, ctx, observer):
        """Rows the rule cannot fill keep the column nullable."""
        backend.make_table(
            "t", {"id": False, "old": True}, [{"id": 1, "old": "x"}, {"id": 2, "old": None}]
        )
        outcome = ColumnMigrator(ctx).ensure_column(
            "t", column("new", TEXT, nullable=False), ColumnMigrationRule("new", CopyFrom("old"))
        )

        assert outcome.complete
        assert not outcome.tightened
        assert observer.find("backfill_incomplete")[0]["remaining"] == 1

    def test_rule_can_force_not_null(self, backend, ctx):
        backend.make_table("reports", {"id": False}, [{"id": 1}])
        ColumnMigrator(ctx).ensure_column(
            "reports",
            column("report_type", TEXT),
            ColumnMigrationRule("report_type", Constant("custom"), not_null=True),
        )

        assert backend.rows("reports")[0]["report_type"] == "custom"
        assert not backend.get_columns("reports")["report_type"].nullable

    def test_converged_column_is_untouched(self, backend, ctx):
        backend.make_table("t", {"id": False, "code": False}, [{"id": 1, "code": "a"}])
        backend.statements.clear()
        ColumnMigrator(ctx).ensure_column("t", column("code", TEXT, nullable=False))

        assert backend.statements == []
        assert ctx.report.actions == []

    def test_missing_default_is_restored(self, backend, ctx):
        backend.make_table("t", {"id": False, "status": True})
        ColumnMigrator(ctx).ensure_column("t", column("status", TEXT, default="open"))

        assert ("set_default", "t.status") in backend.statements
        assert backend.get_columns("t")["status"].default == "'open'"

    def test_window_ordinal_numbers_each_group(self, backend, ctx):
        backend.make_table(
            "journal_entry_lines",
            {"id": False, "journal_entry_id": True, "created_at": True},
            [
                {"id": "b", "journal_entry_id": "je1", "created_at": "2024-01-02"},
                {"id": "a", "journal_entry_id": "je1", "created_at": "2024-01-01"},
                {"id": "c", "journal_entry_id": "je2", "created_at": "2024-01-01"},
            ],
        )
        ColumnMigrator(ctx).ensure_column(
            "journal_entry_lines",
            column("line_number", INTEGER, nullable=False),
            ColumnMigrationRule("line_number", WindowOrdinal("journal_entry_id")),
        )

        numbers = {r["id"]: r["line_number"] for r in backend.rows("journal_entry_lines")}
        assert numbers == {"a": 1, "b": 2, "c": 1}
        assert not backend.get_columns("journal_entry_lines")["line_number"].nullable


class TestRenames:
    """Renames happen once and leftovers are copied."""

    def test_rename_when_only_old_exists(self, backend, ctx):
        backend.make_table("company_events", {"id": False, "all_day": True}, [{"id": 1, "all_day": True}])
        renamed = ColumnMigrator(ctx).ensure_rename("company_events", RenameRule("all_day", "is_all_day"))

        assert renamed
        assert "is_all_day" in backend.get_columns("company_events")
        assert "all_day" not in backend.get_columns("company_events")
        assert backend.rows("company_events")[0]["is_all_day"] is True

    def test_no_rename_when_both_exist(self, backend, ctx):
        backend.make_table(
            "company_events",
            {"id": False, "all_day": True, "is_all_day": True},
            [{"id": 1, "all_day": True, "is_all_day": None}],
        )
        migrator = ColumnMigrator(ctx)
        assert not migrator.ensure_rename("company_events", RenameRule("all_day", "is_all_day"))
        assert migrator.copy_leftovers("company_events", RenameRule("all_day", "is_all_day")) == 1
        assert backend.rows("company_events")[0]["is_all_day"] is True

    def test_nothing_left_to_copy_once_renamed(self, backend, ctx):
        backend.make_table("company_events", {"id": False, "is_all_day": True}, [{"id": 1, "is_all_day": None}])
        backend.statements.clear()

        copied = ColumnMigrator(ctx).copy_leftovers("company_events", RenameRule("all_day", "is_all_day"))

        assert copied == 0
        assert backend.statements == []
        assert ctx.report.actions == []


class TestTableReconciler:
    """One table driven through every step."""

    def widgets(self):
        return TableSpec(
            "widgets",
            [uuid_pk(), column("name", TEXT, nullable=False), column("size", INTEGER)],
            checks=[CheckSpec("widgets_size_check", "size > 0")],
            indexes=[IndexSpec("idx_widgets_name", ("name",))],
            audited=True,
        )

    def test_creates_missing_table(self, backend, ctx):
        backend.functions.add("log_audit_change")
        created = TableReconciler(ctx).ensure(self.widgets())

        assert created
        assert backend.index_exists("idx_widgets_name")
        assert backend.trigger_exists("widgets", "audit_widgets_changes")
        assert ctx.report.actions_of("table_created") == ["widgets"]

    def test_existing_table_gains_columns_and_check(self, backend, ctx):
        backend.functions.add("log_audit_change")
        backend.make_table("widgets", {"id": False, "name": False})
        created = TableReconciler(ctx).ensure(self.widgets())

        assert not created
        assert "size" in backend.get_columns("widgets")
        assert backend.constraint_exists("widgets", "widgets_size_check")

    def test_failed_check_is_a_warning(self, backend, ctx, observer):
        backend.functions.add("log_audit_change")
        backend.make_table("widgets", {"id": False, "name": False, "size": True})
        backend.failures["widgets_size_check"] = RuntimeError("check constraint is violated by some row")
        TableReconciler(ctx).ensure(self.widgets())

        assert "check_skipped" in observer.names("warning")
        assert not backend.constraint_exists("widgets", "widgets_size_check")

    def test_raced_table_creation_is_recovered(self, backend, ctx, observer):
        backend.functions.add("log_audit_change")
        backend.races.add("widgets")
        created = TableReconciler(ctx).ensure(self.widgets())

        assert not created
        assert backend.table_exists("widgets")
        assert observer.find("race_recovered")[0]["object"] == "widgets"

    def gadgets(self):
        return TableSpec("gadgets", [uuid_pk(), ref("owner_id", "users.id", ondelete="SET NULL")])

    def test_lost_column_foreign_key_is_restored(self, backend, ctx):
        backend.make_table("users", {"id": False})
        backend.make_table("gadgets", {"id": False, "owner_id": True}, [{"id": 1, "owner_id": "gone"}])

        TableReconciler(ctx).ensure(self.gadgets())
        TableReconciler(ctx).ensure(self.gadgets())

        assert backend.has_foreign_key("gadgets", ("owner_id",), "users")
        assert backend.tables["gadgets"].unvalidated == {"gadgets_owner_id_fkey"}
        assert ctx.report.actions_of("foreign_key_restored") == ["gadgets_owner_id_fkey"]

    def test_foreign_key_under_a_legacy_name_is_kept(self, backend, ctx):
        backend.make_table("users", {"id": False})
        backend.make_table("gadgets", {"id": False, "owner_id": True})
        backend.create_foreign_key("gadgets", ForeignKeySpec("fk_gadgets_owner", ("owner_id",), "users"))

        TableReconciler(ctx).ensure(self.gadgets())

        assert ctx.report.actions_of("foreign_key_restored") == []
        assert not backend.constraint_exists("gadgets", "gadgets_owner_id_fkey")

    def test_failed_restore_is_a_warning(self, backend, ctx, observer):
        backend.make_table("users", {"id": False})
        backend.make_table("gadgets", {"id": False, "owner_id": True})
        backend.failures["gadgets_owner_id_fkey"] = RuntimeError(
            "foreign key constraint cannot be implemented"
        )

        TableReconciler(ctx).ensure(self.gadgets())

        assert "foreign_key_skipped" in observer.names("warning")
        assert [w.obj for w in ctx.report.warnings] == ["gadgets_owner_id_fkey"]
