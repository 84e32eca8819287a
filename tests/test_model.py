"""Tests for declarative schema metadata."""

import pytest
import sqlalchemy as sa

from tenant_schema.model import (
    Coalesce,
    ColumnMigrationRule,
    Constant,
    CopyFrom,
    Expression,
    FunctionSpec,
    IndexSpec,
    RebuildRule,
    RenameRule,
    TableSpec,
    ViewSpec,
    WindowOrdinal,
    column,
    ref,
    timestamps,
    uuid_pk,
)
from tenant_schema.model.columns import BOOLEAN, EMPTY_OBJECT, INTEGER, JSONB, NOW, TEXT, varchar
from tenant_schema.model.routines import EnumSpec
from tenant_schema.model.tables import index_column_name


class TestColumnSpec:
    """Column definitions and their defaults."""

    def test_string_default_is_quoted_literal(self):
        col = column("status", varchar(50), default="active")
        assert col.server_default() == "active"
        assert col.literal_default() == "active"

    def test_boolean_and_number_defaults_render_as_sql(self):
        assert column("flag", BOOLEAN, default=True).server_default().text == "true"
        assert column("flag", BOOLEAN, default=False).server_default().text == "false"
        assert column("count", INTEGER, default=0).server_default().text == "0"

    def test_sql_default_is_verbatim(self):
        col = column("settings", JSONB, default=EMPTY_OBJECT)
        assert col.server_default() is EMPTY_OBJECT
        assert col.literal_default() is None

    def test_relaxed_copy_is_nullable(self):
        pk = uuid_pk()
        relaxed = pk.relaxed()
        assert relaxed.nullable
        assert not relaxed.primary_key
        assert pk.required

    def test_reference_parts(self):
        col = ref("client_id", "clients.id", ondelete="CASCADE")
        assert col.referenced_table == "clients"
        assert col.referenced_column == "id"

    def test_to_column_builds_foreign_key_and_default(self):
        col = ref("client_id", "clients.id", nullable=False, ondelete="CASCADE")
        built = col.to_column("tenant")
        assert not built.nullable
        fk = next(iter(built.foreign_keys))
        assert fk.target_fullname == "tenant.clients.id"
        assert fk.ondelete == "CASCADE"

    def test_enum_type_follows_schema(self):
        from tenant_schema.modules.shared import APP_ROLE

        built = column("role", APP_ROLE).to_column("tenant_a")
        assert built.type.schema == "tenant_a"
        assert built.type.name == "app_role"
        assert APP_ROLE.schema is None

    def test_computed_column(self):
        col = column("total", INTEGER, computed="a + b")
        assert col.is_generated
        assert isinstance(col.to_column().computed, sa.Computed)


class TestIndexSpec:
    """Index column resolution against the live table."""

    def test_entry_parsing(self):
        assert index_column_name("created_at") == "created_at"
        assert index_column_name("created_at DESC") == "created_at"
        assert index_column_name("to_tsvector('english', content)") is None

    def test_resolve_prefers_declared_columns(self):
        index = IndexSpec("idx", ("report_type",), alternatives=(("type",),))
        assert index.resolve({"id", "report_type", "type"}) == ("report_type",)

    def test_resolve_falls_back_to_alternative(self):
        index = IndexSpec("idx", ("report_type",), alternatives=(("type",),))
        assert index.resolve({"id", "type"}) == ("type",)
        assert index.degradable

    def test_resolve_returns_none_when_nothing_fits(self):
        index = IndexSpec("idx", ("missing", "created_at DESC"))
        assert index.resolve({"created_at"}) is None
        assert not index.degradable

    def test_expressions_do_not_need_columns(self):
        index = IndexSpec("idx", ("lower(email)",))
        assert index.resolve(set()) == ("lower(email)",)


class TestTableSpec:
    """Table-level validation and implied triggers."""

    def test_duplicate_columns_rejected(self):
        with pytest.raises(ValueError, match="duplicate"):
            TableSpec("t", [uuid_pk(), column("id", TEXT)])

    def test_migration_rule_must_target_declared_column(self):
        with pytest.raises(ValueError, match="undeclared"):
            TableSpec("t", [uuid_pk()], migrations=[ColumnMigrationRule("ghost", Constant(1))])

    def test_rename_target_must_be_declared(self):
        with pytest.raises(ValueError, match="rename target"):
            TableSpec("t", [uuid_pk()], renames=[RenameRule("old", "new")])

    def test_tenant_scope_inferred_from_agency_column(self):
        scoped = TableSpec("t", [uuid_pk(), column("agency_id", TEXT)])
        plain = TableSpec("u", [uuid_pk()])
        assert scoped.tenant_scoped
        assert not plain.tenant_scoped

    def test_updated_at_implies_touch_trigger(self):
        spec = TableSpec("widgets", [uuid_pk(), *timestamps()], audited=True)
        names = [b.name for b in spec.all_triggers()]
        assert names == ["update_widgets_updated_at", "audit_widgets_changes"]

    def test_touch_trigger_can_be_disabled(self):
        spec = TableSpec("widgets", [uuid_pk(), *timestamps()], touch_updated_at=False)
        assert spec.all_triggers() == []

    def test_referenced_tables_exclude_self(self):
        spec = TableSpec(
            "categories",
            [uuid_pk(), ref("parent_id", "categories.id"), ref("owner_id", "users.id")],
        )
        assert spec.referenced_tables() == {"users": ["owner_id"]}

    def test_audit_trigger_statement(self):
        spec = TableSpec("widgets", [uuid_pk()], audited=True)
        statement = spec.all_triggers()[0].statement("public", "widgets")
        assert statement == (
            "CREATE TRIGGER audit_widgets_changes AFTER INSERT OR UPDATE OR DELETE "
            "ON public.widgets FOR EACH ROW EXECUTE FUNCTION public.log_audit_change()"
        )


class TestPopulateRules:
    """Backfill statements and their pending predicates."""

    def test_copy_from(self):
        rule = CopyFrom("user_id")
        sql, params = rule.statement("public.attendance", "employee_id")
        assert sql == (
            "UPDATE public.attendance SET employee_id = user_id "
            "WHERE employee_id IS NULL AND user_id IS NOT NULL"
        )
        assert params == {}
        assert rule.sources == ("user_id",)

    def test_constant_binds_value(self):
        sql, params = Constant("custom").statement("public.reports", "report_type")
        assert ":value" in sql
        assert params == {"value": "custom"}

    def test_expression_wraps_sql(self):
        rule = Expression("holiday_type = 'company'", depends_on=("holiday_type",))
        sql, _ = rule.statement("public.holidays", "is_company_holiday")
        assert "SET is_company_holiday = (holiday_type = 'company')" in sql
        assert rule.sources == ("holiday_type",)

    def test_coalesce_with_fallback(self):
        rule = Coalesce(("start_time", "created_at"), fallback="NOW()")
        sql, _ = rule.statement("public.t", "start_time")
        assert "COALESCE(start_time, created_at, NOW())" in sql
        assert rule.pending("start_time") == "start_time IS NULL"

    def test_window_ordinal_treats_zero_as_unassigned(self):
        rule = WindowOrdinal("journal_entry_id")
        assert rule.pending("line_number") == "(line_number IS NULL OR line_number = 0)"
        sql, _ = rule.statement("public.journal_entry_lines", "line_number")
        assert "ROW_NUMBER() OVER (PARTITION BY journal_entry_id ORDER BY created_at, id)" in sql

    def test_quote_function_is_applied(self):
        sql, _ = CopyFrom("type").statement("t", "report_type", quote=lambda n: f'"{n}"')
        assert '"report_type" = "type"' in sql


class TestRebuildRule:
    def test_legacy_column_triggers_rebuild(self):
        rule = RebuildRule("2", legacy_columns=("participants",))
        assert rule.needs_rebuild({"id", "participants"})
        assert rule.reasons({"id", "participants"})["legacy"] == ("participants",)

    def test_missing_required_column_triggers_rebuild(self):
        rule = RebuildRule("2", required_columns=("gstin", "agency_id"))
        assert rule.needs_rebuild({"id", "agency_id"})
        assert not rule.needs_rebuild({"id", "agency_id", "gstin"})


class TestRoutines:
    def test_function_renders_schema(self):
        spec = FunctionSpec("f", "CREATE OR REPLACE FUNCTION {schema}.f() RETURNS void AS $$ $$ LANGUAGE sql;")
        assert spec.render("tenant").startswith("CREATE OR REPLACE FUNCTION tenant.f()")

    def test_view_render(self):
        view = ViewSpec("v", "SELECT 1 FROM {schema}.users")
        assert view.render() == "CREATE OR REPLACE VIEW public.v AS\nSELECT 1 FROM public.users"

    def test_enum_missing_values_keep_order(self):
        enum = EnumSpec("app_role", ("admin", "employee", "intern"))
        assert enum.missing_values(["employee"]) == ("admin", "intern")
        assert enum.missing_values(None) == ("admin", "employee", "intern")

    def test_now_default_is_sql(self):
        assert NOW.text == "now()"
