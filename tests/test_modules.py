"""Tests for the built-in schema modules."""

import pytest

from tenant_schema.modules import ModuleRegistry, default_modules
from tenant_schema.modules.misc import MiscModule
from tenant_schema.modules.views import UNIFIED_EMPLOYEES


class TestRegistry:
    def test_default_module_set(self, registry):
        assert len(registry) == 23
        assert "auth" in registry
        assert "views" in registry
        assert registry.get("system").tables[0].name == "schema_info"

    def test_duplicate_registration_is_rejected(self):
        registry = ModuleRegistry([MiscModule()])
        with pytest.raises(ValueError, match="already registered"):
            registry.register(MiscModule())

    def test_replace_requires_existing_module(self):
        registry = ModuleRegistry(default_modules())
        with pytest.raises(KeyError):
            registry.replace(type("GhostModule", (MiscModule,), {"name": "ghost"})())

    def test_critical_tables(self, registry):
        critical = set(registry.critical_tables())
        assert {"users", "profiles", "user_roles", "clients", "projects", "tasks", "gst_settings"} <= critical
        assert {"holidays", "company_events", "purchase_orders"} <= critical

    def test_table_names_are_unique(self, registry):
        names = [t.name for t in registry.tables()]
        assert len(names) == len(set(names))


class TestTriggers:
    def test_every_trigger_procedure_is_defined(self, registry):
        """A trigger may only call a shared procedure or one its module owns."""
        shared = set(registry.capabilities.function_names)
        for module in registry:
            available = shared | {f.name for f in module.functions}
            for table in module.tables:
                for binding in table.all_triggers():
                    assert binding.function in available, f"{table.name}.{binding.name}"

    def test_audited_tables(self, registry):
        audited = {t.name for t in registry.tables() if t.audited}
        assert {"users", "profiles", "assets", "workflows", "api_keys"} <= audited


class TestViews:
    def test_unified_employees_renders_for_schema(self):
        sql = UNIFIED_EMPLOYEES.render("tenant_acme")

        assert sql.startswith("CREATE OR REPLACE VIEW tenant_acme.unified_employees AS")
        assert "FROM tenant_acme.users u" in sql
        assert "{schema}" not in sql

    def test_view_requirements_are_owned_by_dependencies(self, registry):
        owners = registry.owners()
        views = registry.get("views")
        for table in UNIFIED_EMPLOYEES.requires:
            assert owners[table] in views.depends_on
