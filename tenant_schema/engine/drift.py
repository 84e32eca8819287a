"""
Read-only comparison of a live database with the registry.

``detect_drift`` issues no DDL. A database that was just reconciled should
report no drift; anything listed is work the next run would do.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

from ..catalog.base import SchemaBackend


@dataclass
class SchemaDrift:
    missing_extensions: List[str] = field(default_factory=list)
    missing_enum_values: List[str] = field(default_factory=list)
    missing_functions: List[str] = field(default_factory=list)
    missing_tables: List[str] = field(default_factory=list)
    missing_columns: List[str] = field(default_factory=list)
    nullable_columns: List[str] = field(default_factory=list)
    missing_indexes: List[str] = field(default_factory=list)
    missing_triggers: List[str] = field(default_factory=list)
    missing_foreign_keys: List[str] = field(default_factory=list)
    missing_views: List[str] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not any(asdict(self).values())

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["is_clean"] = self.is_clean
        return data


def detect_drift(backend: SchemaBackend, registry: Any) -> SchemaDrift:
    drift = SchemaDrift()
    capabilities = registry.capabilities

    for name in capabilities.extensions:
        if not backend.extension_exists(name):
            drift.missing_extensions.append(name)
    for enum in capabilities.enums:
        values = backend.enum_values(enum.name)
        drift.missing_enum_values.extend(
            f"{enum.name}.{v}" for v in enum.missing_values(values or ())
        )

    functions = list(capabilities.functions)
    for module in registry:
        functions.extend(module.functions)
    for function in functions:
        if not backend.function_exists(function.name):
            drift.missing_functions.append(function.name)

    live_tables = backend.list_tables()
    for table in registry.tables():
        if table.name not in live_tables:
            drift.missing_tables.append(table.name)
            continue
        live = backend.get_columns(table.name)
        for col in table.columns:
            info = live.get(col.name)
            if info is None:
                drift.missing_columns.append(f"{table.name}.{col.name}")
            elif col.required and info.nullable and not col.is_generated:
                drift.nullable_columns.append(f"{table.name}.{col.name}")
        for index in table.indexes:
            if backend.index_exists(index.name):
                continue
            # Degradable indexes without their columns are not drift
            if index.resolve(live) is None and index.degradable:
                continue
            drift.missing_indexes.append(index.name)
        for binding in table.all_triggers():
            if not backend.trigger_exists(table.name, binding.name):
                drift.missing_triggers.append(f"{table.name}.{binding.name}")
        for fk in table.foreign_keys():
            if fk.ref_table == table.name or fk.ref_table not in live_tables:
                continue
            if fk.columns[0] not in live:
                continue
            if not backend.has_foreign_key(table.name, fk.columns, fk.ref_table):
                drift.missing_foreign_keys.append(fk.name)

    for module in registry:
        for deferred in module.deferred_foreign_keys:
            fk = deferred.foreign_key
            if deferred.table in live_tables and fk.ref_table in live_tables:
                if not backend.constraint_exists(deferred.table, fk.name):
                    drift.missing_foreign_keys.append(fk.name)
        for view in module.views:
            if not backend.view_exists(view.name):
                drift.missing_views.append(view.name)

    return drift
