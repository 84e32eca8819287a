"""
Table reconciler.

Drives one ``TableSpec`` through its steps, strictly in order:
create table -> renames -> columns (add, backfill, tighten) -> checks ->
column foreign keys -> indexes -> triggers.

Rebuilding a stale table drops it with CASCADE, so the foreign keys other
tables held on it are read first and re-added once the table is back.
"""

from __future__ import annotations

from typing import List, Optional

from ..core.errors import MissingDependency
from ..model.tables import DeferredForeignKey, TableSpec
from .binder import IndexTriggerBinder
from .columns import ColumnMigrator
from .context import ReconcileContext


class TableReconciler:
    """Brings one table to its declared shape."""

    def __init__(self, ctx: ReconcileContext):
        self.ctx = ctx
        self.columns = ColumnMigrator(ctx)
        self.binder = IndexTriggerBinder(ctx)

    @property
    def backend(self):
        return self.ctx.backend

    def ensure(self, table: TableSpec) -> bool:
        """Reconcile ``table``; returns True when this run created it."""
        self.ctx.table = table.name
        self.require_references(table)

        existed = self.backend.table_exists(table.name)
        held_by_others = []
        if existed and table.rebuild is not None:
            held_by_others = self._rebuild_if_stale(table)
            existed = held_by_others is None

        created = False
        if not existed:
            created = self.ctx.create(
                lambda: self.backend.create_table(table),
                lambda: self.backend.table_exists(table.name),
                table.name,
            )
            if created:
                self.ctx.record("table_created", table.name)
                self.ctx.observer.info("table_created", table=table.name)

        if not created:
            self.migrate_existing(table)

        for index in table.indexes:
            self.binder.ensure_index(table.name, index)
        for binding in table.all_triggers():
            self.binder.bind_trigger(table.name, binding)
        for inbound in held_by_others or ():
            self.binder.restore_foreign_key(inbound)

        self.ctx.table = None
        return created

    def require_references(self, table: TableSpec) -> None:
        """Every table referenced by a foreign key must already exist."""
        for target, columns in table.referenced_tables().items():
            if self.backend.table_exists(target):
                continue
            owner = self.ctx.owner_of(target)
            raise MissingDependency(
                f"{table.name}.{columns[0]} references {target}, which does not exist"
                + (f" (owned by module {owner})" if owner else ""),
                module=self.ctx.module,
                obj=target,
                owner=owner,
            )

    def migrate_existing(self, table: TableSpec) -> None:
        for rename in table.renames:
            self.columns.ensure_rename(table.name, rename)

        for column, rule in table.migration_plan():
            self.columns.ensure_column(table.name, column, rule)

        for check in table.checks:
            self.binder.ensure_check(table.name, check)

        for rename in table.renames:
            self.columns.copy_leftovers(table.name, rename)

        self.binder.ensure_column_foreign_keys(table)

    def _rebuild_if_stale(self, table: TableSpec) -> Optional[List[DeferredForeignKey]]:
        """Drop a stale table; returns the foreign keys other tables held on it.

        Returns None when the table is current and was kept.
        """
        live = self.backend.get_columns(table.name)
        rule = table.rebuild
        if not rule.needs_rebuild(live):
            return None
        held_by_others = self.backend.inbound_foreign_keys(table.name)
        reasons = rule.reasons(live)
        self.ctx.observer.warning(
            "table_rebuilt",
            table=table.name,
            version=rule.version,
            missing=list(reasons["missing"]),
            legacy=list(reasons["legacy"]),
        )
        self.backend.drop_table(table.name)
        self.ctx.record("table_dropped", table.name, version=rule.version, **reasons)
        return held_by_others
