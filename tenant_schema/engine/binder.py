"""
Index and trigger binder.

Indexes are created when absent. Triggers are dropped and recreated on every
run because their definitions carry no version of their own. Deferred
foreign keys and late CHECK constraints are bound here as well since they
follow the same check-then-act shape.
"""

from __future__ import annotations

from ..core.errors import DegradedStep, MissingDependency, SchemaError
from ..model.tables import CheckSpec, DeferredForeignKey, IndexSpec, TableSpec, TriggerBinding
from .context import ReconcileContext


class IndexTriggerBinder:
    """Binds indexes, triggers and constraints to existing tables."""

    def __init__(self, ctx: ReconcileContext):
        self.ctx = ctx

    @property
    def backend(self):
        return self.ctx.backend

    def ensure_index(self, table: str, index: IndexSpec) -> bool:
        if self.backend.index_exists(index.name):
            return False

        live = self.backend.get_columns(table)
        columns = index.resolve(live)
        if columns is None:
            missing = [c for c in index.plain_columns(index.columns) if c not in live]
            message = f"index {index.name} needs missing columns {', '.join(missing)}"
            if not index.degradable:
                raise MissingDependency(message, module=self.ctx.module, obj=f"{table}.{index.name}")
            self.ctx.warn(DegradedStep(message, obj=index.name), "index_skipped", table=table)
            return False

        try:
            created = self.ctx.create(
                lambda: self.backend.create_index(table, index, columns),
                lambda: self.backend.index_exists(index.name),
                index.name,
            )
        except Exception as exc:
            # Optional unique indexes fail on duplicate data; that is not a race
            if not index.optional:
                raise
            self.ctx.warn(
                DegradedStep(f"index {index.name} not created: {exc}", obj=index.name),
                "index_skipped",
                table=table,
            )
            return False
        if created:
            self.ctx.record("index_created", index.name, table=table)
            self.ctx.observer.info("index_created", table=table, index=index.name)
        return created

    def bind_trigger(self, table: str, binding: TriggerBinding) -> None:
        if not self.backend.function_exists(binding.function):
            raise MissingDependency(
                f"trigger {binding.name} needs procedure {binding.function}()",
                module=self.ctx.module,
                obj=f"{table}.{binding.name}",
                owner=self.ctx.owner_of(binding.function),
            )
        self.ctx.create(
            lambda: self.backend.bind_trigger(table, binding),
            lambda: self.backend.trigger_exists(table, binding.name),
            f"{table}.{binding.name}",
        )
        self.ctx.observer.debug("trigger_bound", table=table, trigger=binding.name)

    def ensure_check(self, table: str, check: CheckSpec) -> bool:
        """Add a CHECK constraint that is missing from an existing table.

        Existing rows may violate it; that degrades to a warning.
        """
        if self.backend.constraint_exists(table, check.name):
            return False
        try:
            created = self.ctx.create(
                lambda: self.backend.add_check(table, check),
                lambda: self.backend.constraint_exists(table, check.name),
                check.name,
            )
        except SchemaError:
            raise
        except Exception as exc:
            self.ctx.warn(
                DegradedStep(f"check {check.name} not applied: {exc}", obj=check.name),
                "check_skipped",
                table=table,
            )
            return False
        if created:
            self.ctx.record("check_added", check.name, table=table)
            self.ctx.observer.info("check_added", table=table, constraint=check.name)
        return created

    def ensure_deferred_foreign_key(self, deferred: DeferredForeignKey) -> bool:
        """Create an optional foreign key once both of its tables exist."""
        fk = deferred.foreign_key
        table = deferred.table
        if not self.backend.table_exists(table) or not self.backend.table_exists(fk.ref_table):
            absent = table if not self.backend.table_exists(table) else fk.ref_table
            self.ctx.observer.info(
                "foreign_key_deferred", constraint=fk.name, table=table, waiting_for=absent
            )
            return False
        if self.backend.constraint_exists(table, fk.name):
            return False

        live = self.backend.get_columns(table)
        missing = [c for c in fk.columns if c not in live]
        if missing:
            self.ctx.warn(
                DegradedStep(
                    f"foreign key {fk.name} needs missing columns {', '.join(missing)}",
                    obj=fk.name,
                ),
                "foreign_key_skipped",
                table=table,
            )
            return False

        try:
            created = self.ctx.create(
                lambda: self.backend.create_foreign_key(table, fk),
                lambda: self.backend.constraint_exists(table, fk.name),
                fk.name,
            )
        except SchemaError:
            raise
        except Exception as exc:
            self.ctx.warn(
                DegradedStep(f"foreign key {fk.name} not applied: {exc}", obj=fk.name),
                "foreign_key_skipped",
                table=table,
            )
            return False
        if created:
            self.ctx.record("foreign_key_created", fk.name, table=table)
            self.ctx.observer.info("foreign_key_created", table=table, constraint=fk.name)
        return created

    def restore_foreign_key(self, inbound: DeferredForeignKey) -> bool:
        """Re-add a foreign key another table held before a rebuild dropped it.

        Added NOT VALID: rows may still point at rows the rebuild discarded.
        """
        fk = inbound.foreign_key
        table = inbound.table
        if not self.backend.table_exists(table) or not self.backend.table_exists(fk.ref_table):
            return False
        if self.backend.constraint_exists(table, fk.name):
            return False
        live = self.backend.get_columns(table)
        if any(c not in live for c in fk.columns):
            return False

        try:
            created = self.ctx.create(
                lambda: self.backend.create_foreign_key(table, fk, validate=False),
                lambda: self.backend.constraint_exists(table, fk.name),
                fk.name,
            )
        except SchemaError:
            raise
        except Exception as exc:
            self.ctx.warn(
                DegradedStep(f"foreign key {fk.name} not restored: {exc}", obj=fk.name),
                "foreign_key_skipped",
                table=table,
            )
            return False
        if created:
            self.ctx.record("foreign_key_restored", fk.name, table=table, references=fk.ref_table)
            self.ctx.observer.info(
                "foreign_key_restored", table=table, constraint=fk.name, references=fk.ref_table
            )
        return created

    def ensure_column_foreign_keys(self, table: TableSpec) -> int:
        """Re-add declared column foreign keys an existing table has lost."""
        restored = 0
        for fk in table.foreign_keys():
            if fk.ref_table == table.name:
                continue
            if self.backend.has_foreign_key(table.name, fk.columns, fk.ref_table):
                continue
            if self.restore_foreign_key(DeferredForeignKey(table.name, fk)):
                restored += 1
        return restored
