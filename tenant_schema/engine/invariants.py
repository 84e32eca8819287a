"""
Reusable invariant checks.

An invariant is a property of the live schema that may have been introduced
by a release newer than the table it applies to. The same check object is
run inside the owning module and again by the backward-compatibility pass.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from ..model.rules import CopyFrom, RenameRule
from ..model.tables import TableSpec
from .columns import ColumnMigrator
from .context import ReconcileContext


@dataclass(frozen=True)
class Violation:
    check: str
    table: str
    column: Optional[str]
    detail: str


def column_problem(ctx: ReconcileContext, table: TableSpec, column: str) -> Optional[str]:
    """Describe why ``table.column`` has not converged, or None if it has."""
    live = ctx.backend.get_columns(table.name)
    info = live.get(column)
    if info is None:
        return "missing"
    spec = table.get_column(column)
    if spec.is_generated:
        return None
    rule = table.migration_for(column)
    if rule is not None and rule.populate is not None:
        if all(src in live for src in rule.populate.sources):
            if ctx.backend.count_pending(table.name, column, rule.populate):
                return "unpopulated"
    want_not_null = spec.required or bool(rule and rule.not_null)
    if want_not_null and info.nullable and not ctx.backend.count_nulls(table.name, column):
        return "nullable"
    return None


class InvariantCheck(ABC):
    """A cross-cutting property with a check step and a repair step."""

    name = "invariant"

    @property
    def key(self) -> Tuple:
        """Identity used to run each check once per pass."""
        return (self.name,)

    @abstractmethod
    def check(self, ctx: ReconcileContext) -> List[Violation]:
        """Violations present in the live schema; must not modify anything."""

    @abstractmethod
    def repair(self, ctx: ReconcileContext, violation: Violation) -> None:
        pass

    def enforce(self, ctx: ReconcileContext) -> List[Violation]:
        violations = self.check(ctx)
        for violation in violations:
            ctx.observer.info(
                "invariant_violation",
                check=violation.check,
                table=violation.table,
                column=violation.column,
                detail=violation.detail,
            )
            self.repair(ctx, violation)
        return violations


class _ColumnInvariant(InvariantCheck):
    """Shared repair: re-run the column migrator for the offending column."""

    def __init__(self, tables: Iterable[TableSpec]):
        self.tables = {t.name: t for t in tables}

    def _column_violations(self, ctx, pairs) -> List[Violation]:
        found = []
        for table, column in pairs:
            if not ctx.backend.table_exists(table.name):
                continue
            problem = column_problem(ctx, table, column)
            if problem:
                found.append(Violation(self.name, table.name, column, problem))
        return found

    def repair(self, ctx: ReconcileContext, violation: Violation) -> None:
        table = self.tables[violation.table]
        ColumnMigrator(ctx).ensure_column(
            table.name,
            table.get_column(violation.column),
            table.migration_for(violation.column),
        )


class TenantDiscriminatorCheck(_ColumnInvariant):
    """Every tenant-scoped table carries a populated ``agency_id``."""

    name = "tenant_discriminator"
    column = "agency_id"

    def __init__(self, tables: Iterable[TableSpec]):
        super().__init__(t for t in tables if t.tenant_scoped)

    @property
    def key(self) -> Tuple:
        return (self.name, tuple(sorted(self.tables)))

    def check(self, ctx: ReconcileContext) -> List[Violation]:
        return self._column_violations(
            ctx, [(t, self.column) for t in self.tables.values()]
        )


class ColumnPresenceCheck(_ColumnInvariant):
    """Columns added by a later release exist and are backfilled."""

    name = "column_presence"

    def __init__(self, table: TableSpec, columns: Iterable[str]):
        super().__init__([table])
        self.table = table
        self.columns = tuple(columns)
        for name in self.columns:
            table.get_column(name)

    @property
    def key(self) -> Tuple:
        return (self.name, self.table.name, self.columns)

    def check(self, ctx: ReconcileContext) -> List[Violation]:
        return self._column_violations(ctx, [(self.table, c) for c in self.columns])


class RenameCompletedCheck(InvariantCheck):
    """A renamed column holds every value its legacy name still carries."""

    name = "rename_completed"

    def __init__(self, table: str, rename: RenameRule):
        self.table = table
        self.rename = rename

    @property
    def key(self) -> Tuple:
        return (self.name, self.table, self.rename.old, self.rename.new)

    def check(self, ctx: ReconcileContext) -> List[Violation]:
        live = ctx.backend.get_columns(self.table)
        old, new = self.rename.old, self.rename.new
        if old not in live:
            return []
        if new not in live:
            return [Violation(self.name, self.table, new, f"still named {old}")]
        leftover = ctx.backend.count_pending(self.table, new, CopyFrom(old))
        if leftover:
            return [Violation(self.name, self.table, new, f"{leftover} values only in {old}")]
        return []

    def repair(self, ctx: ReconcileContext, violation: Violation) -> None:
        migrator = ColumnMigrator(ctx)
        migrator.ensure_rename(self.table, self.rename)
        migrator.copy_leftovers(self.table, self.rename)
