"""
Column and constraint migrator.

Shared by every module. For one column it:
1. checks the catalog and adds the column (nullable) when absent
2. runs the populate rule, if any, as a separate idempotent statement
3. tightens NOT NULL only once no NULL rows remain
4. restores a missing server default

Each step re-reads the catalog, so a crash between any two of them is
resumed on the next run.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from ..core.errors import BackfillFailure
from ..model.columns import ColumnSpec
from ..model.rules import ColumnMigrationRule, CopyFrom, RenameRule
from .context import ReconcileContext


@dataclass
class ColumnOutcome:
    added: bool = False
    tightened: bool = False
    complete: bool = True


class ColumnMigrator:
    """Applies column-level changes to existing tables."""

    def __init__(self, ctx: ReconcileContext):
        self.ctx = ctx

    @property
    def backend(self):
        return self.ctx.backend

    def ensure_column(
        self,
        table: str,
        column: ColumnSpec,
        rule: Optional[ColumnMigrationRule] = None,
    ) -> ColumnOutcome:
        """Bring ``table.column`` to its target state."""
        outcome = ColumnOutcome()
        obj = f"{table}.{column.name}"
        live = self.backend.get_columns(table)

        if column.name not in live:
            added = column.relaxed()
            if rule is not None and rule.populate is not None:
                # Pre-existing rows are filled by the rule, not by the default
                added = replace(added, default=None)
            outcome.added = self.ctx.create(
                lambda: self.backend.add_column(table, added),
                lambda: column.name in self.backend.get_columns(table),
                obj,
            )
            if outcome.added:
                self.ctx.record("column_added", obj)
                self.ctx.observer.info("column_added", table=table, column=column.name)
            live = self.backend.get_columns(table)

        if column.is_generated:
            return outcome

        if rule is not None and rule.populate is not None:
            outcome.complete = self._backfill(table, column, rule, live)

        want_not_null = column.required or bool(rule and rule.not_null)
        info = live.get(column.name)
        if want_not_null and info is not None and info.nullable:
            if outcome.complete:
                outcome.tightened = self._tighten(table, column.name)
            else:
                self.ctx.observer.info(
                    "not_null_skipped", table=table, column=column.name, reason="backfill"
                )

        if column.default is not None and info is not None and info.default is None:
            self.backend.set_default(table, column)
            self.ctx.record("default_set", obj)
            self.ctx.observer.info("default_set", table=table, column=column.name)

        return outcome

    def _backfill(self, table, column: ColumnSpec, rule: ColumnMigrationRule, live) -> bool:
        populate = rule.populate
        obj = f"{table}.{column.name}"

        missing_sources = [s for s in populate.sources if s not in live]
        if missing_sources:
            self.ctx.warn(
                BackfillFailure(
                    f"cannot run {populate.describe()}: missing source columns "
                    f"{', '.join(missing_sources)}",
                    obj=obj,
                ),
                "backfill_skipped",
                table=table,
                column=column.name,
            )
            return False

        try:
            updated = self.backend.backfill(table, column.name, populate)
        except Exception as exc:
            self.ctx.warn(
                BackfillFailure(f"{populate.describe()} failed: {exc}", obj=obj),
                "backfill_failed",
                table=table,
                column=column.name,
            )
            return False

        if updated:
            self.ctx.record("backfilled", obj, rows=updated, rule=populate.describe())
            self.ctx.observer.info(
                "backfill_applied",
                table=table,
                column=column.name,
                rows=updated,
                rule=populate.describe(),
            )

        remaining = self.backend.count_pending(table, column.name, populate)
        if remaining:
            self.ctx.warn(
                BackfillFailure(
                    f"{remaining} rows still unpopulated by {populate.describe()}", obj=obj
                ),
                "backfill_incomplete",
                table=table,
                column=column.name,
                remaining=remaining,
            )
            return False
        return True

    def _tighten(self, table: str, column: str) -> bool:
        obj = f"{table}.{column}"
        nulls = self.backend.count_nulls(table, column)
        if nulls:
            self.ctx.warn(
                BackfillFailure(f"{nulls} rows are NULL; NOT NULL not applied", obj=obj),
                "backfill_incomplete",
                table=table,
                column=column,
                remaining=nulls,
            )
            return False
        self.backend.set_not_null(table, column)
        self.ctx.record("not_null_set", obj)
        self.ctx.observer.info("column_tightened", table=table, column=column)
        return True

    def ensure_rename(self, table: str, rename: RenameRule) -> bool:
        """Rename ``old`` to ``new`` only when ``old`` exists and ``new`` does not."""
        live = self.backend.get_columns(table)
        if rename.old not in live or rename.new in live:
            return False
        obj = f"{table}.{rename.new}"
        try:
            self.backend.rename_column(table, rename.old, rename.new)
        except Exception:
            # A concurrent run may have renamed it between our check and the ALTER
            live = self.backend.get_columns(table)
            if rename.new in live and rename.old not in live:
                self.ctx.observer.debug("race_recovered", object=obj, condition="renamed")
                return False
            raise
        self.ctx.record("column_renamed", obj, old=rename.old)
        self.ctx.observer.info("column_renamed", table=table, old=rename.old, new=rename.new)
        return True

    def copy_leftovers(self, table: str, rename: RenameRule) -> int:
        """Copy values still held only by a legacy column into its replacement."""
        live = self.backend.get_columns(table)
        if rename.old not in live or rename.new not in live:
            return 0
        rule = CopyFrom(rename.old)
        pending = self.backend.count_pending(table, rename.new, rule)
        if not pending:
            return 0
        updated = self.backend.backfill(table, rename.new, rule)
        self.ctx.record("rename_completed", f"{table}.{rename.new}", rows=updated, old=rename.old)
        self.ctx.observer.info(
            "rename_completed", table=table, old=rename.old, new=rename.new, rows=updated
        )
        return updated
