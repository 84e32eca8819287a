"""
Migration rules attached to table definitions.

Populate rules render a single idempotent UPDATE statement. Each rule also
exposes the predicate selecting rows it would still touch, so callers can
verify that a backfill completed before tightening a constraint.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

Quote = Callable[[str], str]


def _plain(name: str) -> str:
    return name


class PopulateRule(ABC):
    """Derives values for a column on rows that existed before it."""

    @property
    def sources(self) -> Tuple[str, ...]:
        """Columns the rule reads; all must exist for the backfill to run."""
        return ()

    @abstractmethod
    def pending(self, column: str, quote: Quote = _plain) -> str:
        """SQL predicate matching rows the rule has not populated yet."""

    @abstractmethod
    def statement(
        self, qualified_table: str, column: str, quote: Quote = _plain
    ) -> Tuple[str, Dict[str, Any]]:
        """Return the UPDATE statement and its bound parameters."""

    def describe(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class CopyFrom(PopulateRule):
    """Copy the value of another column on the same row."""

    source: str

    @property
    def sources(self) -> Tuple[str, ...]:
        return (self.source,)

    def pending(self, column: str, quote: Quote = _plain) -> str:
        return f"{quote(column)} IS NULL AND {quote(self.source)} IS NOT NULL"

    def statement(self, qualified_table, column, quote=_plain):
        sql = (
            f"UPDATE {qualified_table} SET {quote(column)} = {quote(self.source)} "
            f"WHERE {self.pending(column, quote)}"
        )
        return sql, {}

    def describe(self) -> str:
        return f"copy_from:{self.source}"


@dataclass(frozen=True)
class Constant(PopulateRule):
    """Assign a fixed value (for example a sentinel tenant id)."""

    value: Any

    def pending(self, column: str, quote: Quote = _plain) -> str:
        return f"{quote(column)} IS NULL"

    def statement(self, qualified_table, column, quote=_plain):
        sql = (
            f"UPDATE {qualified_table} SET {quote(column)} = :value "
            f"WHERE {self.pending(column, quote)}"
        )
        return sql, {"value": self.value}

    def describe(self) -> str:
        return f"constant:{self.value}"


@dataclass(frozen=True)
class Expression(PopulateRule):
    """Assign a SQL expression evaluated per row.

    ``depends_on`` lists the columns referenced by ``sql``.
    """

    sql: str
    depends_on: Tuple[str, ...] = ()

    @property
    def sources(self) -> Tuple[str, ...]:
        return self.depends_on

    def pending(self, column: str, quote: Quote = _plain) -> str:
        return f"{quote(column)} IS NULL"

    def statement(self, qualified_table, column, quote=_plain):
        sql = (
            f"UPDATE {qualified_table} SET {quote(column)} = ({self.sql}) "
            f"WHERE {self.pending(column, quote)}"
        )
        return sql, {}

    def describe(self) -> str:
        return f"expression:{self.sql}"


@dataclass(frozen=True)
class Coalesce(PopulateRule):
    """Take the first non-NULL of several columns, then an optional SQL fallback."""

    columns: Tuple[str, ...]
    fallback: Optional[str] = None

    @property
    def sources(self) -> Tuple[str, ...]:
        return tuple(self.columns)

    def _value(self, quote: Quote) -> str:
        parts = [quote(c) for c in self.columns]
        if self.fallback is not None:
            parts.append(self.fallback)
        return f"COALESCE({', '.join(parts)})"

    def pending(self, column: str, quote: Quote = _plain) -> str:
        if self.fallback is not None:
            return f"{quote(column)} IS NULL"
        return f"{quote(column)} IS NULL AND {self._value(quote)} IS NOT NULL"

    def statement(self, qualified_table, column, quote=_plain):
        sql = (
            f"UPDATE {qualified_table} SET {quote(column)} = {self._value(quote)} "
            f"WHERE {self.pending(column, quote)}"
        )
        return sql, {}

    def describe(self) -> str:
        return f"coalesce:{','.join(self.columns)}"


@dataclass(frozen=True)
class WindowOrdinal(PopulateRule):
    """Number rows 1..n inside each parent group.

    NULL and 0 both count as unassigned, so the statement can be re-run
    without renumbering rows that already carry an ordinal.
    """

    partition_by: str
    order_by: Tuple[str, ...] = ("created_at", "id")
    key: str = "id"

    @property
    def sources(self) -> Tuple[str, ...]:
        return (self.partition_by,) + tuple(self.order_by) + (self.key,)

    def pending(self, column: str, quote: Quote = _plain) -> str:
        return f"({quote(column)} IS NULL OR {quote(column)} = 0)"

    def statement(self, qualified_table, column, quote=_plain):
        order = ", ".join(quote(c) for c in self.order_by)
        key = quote(self.key)
        target = quote(column)
        sql = (
            f"WITH numbered AS ("
            f"SELECT {key}, ROW_NUMBER() OVER "
            f"(PARTITION BY {quote(self.partition_by)} ORDER BY {order}) AS rn "
            f"FROM {qualified_table}) "
            f"UPDATE {qualified_table} AS target SET {target} = numbered.rn "
            f"FROM numbered WHERE target.{key} = numbered.{key} "
            f"AND (target.{target} IS NULL OR target.{target} = 0)"
        )
        return sql, {}

    def describe(self) -> str:
        return f"window_ordinal:{self.partition_by}"


@dataclass(frozen=True)
class ColumnMigrationRule:
    """How a column reaches its target state on an existing table.

    ``populate`` fills rows that predate the column. ``not_null`` forces a
    NOT NULL tightening even when the column itself is declared nullable
    (None defers to the column definition).
    """

    column: str
    populate: Optional[PopulateRule] = None
    not_null: Optional[bool] = None


@dataclass(frozen=True)
class RenameRule:
    """A column that used to be called ``old`` and is now ``new``."""

    old: str
    new: str


@dataclass(frozen=True)
class RebuildRule:
    """Versioned shape check for tables that are dropped and recreated.

    A table is rebuilt when any ``required_columns`` entry is missing or any
    ``legacy_columns`` entry is present.
    """

    version: str
    required_columns: Tuple[str, ...] = ()
    legacy_columns: Tuple[str, ...] = ()

    def needs_rebuild(self, existing_columns) -> bool:
        existing = set(existing_columns)
        if any(name in existing for name in self.legacy_columns):
            return True
        return any(name not in existing for name in self.required_columns)

    def reasons(self, existing_columns) -> Dict[str, Tuple[str, ...]]:
        existing = set(existing_columns)
        return {
            "missing": tuple(c for c in self.required_columns if c not in existing),
            "legacy": tuple(c for c in self.legacy_columns if c in existing),
        }
