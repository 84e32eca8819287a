"""
Catalog introspection and DDL capability required by the engine.

The engine never issues SQL directly; it asks a ``SchemaBackend`` whether an
object exists and tells it to create one. ``PostgresBackend`` is the
production implementation; tests provide an in-memory one.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Set

from ..model.columns import ColumnSpec
from ..model.routines import EnumSpec, FunctionSpec, ViewSpec
from ..model.rules import PopulateRule
from ..model.tables import (
    CheckSpec,
    DeferredForeignKey,
    ForeignKeySpec,
    IndexSpec,
    TableSpec,
    TriggerBinding,
)


@dataclass(frozen=True)
class ColumnInfo:
    """Live column metadata as reported by the catalog."""

    name: str
    data_type: str
    nullable: bool
    default: Optional[str] = None
    generated: bool = False


class SchemaBackend(ABC):
    """Abstract catalog + DDL surface for one tenant database."""

    schema: str = "public"

    # Introspection

    @abstractmethod
    def table_exists(self, table: str) -> bool:
        """True when a base table of this name exists."""

    @abstractmethod
    def list_tables(self) -> Set[str]:
        """Names of all base tables in the schema."""

    @abstractmethod
    def get_columns(self, table: str) -> Dict[str, ColumnInfo]:
        """Live columns of ``table`` keyed by name (empty if the table is absent)."""

    @abstractmethod
    def index_exists(self, name: str) -> bool:
        pass

    @abstractmethod
    def trigger_exists(self, table: str, name: str) -> bool:
        pass

    @abstractmethod
    def constraint_exists(self, table: str, name: str) -> bool:
        pass

    @abstractmethod
    def inbound_foreign_keys(self, table: str) -> List[DeferredForeignKey]:
        """Foreign keys other tables hold on ``table``, as they are declared now."""

    def has_foreign_key(self, table: str, columns: Sequence[str], ref_table: str) -> bool:
        """True when ``table`` holds any foreign key on ``columns`` to ``ref_table``."""
        return any(
            held.table == table and held.foreign_key.columns == tuple(columns)
            for held in self.inbound_foreign_keys(ref_table)
        )

    @abstractmethod
    def enum_values(self, name: str) -> Optional[List[str]]:
        """Values of an enum type, or None when the type does not exist."""

    @abstractmethod
    def extension_exists(self, name: str) -> bool:
        pass

    @abstractmethod
    def function_exists(self, name: str) -> bool:
        pass

    @abstractmethod
    def view_exists(self, name: str) -> bool:
        pass

    @abstractmethod
    def count_nulls(self, table: str, column: str) -> int:
        pass

    @abstractmethod
    def count_pending(self, table: str, column: str, rule: PopulateRule) -> int:
        """Rows a populate rule would still update."""

    @abstractmethod
    def get_schema_info(self, key: str) -> Optional[str]:
        pass

    # Actions

    @abstractmethod
    def create_extension(self, name: str) -> None:
        pass

    @abstractmethod
    def create_enum(self, spec: EnumSpec) -> None:
        pass

    @abstractmethod
    def add_enum_value(self, name: str, value: str) -> None:
        """Append one value; must run outside any multi-statement transaction."""

    @abstractmethod
    def create_function(self, spec: FunctionSpec) -> None:
        pass

    @abstractmethod
    def create_table(self, table: TableSpec) -> None:
        pass

    @abstractmethod
    def drop_table(self, table: str) -> None:
        pass

    @abstractmethod
    def add_column(self, table: str, column: ColumnSpec) -> None:
        pass

    @abstractmethod
    def rename_column(self, table: str, old: str, new: str) -> None:
        pass

    @abstractmethod
    def set_not_null(self, table: str, column: str) -> None:
        pass

    @abstractmethod
    def set_default(self, table: str, column: ColumnSpec) -> None:
        pass

    @abstractmethod
    def backfill(self, table: str, column: str, rule: PopulateRule) -> int:
        """Run a populate rule; returns the number of rows updated."""

    @abstractmethod
    def create_index(self, table: str, index: IndexSpec, columns: Sequence[str]) -> None:
        pass

    @abstractmethod
    def bind_trigger(self, table: str, binding: TriggerBinding) -> None:
        """Drop the trigger if present, then create it."""

    @abstractmethod
    def add_check(self, table: str, check: CheckSpec) -> None:
        pass

    @abstractmethod
    def create_foreign_key(
        self, table: str, foreign_key: ForeignKeySpec, validate: bool = True
    ) -> None:
        """Add ``foreign_key``; with ``validate=False`` existing rows are not checked."""

    @abstractmethod
    def create_view(self, view: ViewSpec) -> None:
        pass

    @abstractmethod
    def set_schema_info(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def seed_row(self, table: str, values: Dict[str, object]) -> bool:
        """Insert ``values`` only when ``table`` has no rows; True if inserted."""

    @abstractmethod
    def seed_rows(self, table: str, rows: List[Dict[str, object]]) -> int:
        """Insert reference ``rows`` into an empty ``table``; number inserted."""

    # Error classification and session handling

    @abstractmethod
    def duplicate_kind(self, exc: BaseException) -> Optional[str]:
        """Name of the duplicate condition ``exc`` represents, or None."""

    @contextmanager
    def autocommit(self) -> Iterator[None]:
        """Scope in which every statement commits on its own."""
        yield
