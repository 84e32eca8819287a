"""Test configuration and fixtures."""

import os
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Set

import pytest
from sqlalchemy.sql.elements import TextClause

from tenant_schema.catalog.base import ColumnInfo, SchemaBackend
from tenant_schema.config import Settings
from tenant_schema.core.observer import RecordingObserver
from tenant_schema.core.validator import clear_schema_cache
from tenant_schema.engine.context import ReconcileContext
from tenant_schema.model.rules import (
    Coalesce,
    Constant,
    CopyFrom,
    Expression,
    PopulateRule,
    WindowOrdinal,
)
from tenant_schema.model.tables import DeferredForeignKey, ForeignKeySpec
from tenant_schema.modules.registry import default_registry


class FakeDuplicate(Exception):
    """Stands in for a driver error carrying a duplicate SQLSTATE."""

    def __init__(self, kind: str, obj: str):
        self.kind = kind
        super().__init__(f"{kind}: {obj}")


class FakeUndefinedColumn(Exception):
    """Raised for statements naming a column the table lacks, as PostgreSQL does."""


class FakeTable:
    def __init__(self, name: str):
        self.name = name
        self.columns: Dict[str, ColumnInfo] = {}
        self.rows: List[Dict[str, Any]] = []
        self.constraints: Set[str] = set()
        self.foreign_keys: Dict[str, ForeignKeySpec] = {}
        self.unvalidated: Set[str] = set()
        self.triggers: Set[str] = set()


def _default_value(default: Any) -> Any:
    if isinstance(default, TextClause):
        return default.text
    return default


def _default_text(default: Any) -> Optional[str]:
    if default is None:
        return None
    if isinstance(default, TextClause):
        return default.text
    return repr(default)


class FakeBackend(SchemaBackend):
    """In-memory catalog that honours the SchemaBackend contract.

    ``races`` holds object names whose next creation is performed by a
    simulated concurrent process: the object appears, and this process gets
    a duplicate error. ``phantom_races`` raise the duplicate error without
    the object ever appearing. ``failures`` maps object names to exceptions
    raised instead of creating them.
    """

    schema = "public"

    def __init__(self):
        self.tables: Dict[str, FakeTable] = {}
        self.indexes: Dict[str, str] = {}
        self.extensions: Set[str] = set()
        self.enums: Dict[str, List[str]] = {}
        self.functions: Set[str] = set()
        self.views: Set[str] = set()
        self.schema_info: Dict[str, str] = {}
        self.races: Set[str] = set()
        self.phantom_races: Set[str] = set()
        self.failures: Dict[str, Exception] = {}
        self.expressions: Dict[str, Callable[[Dict[str, Any]], Any]] = {}
        self.statements: List[tuple] = []
        self.autocommit_entered = 0

    # Test helpers

    def make_table(self, name: str, columns: Dict[str, bool], rows: Sequence[Dict[str, Any]] = ()):
        """Create a table in a legacy shape: ``columns`` maps name -> nullable."""
        table = FakeTable(name)
        for column, nullable in columns.items():
            table.columns[column] = ColumnInfo(column, "text", nullable)
        self.tables[name] = table
        for row in rows:
            self.insert(name, **row)
        return table

    def insert(self, table: str, **values: Any) -> Dict[str, Any]:
        live = self.tables[table]
        row = {name: values.get(name) for name in live.columns}
        live.rows.append(row)
        return row

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables[table].rows

    def _act(self, obj: str, kind: str, create: Callable[[], None]) -> None:
        self.statements.append((kind, obj))
        if obj in self.failures:
            raise self.failures.pop(obj)
        if obj in self.phantom_races:
            raise FakeDuplicate(kind, obj)
        create()
        if obj in self.races:
            self.races.discard(obj)
            raise FakeDuplicate(kind, obj)

    # Introspection

    def table_exists(self, table: str) -> bool:
        return table in self.tables

    def list_tables(self) -> Set[str]:
        return set(self.tables)

    def get_columns(self, table: str) -> Dict[str, ColumnInfo]:
        if table not in self.tables:
            return {}
        return dict(self.tables[table].columns)

    def index_exists(self, name: str) -> bool:
        return name in self.indexes

    def trigger_exists(self, table: str, name: str) -> bool:
        return table in self.tables and name in self.tables[table].triggers

    def constraint_exists(self, table: str, name: str) -> bool:
        return table in self.tables and name in self.tables[table].constraints

    def inbound_foreign_keys(self, table: str) -> List[DeferredForeignKey]:
        return [
            DeferredForeignKey(source, fk)
            for source, live in sorted(self.tables.items())
            if source != table
            for fk in live.foreign_keys.values()
            if fk.ref_table == table
        ]

    def enum_values(self, name: str) -> Optional[List[str]]:
        values = self.enums.get(name)
        return list(values) if values is not None else None

    def extension_exists(self, name: str) -> bool:
        return name in self.extensions

    def function_exists(self, name: str) -> bool:
        return name in self.functions

    def view_exists(self, name: str) -> bool:
        return name in self.views

    def _require_columns(self, table: str, *columns: str) -> None:
        live = self.tables[table].columns
        for name in columns:
            if name not in live:
                raise FakeUndefinedColumn(f"column \"{name}\" of relation \"{table}\" does not exist")

    def count_nulls(self, table: str, column: str) -> int:
        self._require_columns(table, column)
        return sum(1 for row in self.rows(table) if row.get(column) is None)

    def count_pending(self, table: str, column: str, rule: PopulateRule) -> int:
        self._require_columns(table, column, *rule.sources)
        return sum(1 for row in self.rows(table) if self._pending(row, column, rule))

    def get_schema_info(self, key: str) -> Optional[str]:
        return self.schema_info.get(key)

    # Actions

    def create_extension(self, name: str) -> None:
        self._act(name, "duplicate_object", lambda: self.extensions.add(name))

    def create_enum(self, spec) -> None:
        self._act(spec.name, "duplicate_object", lambda: self.enums.__setitem__(spec.name, list(spec.values)))

    def add_enum_value(self, name: str, value: str) -> None:
        obj = f"{name}.{value}"
        self.statements.append(("add_enum_value", obj))
        if obj in self.failures:
            raise self.failures.pop(obj)
        if value not in self.enums[name]:
            self.enums[name].append(value)

    def create_function(self, spec) -> None:
        self._act(spec.name, "duplicate_function", lambda: self.functions.add(spec.name))

    def create_table(self, table) -> None:
        def create():
            fake = FakeTable(table.name)
            for col in table.columns:
                fake.columns[col.name] = ColumnInfo(
                    col.name,
                    type(col.type).__name__.lower(),
                    col.nullable and not col.primary_key,
                    _default_text(col.default),
                    col.is_generated,
                )
            for fk in table.foreign_keys():
                fake.constraints.add(fk.name)
                fake.foreign_keys[fk.name] = fk
            for unique in table.unique:
                fake.constraints.add(unique.name or f"{table.name}_{'_'.join(unique.columns)}_key")
            for check in table.checks:
                fake.constraints.add(check.name)
            self.tables[table.name] = fake

        self._act(table.name, "duplicate_table", create)

    def drop_table(self, table: str) -> None:
        self.statements.append(("drop_table", table))
        self.tables.pop(table, None)
        # CASCADE takes the foreign keys other tables hold on it
        for other in self.tables.values():
            for name, fk in list(other.foreign_keys.items()):
                if fk.ref_table == table:
                    del other.foreign_keys[name]
                    other.constraints.discard(name)
        for name in [n for n, owner in self.indexes.items() if owner == table]:
            del self.indexes[name]

    def add_column(self, table: str, column) -> None:
        def create():
            live = self.tables[table]
            live.columns[column.name] = ColumnInfo(
                column.name,
                type(column.type).__name__.lower(),
                column.nullable,
                _default_text(column.default),
                column.is_generated,
            )
            for row in live.rows:
                row[column.name] = _default_value(column.default)
            if column.references:
                fk = ForeignKeySpec(
                    column.foreign_key_name(table),
                    (column.name,),
                    column.referenced_table,
                    (column.referenced_column,),
                    column.ondelete,
                )
                live.constraints.add(fk.name)
                live.foreign_keys[fk.name] = fk

        self._act(f"{table}.{column.name}", "duplicate_column", create)

    def rename_column(self, table: str, old: str, new: str) -> None:
        self.statements.append(("rename_column", f"{table}.{old}"))
        live = self.tables[table]
        info = live.columns.pop(old)
        live.columns[new] = replace(info, name=new)
        for row in live.rows:
            row[new] = row.pop(old)

    def set_not_null(self, table: str, column: str) -> None:
        self.statements.append(("set_not_null", f"{table}.{column}"))
        live = self.tables[table]
        live.columns[column] = replace(live.columns[column], nullable=False)

    def set_default(self, table: str, column) -> None:
        self.statements.append(("set_default", f"{table}.{column.name}"))
        live = self.tables[table]
        live.columns[column.name] = replace(
            live.columns[column.name], default=_default_text(column.default)
        )

    def backfill(self, table: str, column: str, rule: PopulateRule) -> int:
        obj = f"{table}.{column}"
        self.statements.append(("backfill", obj))
        if f"backfill:{obj}" in self.failures:
            raise self.failures.pop(f"backfill:{obj}")
        self._require_columns(table, column, *rule.sources)
        rows = self.rows(table)
        if isinstance(rule, WindowOrdinal):
            return self._number(rows, column, rule)
        updated = 0
        for row in rows:
            if not self._pending(row, column, rule):
                continue
            value = self._value(row, rule)
            if value is None:
                continue
            row[column] = value
            updated += 1
        return updated

    def create_index(self, table: str, index, columns) -> None:
        self._act(index.name, "duplicate_table", lambda: self.indexes.__setitem__(index.name, table))

    def bind_trigger(self, table: str, binding) -> None:
        obj = f"{table}.{binding.name}"
        self.statements.append(("bind_trigger", obj))
        if obj in self.failures:
            raise self.failures.pop(obj)
        self.tables[table].triggers.add(binding.name)

    def add_check(self, table: str, check) -> None:
        self._act(check.name, "duplicate_object", lambda: self.tables[table].constraints.add(check.name))

    def create_foreign_key(self, table: str, foreign_key, validate: bool = True) -> None:
        def create():
            live = self.tables[table]
            live.constraints.add(foreign_key.name)
            live.foreign_keys[foreign_key.name] = foreign_key
            if not validate:
                live.unvalidated.add(foreign_key.name)

        self._act(foreign_key.name, "duplicate_object", create)

    def create_view(self, view) -> None:
        self._act(view.name, "duplicate_table", lambda: self.views.add(view.name))

    def set_schema_info(self, key: str, value: str) -> None:
        self.statements.append(("set_schema_info", key))
        self.schema_info[key] = value

    def seed_row(self, table: str, values: Dict[str, object]) -> bool:
        if self.rows(table):
            return False
        self.insert(table, **values)
        return True

    def seed_rows(self, table: str, rows: List[Dict[str, object]]) -> int:
        if not rows or self.rows(table):
            return 0
        for row in rows:
            self.insert(table, **row)
        return len(rows)

    def duplicate_kind(self, exc: BaseException) -> Optional[str]:
        if isinstance(exc, FakeDuplicate):
            return exc.kind
        return None

    @contextmanager
    def autocommit(self) -> Iterator[None]:
        self.autocommit_entered += 1
        yield

    # Populate rule evaluation

    def _pending(self, row: Dict[str, Any], column: str, rule: PopulateRule) -> bool:
        current = row.get(column)
        if isinstance(rule, WindowOrdinal):
            return current is None or current == 0
        if current is not None:
            return False
        if isinstance(rule, CopyFrom):
            return row.get(rule.source) is not None
        if isinstance(rule, Coalesce) and rule.fallback is None:
            return any(row.get(c) is not None for c in rule.columns)
        return True

    def _value(self, row: Dict[str, Any], rule: PopulateRule) -> Any:
        if isinstance(rule, CopyFrom):
            return row.get(rule.source)
        if isinstance(rule, Constant):
            return rule.value
        if isinstance(rule, Coalesce):
            for name in rule.columns:
                if row.get(name) is not None:
                    return row[name]
            return rule.fallback
        if isinstance(rule, Expression):
            evaluate = self.expressions.get(rule.sql)
            return evaluate(row) if evaluate else None
        return None

    def _number(self, rows: List[Dict[str, Any]], column: str, rule: WindowOrdinal) -> int:
        groups: Dict[Any, List[Dict[str, Any]]] = {}
        for row in rows:
            groups.setdefault(row.get(rule.partition_by), []).append(row)
        updated = 0
        for members in groups.values():
            members.sort(key=lambda r: tuple(str(r.get(c)) for c in rule.order_by))
            for position, row in enumerate(members, start=1):
                if row.get(column) in (None, 0):
                    row[column] = position
                    updated += 1
        return updated


@pytest.fixture
def backend() -> FakeBackend:
    """Create an empty in-memory tenant database."""
    return FakeBackend()


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def settings() -> Settings:
    """Settings that never sleep between race re-checks."""
    return Settings(
        race_retry_attempts=3,
        race_retry_delay_seconds=0,
        schema_version="1.0.0",
        disable_schema_checks=False,
    )


@pytest.fixture
def ctx(backend, observer, settings) -> ReconcileContext:
    """A reconciliation context bound to the fake backend."""
    context = ReconcileContext(backend, observer, settings, owners=default_registry().owners())
    context.enter_module("test")
    return context


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture(autouse=True)
def _reset_schema_cache():
    clear_schema_cache()
    yield
    clear_schema_cache()


@pytest.fixture
def live_database_url() -> str:
    """URL of a disposable PostgreSQL database, or skip."""
    url = os.getenv("TEST_DATABASE_URL")
    if not url:
        pytest.skip("TEST_DATABASE_URL is not set")
    return url
