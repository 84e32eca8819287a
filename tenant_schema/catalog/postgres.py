"""
PostgreSQL implementation of the schema backend.

Introspection reads ``information_schema`` and ``pg_catalog``. Table and
column DDL goes through alembic ``Operations`` bound to the borrowed
connection; procedures, triggers and views are issued as raw SQL because
their bodies are opaque to SQLAlchemy.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence, Set

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy.dialects import postgresql
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.engine import Connection
from sqlalchemy.exc import DBAPIError

from ..core.errors import StatementFailed
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
    index_column_name,
)
from .base import ColumnInfo, SchemaBackend

# SQLSTATE codes that mean "someone already created this"
DUPLICATE_SQLSTATES = {
    "42P07": "duplicate_table",
    "42710": "duplicate_object",
    "42701": "duplicate_column",
    "42723": "duplicate_function",
    "42P06": "duplicate_schema",
    "23505": "unique_violation",
}

_TABLE_EXISTS = sa.text(
    """
    SELECT EXISTS (
        SELECT 1 FROM information_schema.tables
        WHERE table_schema = :schema AND table_name = :table
          AND table_type = 'BASE TABLE'
    )
    """
)

_LIST_TABLES = sa.text(
    """
    SELECT table_name FROM information_schema.tables
    WHERE table_schema = :schema AND table_type = 'BASE TABLE'
    """
)

_COLUMNS = sa.text(
    """
    SELECT column_name, data_type, is_nullable, column_default, is_generated
    FROM information_schema.columns
    WHERE table_schema = :schema AND table_name = :table
    ORDER BY ordinal_position
    """
)

_INDEX_EXISTS = sa.text(
    """
    SELECT EXISTS (
        SELECT 1 FROM pg_indexes WHERE schemaname = :schema AND indexname = :name
    )
    """
)

_TRIGGER_EXISTS = sa.text(
    """
    SELECT EXISTS (
        SELECT 1 FROM pg_trigger t
        JOIN pg_class c ON c.oid = t.tgrelid
        JOIN pg_namespace n ON n.oid = c.relnamespace
        WHERE n.nspname = :schema AND c.relname = :table
          AND t.tgname = :name AND NOT t.tgisinternal
    )
    """
)

_CONSTRAINT_EXISTS = sa.text(
    """
    SELECT EXISTS (
        SELECT 1 FROM pg_constraint con
        JOIN pg_class c ON c.oid = con.conrelid
        JOIN pg_namespace n ON n.oid = c.relnamespace
        WHERE n.nspname = :schema AND c.relname = :table AND con.conname = :name
    )
    """
)

_INBOUND_FOREIGN_KEYS = sa.text(
    """
    SELECT con.conname AS name,
           src.relname AS source_table,
           ARRAY(
               SELECT a.attname::text
               FROM unnest(con.conkey) WITH ORDINALITY AS k(attnum, ord)
               JOIN pg_attribute a ON a.attrelid = con.conrelid AND a.attnum = k.attnum
               ORDER BY k.ord
           ) AS columns,
           ARRAY(
               SELECT a.attname::text
               FROM unnest(con.confkey) WITH ORDINALITY AS k(attnum, ord)
               JOIN pg_attribute a ON a.attrelid = con.confrelid AND a.attnum = k.attnum
               ORDER BY k.ord
           ) AS ref_columns,
           con.confdeltype AS on_delete
    FROM pg_constraint con
    JOIN pg_class src ON src.oid = con.conrelid
    JOIN pg_namespace src_ns ON src_ns.oid = src.relnamespace
    JOIN pg_class dst ON dst.oid = con.confrelid
    JOIN pg_namespace n ON n.oid = dst.relnamespace
    WHERE con.contype = 'f'
      AND n.nspname = :schema AND src_ns.nspname = :schema
      AND dst.relname = :table AND con.conrelid <> con.confrelid
    ORDER BY src.relname, con.conname
    """
)

# pg_constraint.confdeltype -> ON DELETE clause; 'a' (no action) is the default
_ON_DELETE = {"r": "RESTRICT", "c": "CASCADE", "n": "SET NULL", "d": "SET DEFAULT"}

_ENUM_VALUES = sa.text(
    """
    SELECT e.enumlabel
    FROM pg_type t
    JOIN pg_namespace n ON n.oid = t.typnamespace
    LEFT JOIN pg_enum e ON e.enumtypid = t.oid
    WHERE n.nspname = :schema AND t.typname = :name
    ORDER BY e.enumsortorder
    """
)

_EXTENSION_EXISTS = sa.text(
    "SELECT EXISTS (SELECT 1 FROM pg_extension WHERE extname = :name)"
)

_FUNCTION_EXISTS = sa.text(
    """
    SELECT EXISTS (
        SELECT 1 FROM pg_proc p
        JOIN pg_namespace n ON n.oid = p.pronamespace
        WHERE n.nspname = :schema AND p.proname = :name
    )
    """
)

_VIEW_EXISTS = sa.text(
    """
    SELECT EXISTS (
        SELECT 1 FROM information_schema.views
        WHERE table_schema = :schema AND table_name = :name
    )
    """
)


class PostgresBackend(SchemaBackend):
    """Schema backend over a caller-owned SQLAlchemy connection.

    The connection is switched to AUTOCOMMIT for the duration of a run, so
    each statement stands alone and a failed statement never poisons the
    ones after it.
    """

    def __init__(
        self,
        connection: Optional[Connection],
        schema: str = "public",
        operations: Optional[Operations] = None,
    ):
        self.connection = connection
        self.schema = schema
        self._operations = operations
        self._preparer = postgresql.dialect().identifier_preparer

    @property
    def operations(self) -> Operations:
        if self._operations is None:
            self._operations = Operations(MigrationContext.configure(self.connection))
        return self._operations

    # Helpers

    def _quote(self, name: str) -> str:
        return self._preparer.quote(name)

    def _qualified(self, table: str) -> str:
        return f"{self._quote(self.schema)}.{self._quote(table)}"

    def _scalar(self, statement: sa.TextClause, **params: Any) -> Any:
        return self.connection.execute(statement, {"schema": self.schema, **params}).scalar()

    def _run_raw(self, sql: str) -> None:
        self.connection.exec_driver_sql(sql, execution_options={"no_parameters": True})

    # Introspection

    def table_exists(self, table: str) -> bool:
        return bool(self._scalar(_TABLE_EXISTS, table=table))

    def list_tables(self) -> Set[str]:
        rows = self.connection.execute(_LIST_TABLES, {"schema": self.schema})
        return {row[0] for row in rows}

    def get_columns(self, table: str) -> Dict[str, ColumnInfo]:
        rows = self.connection.execute(_COLUMNS, {"schema": self.schema, "table": table})
        return {
            row.column_name: ColumnInfo(
                name=row.column_name,
                data_type=row.data_type,
                nullable=row.is_nullable == "YES",
                default=row.column_default,
                generated=row.is_generated == "ALWAYS",
            )
            for row in rows
        }

    def index_exists(self, name: str) -> bool:
        return bool(self._scalar(_INDEX_EXISTS, name=name))

    def trigger_exists(self, table: str, name: str) -> bool:
        return bool(self._scalar(_TRIGGER_EXISTS, table=table, name=name))

    def constraint_exists(self, table: str, name: str) -> bool:
        return bool(self._scalar(_CONSTRAINT_EXISTS, table=table, name=name))

    def inbound_foreign_keys(self, table: str) -> List[DeferredForeignKey]:
        rows = self.connection.execute(
            _INBOUND_FOREIGN_KEYS, {"schema": self.schema, "table": table}
        )
        return [
            DeferredForeignKey(
                row.source_table,
                ForeignKeySpec(
                    row.name,
                    tuple(row.columns),
                    table,
                    tuple(row.ref_columns),
                    _ON_DELETE.get(row.on_delete),
                ),
            )
            for row in rows
        ]

    def enum_values(self, name: str) -> Optional[List[str]]:
        rows = self.connection.execute(
            _ENUM_VALUES, {"schema": self.schema, "name": name}
        ).all()
        if not rows:
            return None
        return [row[0] for row in rows if row[0] is not None]

    def extension_exists(self, name: str) -> bool:
        return bool(self.connection.execute(_EXTENSION_EXISTS, {"name": name}).scalar())

    def function_exists(self, name: str) -> bool:
        return bool(self._scalar(_FUNCTION_EXISTS, name=name))

    def view_exists(self, name: str) -> bool:
        return bool(self._scalar(_VIEW_EXISTS, name=name))

    def count_nulls(self, table: str, column: str) -> int:
        sql = f"SELECT COUNT(*) FROM {self._qualified(table)} WHERE {self._quote(column)} IS NULL"
        return int(self.connection.execute(sa.text(sql)).scalar() or 0)

    def count_pending(self, table: str, column: str, rule: PopulateRule) -> int:
        sql = (
            f"SELECT COUNT(*) FROM {self._qualified(table)} "
            f"WHERE {rule.pending(column, self._quote)}"
        )
        return int(self.connection.execute(sa.text(sql)).scalar() or 0)

    def get_schema_info(self, key: str) -> Optional[str]:
        if not self.table_exists("schema_info"):
            return None
        sql = f"SELECT value FROM {self._qualified('schema_info')} WHERE key = :key"
        return self.connection.execute(sa.text(sql), {"key": key}).scalar()

    # Actions

    def create_extension(self, name: str) -> None:
        self._run_raw(f'CREATE EXTENSION IF NOT EXISTS "{name}"')

    def create_enum(self, spec: EnumSpec) -> None:
        postgresql.ENUM(*spec.values, name=spec.name, schema=self.schema).create(
            self.connection, checkfirst=False
        )

    def add_enum_value(self, name: str, value: str) -> None:
        literal = value.replace("'", "''")
        self._run_raw(
            f"ALTER TYPE {self._qualified(name)} ADD VALUE IF NOT EXISTS '{literal}'"
        )

    def create_function(self, spec: FunctionSpec) -> None:
        self._run_raw(spec.render(self.schema))

    def create_table(self, table: TableSpec) -> None:
        self.operations.create_table(
            table.name,
            *table.build_columns(self.schema),
            *table.build_constraints(),
            schema=self.schema,
        )

    def drop_table(self, table: str) -> None:
        self._run_raw(f"DROP TABLE IF EXISTS {self._qualified(table)} CASCADE")

    def add_column(self, table: str, column: ColumnSpec) -> None:
        self.operations.add_column(
            table, column.to_column(self.schema, table=table), schema=self.schema
        )

    def rename_column(self, table: str, old: str, new: str) -> None:
        self.operations.alter_column(table, old, new_column_name=new, schema=self.schema)

    def set_not_null(self, table: str, column: str) -> None:
        self.operations.alter_column(table, column, nullable=False, schema=self.schema)

    def set_default(self, table: str, column: ColumnSpec) -> None:
        self.operations.alter_column(
            table, column.name, server_default=column.server_default(), schema=self.schema
        )

    def backfill(self, table: str, column: str, rule: PopulateRule) -> int:
        sql, params = rule.statement(self._qualified(table), column, self._quote)
        result = self.connection.execute(sa.text(sql), params)
        return max(result.rowcount or 0, 0)

    def create_index(self, table: str, index: IndexSpec, columns: Sequence[str]) -> None:
        elements = [
            name if index_column_name(name) == name else sa.text(name) for name in columns
        ]
        kwargs: Dict[str, Any] = {}
        if index.using:
            kwargs["postgresql_using"] = index.using
        if index.where:
            kwargs["postgresql_where"] = sa.text(index.where)
        self.operations.create_index(
            index.name, table, elements, unique=index.unique, schema=self.schema, **kwargs
        )

    def bind_trigger(self, table: str, binding: TriggerBinding) -> None:
        self._run_raw(
            f"DROP TRIGGER IF EXISTS {self._quote(binding.name)} ON {self._qualified(table)}"
        )
        self._run_raw(binding.statement(self.schema, table))

    def add_check(self, table: str, check: CheckSpec) -> None:
        self.operations.create_check_constraint(
            check.name, table, sa.text(check.condition), schema=self.schema
        )

    def create_foreign_key(
        self, table: str, foreign_key: ForeignKeySpec, validate: bool = True
    ) -> None:
        options = {} if validate else {"postgresql_not_valid": True}
        self.operations.create_foreign_key(
            foreign_key.name,
            table,
            foreign_key.ref_table,
            list(foreign_key.columns),
            list(foreign_key.ref_columns),
            ondelete=foreign_key.ondelete,
            source_schema=self.schema,
            referent_schema=self.schema,
            **options,
        )

    def create_view(self, view: ViewSpec) -> None:
        self._run_raw(view.render(self.schema))

    def set_schema_info(self, key: str, value: str) -> None:
        schema_info = sa.table(
            "schema_info",
            sa.column("key"),
            sa.column("value"),
            sa.column("updated_at"),
            schema=self.schema,
        )
        statement = pg_insert(schema_info).values(key=key, value=value, updated_at=sa.func.now())
        statement = statement.on_conflict_do_update(
            index_elements=["key"],
            set_={"value": statement.excluded.value, "updated_at": sa.func.now()},
        )
        self.connection.execute(statement)

    def seed_row(self, table: str, values: Dict[str, Any]) -> bool:
        names = list(values)
        columns = ", ".join(self._quote(n) for n in names)
        params = ", ".join(f":{n}" for n in names)
        qualified = self._qualified(table)
        sql = (
            f"INSERT INTO {qualified} ({columns}) SELECT {params} "
            f"WHERE NOT EXISTS (SELECT 1 FROM {qualified})"
        )
        result = self.connection.execute(sa.text(sql), values)
        return bool(result.rowcount)

    def seed_rows(self, table: str, rows: List[Dict[str, Any]]) -> int:
        if not rows:
            return 0
        qualified = self._qualified(table)
        populated = self.connection.execute(
            sa.text(f"SELECT EXISTS (SELECT 1 FROM {qualified})")
        ).scalar()
        if populated:
            return 0
        names = list(rows[0])
        columns = ", ".join(self._quote(n) for n in names)
        params = ", ".join(f":{n}" for n in names)
        sql = f"INSERT INTO {qualified} ({columns}) VALUES ({params}) ON CONFLICT DO NOTHING"
        self.connection.execute(sa.text(sql), rows)
        return len(rows)

    # Errors and sessions

    def duplicate_kind(self, exc: BaseException) -> Optional[str]:
        if not isinstance(exc, DBAPIError):
            return None
        orig = exc.orig
        sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
        return DUPLICATE_SQLSTATES.get(sqlstate)

    @contextmanager
    def autocommit(self) -> Iterator[None]:
        connection = self.connection
        if connection.in_transaction():
            raise StatementFailed(
                "connection has an open transaction; commit or roll back before reconciling",
                code="connection_busy",
            )
        previous = connection.get_execution_options().get("isolation_level")
        connection.execution_options(isolation_level="AUTOCOMMIT")
        try:
            yield
        finally:
            if connection.in_transaction():
                connection.commit()
            connection.execution_options(
                isolation_level=previous or connection.default_isolation_level
            )
