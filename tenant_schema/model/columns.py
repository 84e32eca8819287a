"""
Column definitions for declarative table metadata.

A ``ColumnSpec`` is an immutable description of one column. It can be turned
into a fresh ``sqlalchemy.Column`` as often as needed, which lets the same
definition drive CREATE TABLE, ALTER TABLE ADD COLUMN and drift detection.

Defaults follow SQLAlchemy ``server_default`` conventions:
- ``str`` values are literals and get quoted (``"draft"`` -> ``DEFAULT 'draft'``)
- ``bool`` and numbers are rendered as SQL literals
- ``sa.text(...)`` is emitted verbatim (``sa.text("now()")``)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, List, Optional, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from sqlalchemy.sql.elements import TextClause

# Shared type instances
UUID = postgresql.UUID(as_uuid=True)
JSONB = postgresql.JSONB()
INET = postgresql.INET()
TEXT = sa.Text()
BOOLEAN = sa.Boolean()
INTEGER = sa.Integer()
BIGINT = sa.BigInteger()
DATE = sa.Date()
TIME = sa.Time()
TIMESTAMPTZ = sa.DateTime(timezone=True)
TIMESTAMP = sa.DateTime()
TEXT_ARRAY = postgresql.ARRAY(sa.Text())

NOW = sa.text("now()")
CURRENT_DATE = sa.text("CURRENT_DATE")
UUID_V4 = sa.text("uuid_generate_v4()")
GEN_RANDOM_UUID = sa.text("gen_random_uuid()")
EMPTY_OBJECT = sa.text("'{}'::jsonb")
EMPTY_LIST = sa.text("'[]'::jsonb")
EMPTY_TEXT_ARRAY = sa.text("'{}'::text[]")

# Sentinel tenant used when backfilling a discriminator on legacy rows
SENTINEL_AGENCY_ID = "00000000-0000-0000-0000-000000000000"

DefaultValue = Union[str, bool, int, float, Decimal, TextClause, None]


def varchar(length: int) -> sa.String:
    return sa.String(length)


def numeric(precision: int = 15, scale: int = 2) -> sa.Numeric:
    return sa.Numeric(precision, scale)


MONEY = numeric(15, 2)
RATE = numeric(5, 2)


@dataclass(frozen=True)
class ColumnSpec:
    """Immutable description of a single column."""

    name: str
    type: Any
    nullable: bool = True
    default: DefaultValue = None
    primary_key: bool = False
    unique: bool = False
    references: Optional[str] = None
    ondelete: Optional[str] = None
    computed: Optional[str] = None

    @property
    def referenced_table(self) -> Optional[str]:
        if not self.references:
            return None
        return self.references.split(".", 1)[0]

    @property
    def referenced_column(self) -> Optional[str]:
        if not self.references:
            return None
        return self.references.split(".", 1)[1]

    @property
    def is_generated(self) -> bool:
        return self.computed is not None

    @property
    def required(self) -> bool:
        """True when the target shape forbids NULL values."""
        return self.primary_key or not self.nullable

    def server_default(self) -> Optional[Union[str, TextClause]]:
        value = self.default
        if value is None:
            return None
        if isinstance(value, TextClause):
            return value
        if isinstance(value, bool):
            return sa.text("true" if value else "false")
        if isinstance(value, (int, float, Decimal)):
            return sa.text(str(value))
        return value

    def literal_default(self) -> Any:
        """Python value of a constant default, or None for SQL expressions."""
        if isinstance(self.default, TextClause):
            return None
        return self.default

    def relaxed(self) -> "ColumnSpec":
        """Copy that can be added to a populated table."""
        return replace(self, nullable=True, primary_key=False)

    def column_type(self, schema: str = "public") -> Any:
        """The SQL type, with enum types qualified by ``schema``."""
        type_ = self.type
        if isinstance(type_, postgresql.ENUM) and type_.schema is None:
            return postgresql.ENUM(*type_.enums, name=type_.name, schema=schema, create_type=False)
        return type_

    def foreign_key_name(self, table: str) -> str:
        """PostgreSQL's own name for a column foreign key, cut to 63 bytes."""
        return f"{table}_{self.name}_fkey"[:63]

    def to_column(
        self,
        schema: str = "public",
        with_foreign_key: bool = True,
        table: Optional[str] = None,
    ) -> sa.Column:
        args: List[Any] = [self.name, self.column_type(schema)]
        if self.references and with_foreign_key:
            args.append(
                sa.ForeignKey(
                    f"{schema}.{self.references}",
                    name=self.foreign_key_name(table) if table else None,
                    ondelete=self.ondelete,
                )
            )
        if self.computed:
            args.append(sa.Computed(self.computed, persisted=True))

        kwargs = {
            "nullable": self.nullable and not self.primary_key,
            "primary_key": self.primary_key,
            "unique": self.unique or None,
        }
        server_default = self.server_default()
        if server_default is not None:
            kwargs["server_default"] = server_default
        return sa.Column(*args, **kwargs)


def column(
    name: str,
    type_: Any,
    nullable: bool = True,
    default: DefaultValue = None,
    **kwargs: Any,
) -> ColumnSpec:
    """Shorthand used throughout the domain modules."""
    return ColumnSpec(name=name, type=type_, nullable=nullable, default=default, **kwargs)


def uuid_pk(generator: TextClause = UUID_V4) -> ColumnSpec:
    return ColumnSpec("id", UUID, nullable=False, default=generator, primary_key=True)


def timestamps(nullable: bool = True) -> List[ColumnSpec]:
    return [
        ColumnSpec("created_at", TIMESTAMPTZ, nullable=nullable, default=NOW),
        ColumnSpec("updated_at", TIMESTAMPTZ, nullable=nullable, default=NOW),
    ]


def created_at(nullable: bool = True) -> ColumnSpec:
    return ColumnSpec("created_at", TIMESTAMPTZ, nullable=nullable, default=NOW)


def agency_column(nullable: bool = True) -> ColumnSpec:
    return ColumnSpec("agency_id", UUID, nullable=nullable)


def user_ref(
    name: str, nullable: bool = True, ondelete: Optional[str] = None
) -> ColumnSpec:
    return ColumnSpec(name, UUID, nullable=nullable, references="users.id", ondelete=ondelete)


def created_by_column() -> ColumnSpec:
    return user_ref("created_by")


def ref(
    name: str,
    references: str,
    nullable: bool = True,
    ondelete: Optional[str] = None,
    **kwargs: Any,
) -> ColumnSpec:
    """UUID column with a foreign key, e.g. ``ref("client_id", "clients.id")``."""
    return ColumnSpec(
        name, UUID, nullable=nullable, references=references, ondelete=ondelete, **kwargs
    )
