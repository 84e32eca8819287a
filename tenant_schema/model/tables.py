"""Table-level metadata: tables, indexes, constraints and trigger bindings."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import sqlalchemy as sa

from .columns import ColumnSpec
from .rules import ColumnMigrationRule, RebuildRule, RenameRule

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_ORDERED_IDENTIFIER = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)\s+(ASC|DESC)$", re.IGNORECASE)

TOUCH_FUNCTION = "update_updated_at_column"
AUDIT_FUNCTION = "log_audit_change"


def index_column_name(entry: str) -> Optional[str]:
    """Return the bare column an index entry refers to, or None for expressions."""
    if _IDENTIFIER.match(entry):
        return entry
    match = _ORDERED_IDENTIFIER.match(entry)
    if match:
        return match.group(1)
    return None


@dataclass(frozen=True)
class IndexSpec:
    """A performance index.

    ``columns`` entries are plain column names, ``"col DESC"`` or arbitrary SQL
    expressions. ``alternatives`` are tried in order when a plain column of the
    preferred definition is missing from the live table.
    """

    name: str
    columns: Tuple[str, ...]
    unique: bool = False
    using: Optional[str] = None
    where: Optional[str] = None
    alternatives: Tuple[Tuple[str, ...], ...] = ()
    optional: bool = False

    @property
    def degradable(self) -> bool:
        return self.optional or bool(self.alternatives)

    def candidates(self) -> List[Tuple[str, ...]]:
        return [tuple(self.columns)] + [tuple(alt) for alt in self.alternatives]

    @staticmethod
    def plain_columns(entries: Sequence[str]) -> List[str]:
        return [name for name in map(index_column_name, entries) if name]

    def resolve(self, existing_columns) -> Optional[Tuple[str, ...]]:
        """Pick the first candidate whose plain columns all exist."""
        existing = set(existing_columns)
        for candidate in self.candidates():
            if all(name in existing for name in self.plain_columns(candidate)):
                return candidate
        return None


@dataclass(frozen=True)
class UniqueSpec:
    columns: Tuple[str, ...]
    name: Optional[str] = None

    def to_constraint(self) -> sa.UniqueConstraint:
        return sa.UniqueConstraint(*self.columns, name=self.name)


@dataclass(frozen=True)
class CheckSpec:
    name: str
    condition: str

    def to_constraint(self) -> sa.CheckConstraint:
        return sa.CheckConstraint(self.condition, name=self.name)


@dataclass(frozen=True)
class ForeignKeySpec:
    name: str
    columns: Tuple[str, ...]
    ref_table: str
    ref_columns: Tuple[str, ...] = ("id",)
    ondelete: Optional[str] = None


@dataclass(frozen=True)
class DeferredForeignKey:
    """A foreign key to a table that may not exist yet.

    It is created only once both ends exist and is retried on every run.
    """

    table: str
    foreign_key: ForeignKeySpec

    @property
    def name(self) -> str:
        return self.foreign_key.name


@dataclass(frozen=True)
class TriggerBinding:
    """Attachment of a shared procedure to a table."""

    name: str
    function: str
    timing: str = "BEFORE"
    events: Tuple[str, ...] = ("UPDATE",)
    for_each: str = "ROW"

    def statement(self, schema: str, table: str) -> str:
        events = " OR ".join(self.events)
        return (
            f"CREATE TRIGGER {self.name} {self.timing} {events} ON {schema}.{table} "
            f"FOR EACH {self.for_each} EXECUTE FUNCTION {schema}.{self.function}()"
        )


def touch_trigger(table: str) -> TriggerBinding:
    return TriggerBinding(f"update_{table}_updated_at", TOUCH_FUNCTION)


def audit_trigger(table: str) -> TriggerBinding:
    return TriggerBinding(
        f"audit_{table}_changes",
        AUDIT_FUNCTION,
        timing="AFTER",
        events=("INSERT", "UPDATE", "DELETE"),
    )


@dataclass
class TableSpec:
    """Target shape of one table."""

    name: str
    columns: List[ColumnSpec]
    unique: List[UniqueSpec] = field(default_factory=list)
    checks: List[CheckSpec] = field(default_factory=list)
    indexes: List[IndexSpec] = field(default_factory=list)
    triggers: List[TriggerBinding] = field(default_factory=list)
    audited: bool = False
    renames: List[RenameRule] = field(default_factory=list)
    migrations: List[ColumnMigrationRule] = field(default_factory=list)
    rebuild: Optional[RebuildRule] = None
    tenant_scoped: Optional[bool] = None
    critical: bool = False
    touch_updated_at: bool = True

    def __post_init__(self) -> None:
        names = [c.name for c in self.columns]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ValueError(f"{self.name}: duplicate columns {sorted(duplicates)}")
        for rule in self.migrations:
            if rule.column not in names:
                raise ValueError(
                    f"{self.name}: migration rule for undeclared column {rule.column!r}"
                )
        for rename in self.renames:
            if rename.new not in names:
                raise ValueError(
                    f"{self.name}: rename target {rename.new!r} is not a declared column"
                )
        if self.tenant_scoped is None:
            self.tenant_scoped = "agency_id" in names

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    def get_column(self, name: str) -> ColumnSpec:
        for col in self.columns:
            if col.name == name:
                return col
        raise KeyError(f"{self.name}.{name}")

    def migration_for(self, name: str) -> Optional[ColumnMigrationRule]:
        for rule in self.migrations:
            if rule.column == name:
                return rule
        return None

    def migration_plan(self) -> List[Tuple[ColumnSpec, Optional[ColumnMigrationRule]]]:
        return [(col, self.migration_for(col.name)) for col in self.columns]

    def referenced_tables(self) -> Dict[str, List[str]]:
        """Map of referenced table -> referencing columns (self references excluded)."""
        refs: Dict[str, List[str]] = {}
        for col in self.columns:
            target = col.referenced_table
            if target and target != self.name:
                refs.setdefault(target, []).append(col.name)
        return refs

    def foreign_keys(self) -> List[ForeignKeySpec]:
        """Foreign keys declared on columns, named the way CREATE TABLE names them."""
        return [
            ForeignKeySpec(
                col.foreign_key_name(self.name),
                (col.name,),
                col.referenced_table,
                (col.referenced_column,),
                col.ondelete,
            )
            for col in self.columns
            if col.references
        ]

    def all_triggers(self) -> List[TriggerBinding]:
        bindings = list(self.triggers)
        if self.touch_updated_at and "updated_at" in self.column_names:
            bindings.insert(0, touch_trigger(self.name))
        if self.audited:
            bindings.append(audit_trigger(self.name))
        return bindings

    def build_columns(self, schema: str = "public") -> List[sa.Column]:
        return [col.to_column(schema, table=self.name) for col in self.columns]

    def build_constraints(self) -> List[sa.Constraint]:
        constraints: List[sa.Constraint] = [u.to_constraint() for u in self.unique]
        constraints.extend(c.to_constraint() for c in self.checks)
        return constraints
