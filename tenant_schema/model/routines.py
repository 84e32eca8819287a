"""Database-level objects that are not tables: enums, procedures and views."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple


@dataclass(frozen=True)
class EnumSpec:
    """An enumerated type whose values only ever grow."""

    name: str
    values: Tuple[str, ...]

    def missing_values(self, existing) -> Tuple[str, ...]:
        present = set(existing or ())
        return tuple(v for v in self.values if v not in present)


@dataclass(frozen=True)
class FunctionSpec:
    """A stored procedure created with CREATE OR REPLACE.

    ``definition`` is a template formatted with ``schema``.
    """

    name: str
    definition: str

    def render(self, schema: str = "public") -> str:
        return self.definition.format(schema=schema).strip()


@dataclass(frozen=True)
class ViewSpec:
    """A view re-created with CREATE OR REPLACE once its tables exist."""

    name: str
    definition: str
    requires: Tuple[str, ...] = ()

    def render(self, schema: str = "public") -> str:
        body = self.definition.format(schema=schema).strip()
        return f"CREATE OR REPLACE VIEW {schema}.{self.name} AS\n{body}"


@dataclass
class Capabilities:
    """Foundational objects every module assumes exist."""

    extensions: List[str] = field(default_factory=list)
    enums: List[EnumSpec] = field(default_factory=list)
    functions: List[FunctionSpec] = field(default_factory=list)

    @property
    def function_names(self) -> List[str]:
        return [f.name for f in self.functions]
