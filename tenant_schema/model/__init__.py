"""
Declarative schema metadata.

These types describe the target structure of a tenant database. They carry
no connection state and are shared by every reconciliation run.
"""

from .columns import (
    ColumnSpec,
    agency_column,
    column,
    created_at,
    created_by_column,
    ref,
    timestamps,
    user_ref,
    uuid_pk,
)
from .routines import Capabilities, EnumSpec, FunctionSpec, ViewSpec
from .rules import (
    Coalesce,
    ColumnMigrationRule,
    Constant,
    CopyFrom,
    Expression,
    PopulateRule,
    RebuildRule,
    RenameRule,
    WindowOrdinal,
)
from .tables import (
    CheckSpec,
    DeferredForeignKey,
    ForeignKeySpec,
    IndexSpec,
    TableSpec,
    TriggerBinding,
    UniqueSpec,
)

__all__ = [
    "Capabilities",
    "CheckSpec",
    "Coalesce",
    "ColumnMigrationRule",
    "ColumnSpec",
    "Constant",
    "CopyFrom",
    "DeferredForeignKey",
    "EnumSpec",
    "Expression",
    "ForeignKeySpec",
    "FunctionSpec",
    "IndexSpec",
    "PopulateRule",
    "RebuildRule",
    "RenameRule",
    "TableSpec",
    "TriggerBinding",
    "UniqueSpec",
    "ViewSpec",
    "WindowOrdinal",
    "agency_column",
    "column",
    "created_at",
    "created_by_column",
    "ref",
    "timestamps",
    "user_ref",
    "uuid_pk",
]
