"""
Catalog access for tenant databases.
"""

from .base import ColumnInfo, SchemaBackend
from .postgres import DUPLICATE_SQLSTATES, PostgresBackend

__all__ = [
    "ColumnInfo",
    "DUPLICATE_SQLSTATES",
    "PostgresBackend",
    "SchemaBackend",
]
