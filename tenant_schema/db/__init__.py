"""
Database connection helpers for callers of the engine.
"""

from .base import (
    dispose_engines,
    get_database_url,
    get_engine,
    tenant_connection,
    tenant_database_url,
)

__all__ = [
    "dispose_engines",
    "get_database_url",
    "get_engine",
    "tenant_connection",
    "tenant_database_url",
]
