"""
Tenant Schema

Idempotent schema reconciliation for per-tenant PostgreSQL databases.
"""

import importlib.metadata

__version__ = importlib.metadata.version("tenant-schema")

from .core.errors import ReconciliationError, SchemaError
from .core.orchestrator import SchemaOrchestrator, reconcile_schema
from .core.validator import clear_schema_cache, ensure_tenant_schema
from .engine.context import ReconcileReport
from .modules.base import SchemaModule
from .modules.registry import ModuleRegistry, default_registry

__all__ = [
    "ModuleRegistry",
    "ReconcileReport",
    "ReconciliationError",
    "SchemaError",
    "SchemaModule",
    "SchemaOrchestrator",
    "clear_schema_cache",
    "default_registry",
    "ensure_tenant_schema",
    "reconcile_schema",
]
