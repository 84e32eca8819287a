"""
Schema modules: each owns a slice of the tenant data model.
"""

from .base import SchemaModule
from .registry import ModuleRegistry, default_modules, default_registry

__all__ = [
    "ModuleRegistry",
    "SchemaModule",
    "default_modules",
    "default_registry",
]
