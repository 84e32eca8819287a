"""
Reconciliation steps shared by every schema module.
"""

from .binder import IndexTriggerBinder
from .bootstrap import CapabilityBootstrapper
from .columns import ColumnMigrator, ColumnOutcome
from .compat import BackwardCompatibilityPass
from .context import ReconcileContext, ReconcileReport
from .drift import SchemaDrift, detect_drift
from .guard import ConcurrencyGuard
from .invariants import (
    ColumnPresenceCheck,
    InvariantCheck,
    RenameCompletedCheck,
    TenantDiscriminatorCheck,
    Violation,
)
from .tables import TableReconciler
from .verify import verify_schema

__all__ = [
    "BackwardCompatibilityPass",
    "CapabilityBootstrapper",
    "ColumnMigrator",
    "ColumnOutcome",
    "ColumnPresenceCheck",
    "ConcurrencyGuard",
    "IndexTriggerBinder",
    "InvariantCheck",
    "ReconcileContext",
    "ReconcileReport",
    "RenameCompletedCheck",
    "SchemaDrift",
    "TableReconciler",
    "TenantDiscriminatorCheck",
    "Violation",
    "detect_drift",
    "verify_schema",
]
