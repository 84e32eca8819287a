"""
Core reconciliation engine: errors, observation, ordering and orchestration.
"""

from .errors import (
    BackfillFailure,
    BenignDuplicate,
    CapabilityMissing,
    DegradedStep,
    DependencyGraphError,
    MissingDependency,
    ReconciliationError,
    SchemaError,
    StatementFailed,
    TransientRace,
    VerificationFailure,
)
from .observer import RecordingObserver, configure_logging, get_observer
from .graph import resolve_order, validate_graph
from .orchestrator import SchemaOrchestrator, reconcile_schema
from .validator import clear_schema_cache, ensure_tenant_schema

__all__ = [
    "BackfillFailure",
    "BenignDuplicate",
    "CapabilityMissing",
    "DegradedStep",
    "DependencyGraphError",
    "MissingDependency",
    "ReconciliationError",
    "RecordingObserver",
    "SchemaError",
    "SchemaOrchestrator",
    "StatementFailed",
    "TransientRace",
    "VerificationFailure",
    "clear_schema_cache",
    "configure_logging",
    "ensure_tenant_schema",
    "get_observer",
    "reconcile_schema",
    "resolve_order",
    "validate_graph",
]
