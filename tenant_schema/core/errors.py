"""
Error taxonomy for schema reconciliation.

Recovered locally (never reach the caller):
- BenignDuplicate: the object already exists
- TransientRace: a concurrent creator won; resolved by re-checking existence

Recorded as warnings (the run continues):
- BackfillFailure: a populate rule failed or left rows unpopulated

Fatal (abort the run, surfaced as a single ReconciliationError):
- MissingDependency, CapabilityMissing, VerificationFailure,
  DependencyGraphError, StatementFailed, and a TransientRace whose object
  still does not exist after the retry budget
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence


class SchemaError(Exception):
    """
    Base class for reconciliation errors.

    Attributes:
        code: Stable error code for programmatic handling
        message: Human-readable error description
        module: Schema module that was running, when known
        obj: Database object (table, column, index...) involved, when known
    """

    code = "schema_error"
    fatal = True

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        module: Optional[str] = None,
        obj: Optional[str] = None,
    ):
        if code is not None:
            self.code = code
        self.message = message
        self.module = module
        self.obj = obj
        super().__init__(f"{self.code}: {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "error": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "module": self.module,
            "object": self.obj,
        }


class BenignDuplicate(SchemaError):
    code = "benign_duplicate"
    fatal = False


class TransientRace(SchemaError):
    code = "transient_race"


class MissingDependency(SchemaError):
    """A prerequisite object is absent; names the object and its owner."""

    code = "missing_dependency"

    def __init__(self, message: str, *, owner: Optional[str] = None, **kwargs: Any):
        self.owner = owner
        super().__init__(message, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["owner"] = self.owner
        return data


class BackfillFailure(SchemaError):
    code = "backfill_failure"
    fatal = False


class CapabilityMissing(SchemaError):
    code = "capability_missing"


class VerificationFailure(SchemaError):
    """Critical objects are absent after a full run."""

    code = "verification_failure"

    def __init__(self, message: str, *, missing: Sequence[str] = (), **kwargs: Any):
        self.missing = list(missing)
        super().__init__(message, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["missing"] = self.missing
        return data


class DependencyGraphError(SchemaError):
    """Module graph is cyclic or a table references a later module."""

    code = "dependency_graph"


class StatementFailed(SchemaError):
    """A DDL statement failed for a reason other than a duplicate."""

    code = "statement_failed"


class DegradedStep(SchemaError):
    """An optional enhancement was skipped (deferred FK, optional index)."""

    code = "degraded"
    fatal = False


class ReconciliationError(SchemaError):
    """
    Aggregate raised to the caller when a run aborts.

    Attributes:
        errors: The fatal error(s) that stopped the run
        warnings: Non-fatal problems recorded before the abort
    """

    code = "reconciliation_failed"

    def __init__(
        self,
        errors: Sequence[SchemaError],
        warnings: Sequence[SchemaError] = (),
    ):
        self.errors: List[SchemaError] = list(errors)
        self.warnings: List[SchemaError] = list(warnings)
        first = self.errors[0] if self.errors else None
        message = "; ".join(str(e) for e in self.errors) or "reconciliation failed"
        super().__init__(
            message,
            module=first.module if first else None,
            obj=first.obj if first else None,
        )

    @property
    def primary(self) -> Optional[SchemaError]:
        return self.errors[0] if self.errors else None

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["errors"] = [e.to_dict() for e in self.errors]
        data["warnings"] = [w.to_dict() for w in self.warnings]
        return data
