"""Per-run state shared by the reconciliation steps."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..catalog.base import SchemaBackend
from ..config import Settings
from ..core.errors import SchemaError
from .guard import ConcurrencyGuard


@dataclass
class ReconcileReport:
    """Outcome of one successful (or skipped) reconciliation run."""

    database: Optional[str] = None
    modules: List[str] = field(default_factory=list)
    actions: List[Dict[str, Any]] = field(default_factory=list)
    warnings: List[SchemaError] = field(default_factory=list)
    schema_version: Optional[str] = None
    skipped: bool = False
    reason: Optional[str] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    def record(self, action: str, target: str, module: Optional[str] = None, **details: Any) -> None:
        self.actions.append({"action": action, "target": target, "module": module, **details})

    def actions_of(self, action: str) -> List[str]:
        return [a["target"] for a in self.actions if a["action"] == action]

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    @property
    def changed(self) -> bool:
        return bool(self.actions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": True,
            "database": self.database,
            "skipped": self.skipped,
            "reason": self.reason,
            "modules": list(self.modules),
            "actions": list(self.actions),
            "warnings": [w.to_dict() for w in self.warnings],
            "schema_version": self.schema_version,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": self.duration_seconds,
        }


class ReconcileContext:
    """Everything a step needs: backend, observer, guard, settings and report."""

    def __init__(
        self,
        backend: SchemaBackend,
        observer: Any,
        settings: Settings,
        report: Optional[ReconcileReport] = None,
        owners: Optional[Dict[str, str]] = None,
        guard: Optional[ConcurrencyGuard] = None,
    ):
        self.backend = backend
        self.settings = settings
        self.report = report or ReconcileReport()
        self.owners: Dict[str, str] = dict(owners or {})
        self.module: Optional[str] = None
        self.table: Optional[str] = None
        self._root_observer = observer
        self.observer = observer
        self.guard = guard or ConcurrencyGuard(
            backend,
            observer,
            attempts=settings.race_retry_attempts,
            delay=settings.race_retry_delay_seconds,
        )

    def enter_module(self, name: Optional[str]) -> None:
        self.module = name
        self.table = None
        self.observer = (
            self._root_observer.bind(module=name) if name else self._root_observer
        )
        self.guard.observer = self.observer

    def owner_of(self, table: str) -> Optional[str]:
        return self.owners.get(table)

    def record(self, action: str, target: str, **details: Any) -> None:
        self.report.record(action, target, module=self.module, **details)

    def warn(self, error: SchemaError, event: str, **fields: Any) -> None:
        """Record a non-fatal problem and report it to the observer."""
        if error.module is None:
            error.module = self.module
        seen = any(
            (w.code, w.obj, w.message) == (error.code, error.obj, error.message)
            for w in self.report.warnings
        )
        if seen:
            # Re-stated by the compatibility pass; reported once already
            self.observer.debug(event, object=error.obj, reason=error.message, repeated=True)
            return
        self.report.warnings.append(error)
        self.observer.warning(event, object=error.obj, reason=error.message, **fields)

    def create(self, action, exists, obj: str) -> bool:
        return self.guard.create(action, exists, obj, module=self.module)
