"""
Core orchestration engine for tenant schema reconciliation.

This module drives one reconciliation run against one tenant database:
graph validation, capability bootstrap, every schema module in dependency
order, the backward-compatibility pass, verification, and finally the
schema version stamp.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..catalog.base import SchemaBackend
from ..catalog.postgres import PostgresBackend
from ..config import Settings, get_settings
from ..engine.bootstrap import CapabilityBootstrapper
from ..engine.compat import BackwardCompatibilityPass
from ..engine.context import ReconcileContext, ReconcileReport
from ..engine.verify import verify_schema
from .errors import ReconciliationError, SchemaError, StatementFailed
from .graph import table_owners, validate_graph
from .observer import get_observer

SCHEMA_VERSION_KEY = "schema_version"


class SchemaOrchestrator:
    """
    Runs every registered schema module against one database.

    The Orchestrator manages:
    - Dependency ordering of modules (validated before anything executes)
    - Capability bootstrap ahead of the first module
    - The backward-compatibility pass and critical-object verification
    - Aggregation of fatal errors into a single ReconciliationError
    """

    def __init__(
        self,
        registry: Any,
        observer: Any = None,
        settings: Optional[Settings] = None,
    ):
        self.registry = registry
        self.observer = observer if observer is not None else get_observer()
        self.settings = settings or get_settings()
        self.last_report: Optional[ReconcileReport] = None
        self.runs = 0

    def register_module(self, module: Any) -> None:
        """Register an additional schema module."""
        self.registry.register(module)
        self.observer.debug("module_registered", module=module.name)

    def plan(self) -> List[str]:
        """Module names in the order a run would execute them."""
        return [m.name for m in validate_graph(list(self.registry))]

    def run(self, backend: SchemaBackend, database: Optional[str] = None) -> ReconcileReport:
        """Reconcile ``backend``'s database with the registry.

        Returns a report on success. Any fatal error aborts the run and is
        raised as ReconciliationError carrying the warnings recorded so far.
        """
        self.runs += 1
        report = ReconcileReport(database=database)
        ctx = ReconcileContext(
            backend,
            self.observer.bind(database=database) if database else self.observer,
            self.settings,
            report=report,
        )
        ctx.observer.info("reconcile_started", modules=len(self.registry))

        try:
            with backend.autocommit():
                self._run(ctx)
        except SchemaError as exc:
            if exc.module is None:
                exc.module = ctx.module
            raise self._abort(ctx, exc) from exc
        except Exception as exc:
            error = StatementFailed(str(exc), module=ctx.module, obj=ctx.table)
            raise self._abort(ctx, error) from exc

        report.finished_at = datetime.now(timezone.utc)
        self.last_report = report
        ctx.enter_module(None)
        ctx.observer.info(
            "reconcile_finished",
            actions=len(report.actions),
            warnings=len(report.warnings),
            duration_seconds=report.duration_seconds,
        )
        return report

    def _run(self, ctx: ReconcileContext) -> None:
        modules = validate_graph(list(self.registry))
        ctx.owners = table_owners(modules)

        ctx.enter_module("bootstrap")
        CapabilityBootstrapper(ctx).run(self.registry.capabilities)

        for module in modules:
            ctx.enter_module(module.name)
            ctx.observer.info("module_started", depends_on=list(module.depends_on))
            module.ensure(ctx)
            ctx.report.modules.append(module.name)
            ctx.observer.info("module_finished")

        BackwardCompatibilityPass(self.registry).run(ctx)

        ctx.enter_module("verification")
        verify_schema(
            ctx,
            self.registry.critical_tables(),
            self.registry.capabilities.function_names,
        )

        self._stamp_version(ctx)

    def _stamp_version(self, ctx: ReconcileContext) -> None:
        version = self.settings.schema_version
        ctx.report.schema_version = version
        if not ctx.backend.table_exists("schema_info"):
            return
        if ctx.backend.get_schema_info(SCHEMA_VERSION_KEY) == version:
            return
        ctx.backend.set_schema_info(SCHEMA_VERSION_KEY, version)
        ctx.record("schema_version_set", SCHEMA_VERSION_KEY, version=version)
        ctx.observer.info("schema_version_set", version=version)

    def _abort(self, ctx: ReconcileContext, error: SchemaError) -> ReconciliationError:
        ctx.report.finished_at = datetime.now(timezone.utc)
        self.last_report = ctx.report
        ctx.observer.error(
            "reconcile_failed",
            error=type(error).__name__,
            code=error.code,
            failed_module=error.module,
            object=error.obj,
            reason=error.message,
        )
        return ReconciliationError([error], ctx.report.warnings)

    def get_status(self) -> Dict[str, Any]:
        """Get the current status of the orchestrator."""
        report = self.last_report
        return {
            "modules": [m.name for m in self.registry],
            "runs": self.runs,
            "last_run": report.to_dict() if report else None,
            "schema_version": self.settings.schema_version,
        }


def reconcile_schema(
    connection: Any,
    *,
    modules: Any = None,
    observer: Any = None,
    settings: Optional[Settings] = None,
) -> ReconcileReport:
    """
    Bring the database behind ``connection`` to the target structure.

    The connection is borrowed for the duration of the call; the caller
    opens and closes it. Safe to call on every startup.

    Raises:
        ReconciliationError: if the run aborted on a fatal error
    """
    from ..modules.registry import ModuleRegistry, default_registry

    settings = settings or get_settings()
    if modules is None:
        registry = default_registry()
    elif isinstance(modules, ModuleRegistry):
        registry = modules
    else:
        registry = ModuleRegistry(modules)

    backend = PostgresBackend(connection, schema=settings.tenant_schema_name)
    database = None
    if hasattr(connection, "engine"):
        database = connection.engine.url.database
    orchestrator = SchemaOrchestrator(registry, observer=observer, settings=settings)
    return orchestrator.run(backend, database=database)
