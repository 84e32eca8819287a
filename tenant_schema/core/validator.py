"""
Front door used by request handlers and provisioning code.

``ensure_tenant_schema`` reconciles a tenant database at most once per
check interval per process:
- honours the DISABLE_SCHEMA_CHECKS kill switch without touching the database
- returns the cached report while it is younger than the interval
- lets only one caller per tenant reconcile at a time; concurrent callers
  get the cached report or a skipped ``in_progress`` report
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, ContextManager, Dict, Optional, Tuple

from ..config import Settings, get_settings
from ..engine.context import ReconcileReport
from .observer import get_observer
from .orchestrator import reconcile_schema

ConnectionFactory = Callable[[], ContextManager[Any]]

_cache: Dict[str, Tuple[float, ReconcileReport]] = {}
_in_progress = set()
_lock = threading.Lock()


def _skipped(reason: str, database: Optional[str] = None) -> ReconcileReport:
    return ReconcileReport(database=database, skipped=True, reason=reason)


def ensure_tenant_schema(
    key: Optional[str],
    connection_factory: ConnectionFactory,
    force: bool = False,
    *,
    modules: Any = None,
    observer: Any = None,
    settings: Optional[Settings] = None,
    clock: Callable[[], float] = time.monotonic,
) -> ReconcileReport:
    """
    Reconcile the tenant database identified by ``key`` if it is due.

    Args:
        key: Tenant database identifier used for caching
        connection_factory: Zero-argument callable returning a context manager
            that yields a SQLAlchemy connection to the tenant database
        force: Ignore the cache (the in-progress guard still applies)

    Raises:
        ReconciliationError: if reconciliation ran and aborted
    """
    settings = settings or get_settings()
    log = (observer if observer is not None else get_observer()).bind(tenant=key)

    if settings.disable_schema_checks:
        log.info("schema_checks_disabled")
        return _skipped("disabled_by_env", key)
    if not key:
        return _skipped("main_database")

    with _lock:
        cached = _cache.get(key)
        if key in _in_progress:
            log.info("schema_check_in_progress")
            return cached[1] if cached else _skipped("in_progress", key)
        if cached and not force:
            age = clock() - cached[0]
            if age < settings.schema_check_interval_seconds:
                log.debug("schema_check_cached", cache_age_seconds=round(age, 3))
                return cached[1]
            del _cache[key]
        _in_progress.add(key)

    try:
        with connection_factory() as connection:
            report = reconcile_schema(
                connection, modules=modules, observer=log, settings=settings
            )
        with _lock:
            _cache[key] = (clock(), report)
        return report
    finally:
        with _lock:
            _in_progress.discard(key)


def clear_schema_cache(key: Optional[str] = None) -> None:
    """Forget cached results for one tenant, or for all tenants."""
    with _lock:
        if key is None:
            _cache.clear()
        else:
            _cache.pop(key, None)
    get_observer().info("schema_cache_cleared", tenant=key or "all")
