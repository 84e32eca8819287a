"""Post-run verification of critical objects."""

from __future__ import annotations

from typing import Iterable

from ..core.errors import VerificationFailure
from .context import ReconcileContext


def verify_schema(
    ctx: ReconcileContext,
    critical_tables: Iterable[str],
    functions: Iterable[str] = (),
) -> None:
    """Raise VerificationFailure if any critical table or shared procedure is absent.

    A miss here means an earlier step swallowed a failure it should have
    raised, so it is never retried.
    """
    live = ctx.backend.list_tables()
    missing = [f"table:{name}" for name in critical_tables if name not in live]
    missing.extend(
        f"function:{name}" for name in functions if not ctx.backend.function_exists(name)
    )
    if missing:
        ctx.observer.error("verification_failed", missing=missing)
        raise VerificationFailure(
            f"critical objects missing after a full run: {', '.join(missing)}",
            missing=missing,
            obj=missing[0].split(":", 1)[1],
        )
    ctx.observer.info("verification_passed", tables=len(live))
