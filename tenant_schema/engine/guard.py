"""
Concurrency guard for "create if absent" statements.

Two processes reconciling the same fresh database can both observe an object
as missing and both try to create it. The loser gets a duplicate error; the
guard turns that into success once it can see the object, and escalates only
when the object still cannot be seen after a bounded number of re-checks.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Optional

from ..catalog.base import SchemaBackend
from ..core.errors import TransientRace


class ConcurrencyGuard:
    """Wraps creation statements issued against one backend."""

    def __init__(
        self,
        backend: SchemaBackend,
        observer: Any,
        attempts: int = 3,
        delay: float = 0.25,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.backend = backend
        self.observer = observer
        self.attempts = max(1, attempts)
        self.delay = delay
        self.sleep = sleep

    def create(
        self,
        action: Callable[[], Any],
        exists: Callable[[], bool],
        obj: str,
        module: Optional[str] = None,
    ) -> bool:
        """Run ``action``; return True if this call created the object.

        ``exists`` is only consulted after a duplicate error, never to decide
        whether to run ``action`` in the first place.
        """
        try:
            action()
            return True
        except Exception as exc:
            kind = self.backend.duplicate_kind(exc)
            if kind is None:
                raise
            for attempt in range(1, self.attempts + 1):
                if exists():
                    self.observer.debug(
                        "race_recovered", object=obj, condition=kind, attempt=attempt
                    )
                    return False
                if attempt < self.attempts:
                    self.sleep(self.delay)
            raise TransientRace(
                f"{obj} reported {kind} but is still absent after "
                f"{self.attempts} checks: {exc}",
                module=module,
                obj=obj,
            ) from exc
