"""
Structured observation of reconciliation runs.

The engine reports progress through an injected observer exposing the
structlog ``BoundLogger`` surface (``bind``, ``debug``, ``info``, ``warning``,
``error``). The default observer is a structlog logger; ``RecordingObserver``
keeps events in memory so callers can inspect a run without parsing text.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Dict, List, Optional, Tuple

import structlog

from ..config import Settings, get_settings

DEFAULT_LOGGER_NAME = "tenant_schema"


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure structlog on top of stdlib logging."""
    settings = settings or get_settings()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)
    formatter = structlog.stdlib.ProcessorFormatter(processor=renderer)

    for handler in logging.root.handlers:
        handler.setFormatter(formatter)


def get_observer(name: str = DEFAULT_LOGGER_NAME) -> Any:
    """Default observer: a structlog logger."""
    return structlog.get_logger(name)


Event = Tuple[str, str, Dict[str, Any]]


class RecordingObserver:
    """In-memory observer.

    Usage:
        observer = RecordingObserver()
        reconcile_schema(conn, observer=observer)
        observer.names("warning")
    """

    def __init__(
        self,
        events: Optional[List[Event]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.events: List[Event] = events if events is not None else []
        self.context: Dict[str, Any] = dict(context or {})

    def bind(self, **kwargs: Any) -> "RecordingObserver":
        child = type(self).__new__(type(self))
        child.__dict__.update(self.__dict__)
        child.context = {**self.context, **kwargs}
        return child

    def _record(self, level: str, event: str, fields: Dict[str, Any]) -> None:
        self.events.append((level, event, {**self.context, **fields}))

    def debug(self, event: str, **fields: Any) -> None:
        self._record("debug", event, fields)

    def info(self, event: str, **fields: Any) -> None:
        self._record("info", event, fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._record("warning", event, fields)

    def error(self, event: str, **fields: Any) -> None:
        self._record("error", event, fields)

    def names(self, level: Optional[str] = None) -> List[str]:
        return [name for lvl, name, _ in self.events if level is None or lvl == level]

    def find(self, event: str) -> List[Dict[str, Any]]:
        return [fields for _, name, fields in self.events if name == event]
