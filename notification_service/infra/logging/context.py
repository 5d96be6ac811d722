"""Context management for structured logging.

Log context lives in a ContextVar, so every asyncio task (including the
per-channel tasks spawned by a dispatch) carries its own copy of fields such
as ``notification_id`` and ``user_id`` without passing them explicitly.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any

_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})


def set_log_context(**kwargs: Any) -> None:
    """Add fields to the logging context of the current task.

    Example:
        ```python
        set_log_context(notification_id=str(record.id), user_id=record.user_id)
        logger.info("Dispatching")  # Includes notification_id and user_id
        ```
    """
    current = _log_context.get().copy()
    current.update(kwargs)
    _log_context.set(current)


def get_log_context() -> dict[str, Any]:
    """Return a copy of the current logging context."""
    return _log_context.get().copy()


def clear_log_context() -> None:
    """Clear all logging context for the current task."""
    _log_context.set({})


def remove_from_log_context(*keys: str) -> None:
    """Remove specific keys from the logging context."""
    current = _log_context.get().copy()
    for key in keys:
        current.pop(key, None)
    _log_context.set(current)


class ContextInjectingFilter(logging.Filter):
    """Logging filter that copies the ContextVar fields onto each LogRecord.

    Installed on the root logger by configure_logging(), so every formatter
    (JSONFormatter in particular) sees the context as record attributes.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """Inject context into the log record; never drops records."""
        for key, value in _log_context.get().items():
            # Explicit extra={} values win over ambient context
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class ContextBoundLogger(logging.LoggerAdapter):
    """Logger adapter with permanently bound fields.

    Example:
        ```python
        logger = get_logger(__name__, channel="EMAIL")
        logger.info("Sent", extra={"notification_id": "n-1"})  # has channel too
        ```
    """

    def __init__(self, logger: logging.Logger, **context: Any) -> None:
        super().__init__(logger, context)

    def bind(self, **context: Any) -> ContextBoundLogger:
        """Create a new logger with additional bound fields."""
        return ContextBoundLogger(self.logger, **{**self.extra, **context})

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        """Merge bound fields with any extra passed to the call."""
        extra = kwargs.get("extra", {})
        kwargs["extra"] = {**self.extra, **extra}
        return msg, kwargs


def get_logger(name: str, **context: Any) -> ContextBoundLogger:
    """Get a logger with bound context."""
    return ContextBoundLogger(logging.getLogger(name), **context)
