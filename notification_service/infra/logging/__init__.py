"""Logging infrastructure.

Structured logging with:
- JSONL format for log aggregation
- Automatic context injection (notification_id, user_id, channel, ...)
- QueueHandler + QueueListener for non-blocking I/O
- Lazy evaluation for expensive debug output
- OpenTelemetry trace correlation

Basic usage:
    from notification_service.infra.logging import set_log_context
    import logging

    logger = logging.getLogger(__name__)

    set_log_context(notification_id="n-1", user_id="u1")
    logger.info("Dispatching")  # Includes notification_id and user_id
"""

from notification_service.infra.logging.config import (
    complete,
    configure_logging,
    setup_logging,
    shutdown,
)
from notification_service.infra.logging.context import (
    ContextBoundLogger,
    ContextInjectingFilter,
    clear_log_context,
    get_log_context,
    get_logger,
    remove_from_log_context,
    set_log_context,
)
from notification_service.infra.logging.formatters import JSONFormatter
from notification_service.infra.logging.lazy import LazyLoggerAdapter, get_lazy_logger

__all__ = [
    "ContextBoundLogger",
    "ContextInjectingFilter",
    "JSONFormatter",
    "LazyLoggerAdapter",
    "clear_log_context",
    "complete",
    "configure_logging",
    "get_lazy_logger",
    "get_log_context",
    "get_logger",
    "remove_from_log_context",
    "set_log_context",
    "setup_logging",
    "shutdown",
]
