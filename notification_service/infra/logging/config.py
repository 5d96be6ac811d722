"""Logging configuration setup.

Provides logging configuration using:
- dictConfig for formatters, filters and the root logger
- QueueHandler + QueueListener so handler I/O never blocks the event loop
- ContextInjectingFilter for automatic context propagation
- JSONL format for machine parsing
"""

from __future__ import annotations

import atexit
import logging
import logging.config
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path
from queue import Queue
import time
from typing import TYPE_CHECKING, Any

from notification_service.infra.logging.formatters import JSONFormatter

if TYPE_CHECKING:
    from notification_service.core.settings.logs import LoggingSettings

_log_queue: Queue[logging.LogRecord] | None = None
_listener: QueueListener | None = None
_LOGGING_INITIALIZED = False

logger = logging.getLogger(__name__)

_TEXT_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def complete(max_wait: float = 5.0) -> None:
    """Wait for queued log records to be written.

    Blocks until the queue drains or ``max_wait`` seconds pass. Called from
    shutdown(); useful on its own before a hard exit.
    """
    if _log_queue is None or _listener is None:
        return

    start = time.monotonic()
    while not _log_queue.empty() and (time.monotonic() - start) < max_wait:
        time.sleep(0.01)

    # Give the listener a moment to write the last record it dequeued
    time.sleep(0.05)


def shutdown() -> None:
    """Flush pending records and stop the QueueListener.

    Registered with atexit by configure_logging(); safe to call repeatedly.
    """
    global _log_queue, _listener

    if _listener is not None:
        complete()
        _listener.stop()
        _listener = None

    _log_queue = None


def setup_logging(
    log_settings: LoggingSettings | None = None,
    *,
    force: bool = False,
    **configure_kwargs: Any,
) -> None:
    """Ensure logging is configured once across entrypoints.

    Args:
        log_settings: Optional logging settings instance. If omitted, settings
            are loaded via get_logging_settings().
        force: Reconfigure logging even if it was already initialized.
        **configure_kwargs: Explicit overrides for configure_logging().
    """
    global _LOGGING_INITIALIZED

    if _LOGGING_INITIALIZED and not force:
        return

    settings_obj = log_settings
    if settings_obj is None:
        from notification_service.core.settings import get_logging_settings

        settings_obj = get_logging_settings()

    log_config = settings_obj.to_logging_kwargs()
    if configure_kwargs:
        log_config = {**log_config, **configure_kwargs}

    configure_logging(**log_config)
    _LOGGING_INITIALIZED = True


def configure_logging(
    log_level: str = "INFO",
    console_level: str | None = None,
    file_level: str | None = None,
    file_path: str | Path | None = None,
    json_logs: bool = True,
    console_enabled: bool = True,
    include_context: bool = True,
    capture_warnings: bool = True,
    include_process_info: bool = False,
    include_thread_info: bool = False,
    file_max_bytes: int = 10 * 1024 * 1024,
    file_backup_count: int = 5,
    service_name: str = "notification-service",
    **kwargs: Any,
) -> None:
    """Configure logging with dictConfig and the QueueHandler pattern.

    All handlers hang off a QueueListener; the root logger only gets a
    QueueHandler, and application loggers propagate up to it.

    Args:
        log_level: Root logger level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        console_level: Console handler level. If None, uses log_level.
        file_level: File handler level. If None, uses log_level.
        file_path: Path to log file. None disables file logging.
        json_logs: Enable JSONL (JSON Lines) structured logging.
        console_enabled: Enable console/stderr logging.
        include_context: Enable ContextInjectingFilter for auto context.
        capture_warnings: Forward Python warnings to logging system.
        include_process_info: Include process ID and name in records.
        include_thread_info: Include thread ID and name in records.
        file_max_bytes: Maximum log file size before rotation.
        file_backup_count: Number of rotated log files to keep.
        service_name: Static ``service`` field on every JSON record.
        **kwargs: Ignored extra settings.

    Example:
        ```python
        from notification_service.core.settings import get_logging_settings

        configure_logging(**get_logging_settings().to_logging_kwargs())
        ```
    """
    if kwargs:
        logger.debug("Unused logging kwargs supplied: %s", ", ".join(sorted(kwargs)))

    # Reconfiguration must not leave a second listener writing to the same handlers
    shutdown()

    if capture_warnings:
        logging.captureWarnings(True)

    path = Path(file_path) if file_path else None
    if path:
        path.parent.mkdir(parents=True, exist_ok=True)

    logging_config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": _build_formatters_config(
            json_logs=json_logs,
            service_name=service_name,
            include_process_info=include_process_info,
            include_thread_info=include_thread_info,
        ),
        "filters": _build_filters_config(include_context=include_context),
        "root": {
            "level": log_level.upper(),
            "handlers": [],
            "filters": ["context"] if include_context else [],
        },
    }
    logging.config.dictConfig(logging_config)

    _setup_queue_logging(
        console_enabled=console_enabled,
        file_path=path,
        console_level=console_level or log_level,
        file_level=file_level or log_level,
        file_max_bytes=file_max_bytes,
        file_backup_count=file_backup_count,
        json_logs=json_logs,
        service_name=service_name,
        include_process_info=include_process_info,
        include_thread_info=include_thread_info,
    )


def _build_formatters_config(
    json_logs: bool,
    service_name: str,
    include_process_info: bool,
    include_thread_info: bool,
) -> dict[str, Any]:
    """Build formatters configuration for dictConfig."""
    if json_logs:
        return {
            "json": {
                "()": "notification_service.infra.logging.formatters.JSONFormatter",
                "static": {"service": service_name},
                "include_process_info": include_process_info,
                "include_thread_info": include_thread_info,
            },
        }

    return {"text": {"format": _text_format(include_process_info, include_thread_info), "datefmt": _DATE_FORMAT}}


def _build_filters_config(include_context: bool) -> dict[str, Any]:
    """Build filters configuration for dictConfig."""
    if not include_context:
        return {}
    return {
        "context": {
            "()": "notification_service.infra.logging.context.ContextInjectingFilter",
        },
    }


def _text_format(include_process_info: bool, include_thread_info: bool) -> str:
    parts = ["%(asctime)s", "%(levelname)s", "%(name)s"]
    if include_process_info:
        parts.append("[%(processName)s:%(process)d]")
    if include_thread_info:
        parts.append("[%(threadName)s:%(thread)d]")
    parts.append("%(message)s")
    return " - ".join(parts)


def _make_formatter(
    json_logs: bool,
    service_name: str,
    include_process_info: bool,
    include_thread_info: bool,
) -> logging.Formatter:
    if json_logs:
        return JSONFormatter(
            static={"service": service_name},
            include_process_info=include_process_info,
            include_thread_info=include_thread_info,
        )
    return logging.Formatter(
        fmt=_text_format(include_process_info, include_thread_info),
        datefmt=_DATE_FORMAT,
    )


def _setup_queue_logging(
    console_enabled: bool,
    file_path: Path | None,
    console_level: str,
    file_level: str,
    file_max_bytes: int,
    file_backup_count: int,
    json_logs: bool,
    service_name: str,
    include_process_info: bool,
    include_thread_info: bool,
) -> None:
    """Set up QueueHandler + QueueListener for non-blocking logging.

    Creates the real handler instances, attaches them to a QueueListener,
    and gives the root logger a single QueueHandler.
    """
    global _log_queue, _listener

    _log_queue = Queue()
    handlers: list[logging.Handler] = []

    if console_enabled:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(getattr(logging, console_level.upper()))
        console_handler.setFormatter(
            _make_formatter(json_logs, service_name, include_process_info, include_thread_info)
        )
        handlers.append(console_handler)

    if file_path:
        file_handler = RotatingFileHandler(
            file_path,
            maxBytes=file_max_bytes,
            backupCount=file_backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(getattr(logging, file_level.upper()))
        file_handler.setFormatter(
            _make_formatter(json_logs, service_name, include_process_info, include_thread_info)
        )
        handlers.append(file_handler)

    if handlers:
        _listener = QueueListener(_log_queue, *handlers, respect_handler_level=True)
        _listener.start()
        atexit.register(shutdown)

    logging.getLogger().addHandler(QueueHandler(_log_queue))
