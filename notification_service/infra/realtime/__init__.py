"""Realtime in-app feed over WebSockets."""

from __future__ import annotations

from .manager import (
    ConnectionInfo,
    ConnectionLimitExceeded,
    ConnectionManager,
    get_connection_manager,
    start_connection_manager,
    stop_connection_manager,
)

__all__ = [
    "ConnectionInfo",
    "ConnectionLimitExceeded",
    "ConnectionManager",
    "get_connection_manager",
    "start_connection_manager",
    "stop_connection_manager",
]
