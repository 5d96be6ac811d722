"""Web Push transport."""

from __future__ import annotations

from .webpush import GONE_STATUS_CODES, WebPushTransport

__all__ = ["GONE_STATUS_CODES", "WebPushTransport"]
