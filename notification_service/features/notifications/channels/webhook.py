"""Webhook channel: signed JSON envelopes to user-registered URLs."""

from __future__ import annotations

import asyncio
from datetime import UTC
import hashlib
import hmac
import json
from typing import TYPE_CHECKING, Any

import httpx

from notification_service.features.notifications.channels.base import BaseChannelSender, ChannelDeliveryFailure
from notification_service.features.notifications.enums import Channel
from notification_service.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from datetime import datetime

    from notification_service.features.notifications.channels.base import RecipientContext
    from notification_service.features.notifications.schemas import NotificationRecord, WebhookEndpointRecord
    from notification_service.features.notifications.subscriptions import SubscriptionRegistry

lazy_logger = get_lazy_logger(__name__)

SIGNATURE_HEADER = "X-Signature"
EVENT_HEADER = "X-Event"


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_envelope(record: NotificationRecord) -> dict[str, Any]:
    return {
        "id": str(record.id),
        "type": str(record.type),
        "userId": record.user_id,
        "title": record.title,
        "message": record.message,
        "data": record.data,
        "createdAt": format_timestamp(record.created_at),
    }


def serialize_envelope(envelope: dict[str, Any]) -> bytes:
    """Compact JSON; the exact bytes sent are the bytes signed."""
    return json.dumps(envelope, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def compute_signature(body: bytes, secret: str) -> str:
    """Hex-encoded HMAC-SHA256 of the raw body."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, secret: str, signature: str) -> bool:
    """Receiver-side check, constant-time."""
    return hmac.compare_digest(compute_signature(body, secret), signature)


class WebhookSender(BaseChannelSender):
    """POST the envelope to every endpoint of the user concurrently.

    Succeeds only when every endpoint answered 2xx; each failing endpoint is
    listed in the error detail.
    """

    channel = Channel.WEBHOOK

    def __init__(
        self,
        client: httpx.AsyncClient,
        registry: SubscriptionRegistry,
        *,
        user_agent: str = "Notification-Webhook/1.0",
        timeout: httpx.Timeout | float = 10.0,
        max_payload_size_bytes: int = 1_048_576,
    ) -> None:
        super().__init__()
        self._client = client
        self._registry = registry
        self._user_agent = user_agent
        self._timeout = timeout
        self._max_payload_size_bytes = max_payload_size_bytes

    async def _deliver(self, record: NotificationRecord, recipient: RecipientContext) -> None:
        endpoints = await self._registry.list_webhooks(record.user_id)
        if not endpoints:
            raise ChannelDeliveryFailure("no webhook endpoints", "no_targets")

        body = serialize_envelope(build_envelope(record))
        if len(body) > self._max_payload_size_bytes:
            raise ChannelDeliveryFailure(
                f"payload of {len(body)} bytes exceeds {self._max_payload_size_bytes}",
                "payload_too_large",
            )

        errors = await asyncio.gather(*(self._post(endpoint, record, body) for endpoint in endpoints))
        failures = [error for error in errors if error is not None]
        if failures:
            raise ChannelDeliveryFailure(
                f"{len(failures)}/{len(endpoints)} webhook endpoints failed: " + "; ".join(failures),
                "http",
            )

    async def _post(self, endpoint: WebhookEndpointRecord, record: NotificationRecord, body: bytes) -> str | None:
        """Deliver to one endpoint; returns an error description or None on success."""
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self._user_agent,
            SIGNATURE_HEADER: compute_signature(body, endpoint.secret),
            EVENT_HEADER: str(record.type),
        }
        lazy_logger.debug(lambda: f"webhook.post: webhook_id={endpoint.id}, url={endpoint.url}")

        try:
            response = await self._client.post(endpoint.url, content=body, headers=headers, timeout=self._timeout)
        except httpx.TimeoutException:
            self._logger.warning(
                "Webhook delivery timeout",
                extra={"webhook_id": str(endpoint.id), "notification_id": str(record.id)},
            )
            return f"{endpoint.id}: timeout"
        except httpx.RequestError as exc:
            self._logger.warning(
                "Webhook request error",
                extra={"webhook_id": str(endpoint.id), "notification_id": str(record.id), "error": str(exc)},
            )
            return f"{endpoint.id}: {type(exc).__name__}"

        if not 200 <= response.status_code < 300:
            self._logger.warning(
                "Webhook delivery failed with non-2xx status",
                extra={
                    "webhook_id": str(endpoint.id),
                    "notification_id": str(record.id),
                    "status_code": response.status_code,
                },
            )
            return f"{endpoint.id}: HTTP {response.status_code}"
        return None
