"""Collaborator protocols consumed by the dispatch engine.

Concrete implementations live in ``store.py`` (persistence) and under
``notification_service.infra`` (transports, user directory). Tests supply
in-memory fakes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol
from uuid import UUID

if TYPE_CHECKING:
    from collections.abc import Sequence

    from notification_service.features.notifications.enums import NotificationType, PushSendStatus
    from notification_service.features.notifications.schemas import (
        NotificationRecord,
        PreferencesUpdate,
        PushSubscriptionRecord,
        UserPreferences,
        WebhookEndpointRecord,
    )


@dataclass(frozen=True, slots=True)
class UserContact:
    """Contact details for a recipient, as returned by the user directory."""

    user_id: str
    email: str | None = None
    phone: str | None = None
    locale: str | None = None
    timezone: str | None = None


@dataclass(frozen=True, slots=True)
class NewNotification:
    """Values for a record about to be created."""

    user_id: str
    type: NotificationType
    title: str
    message: str
    data: dict[str, Any]
    priority: str
    channels: list[str]
    status: str
    expires_at: datetime | None = None
    scheduled_for: datetime | None = None


class UserDirectory(Protocol):
    async def lookup(self, user_id: str) -> UserContact | None:
        """Return contact details, or None for an unknown user."""
        ...


class NotificationStore(Protocol):
    async def create(self, values: NewNotification) -> NotificationRecord: ...

    async def mark_read(self, record_id: UUID, user_id: str) -> NotificationRecord | None:
        """Set read_at if unset. Returns None when no such record belongs to the user."""
        ...

    async def list(
        self,
        user_id: str,
        *,
        page: int,
        page_size: int,
        types: Sequence[NotificationType] | None = None,
    ) -> tuple[list[NotificationRecord], int]: ...

    async def count_unread(self, user_id: str) -> int: ...


class PreferenceStore(Protocol):
    async def get(self, user_id: str) -> UserPreferences: ...

    async def update(self, user_id: str, update: PreferencesUpdate) -> UserPreferences: ...


class SubscriptionStore(Protocol):
    async def list_push(self, user_id: str) -> list[PushSubscriptionRecord]: ...

    async def upsert_push(self, record: PushSubscriptionRecord) -> PushSubscriptionRecord: ...

    async def delete_push(self, endpoint: str, *, user_id: str | None = None) -> bool: ...

    async def list_webhooks(self, user_id: str) -> list[WebhookEndpointRecord]: ...

    async def add_webhook(self, user_id: str, url: str, secret: str) -> WebhookEndpointRecord: ...

    async def delete_webhook(self, webhook_id: UUID, user_id: str) -> bool: ...


class PushTransport(Protocol):
    async def send(
        self,
        subscription: PushSubscriptionRecord,
        payload: dict[str, Any],
        *,
        urgency: str,
        ttl: int,
    ) -> PushSendStatus: ...


class EmailTransport(Protocol):
    async def send(self, address: str, template_key: str, data: dict[str, Any]) -> None:
        """Send one email. Raises on delivery failure."""
        ...


class SMSTransport(Protocol):
    async def send(self, number: str, text: str) -> None:
        """Send one SMS. Raises on delivery failure."""
        ...


class RealtimePublisher(Protocol):
    async def publish(self, user_id: str, event: str, payload: dict[str, Any]) -> None:
        """Deliver an event to the user's live sessions (best effort)."""
        ...
