"""In-memory collaborators for dispatch tests.

Each fake records what it was asked to do so tests can assert on calls
without reaching a database, SMTP server, Twilio or a push service.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from notification_service.features.notifications.enums import Channel, PushSendStatus
from notification_service.features.notifications.interfaces import NewNotification, UserContact
from notification_service.features.notifications.schemas import (
    ChannelDeliveryOutcome,
    NotificationRecord,
    PreferencesUpdate,
    PushSubscriptionRecord,
    TypePreference,
    UserPreferences,
    WebhookEndpointRecord,
)


class FakeDirectory:
    def __init__(
        self,
        contacts: dict[str, UserContact] | None = None,
        *,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.contacts = contacts or {}
        self.error = error
        self.delay = delay
        self.calls: list[str] = []

    async def lookup(self, user_id: str) -> UserContact | None:
        self.calls.append(user_id)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.contacts.get(user_id)


class RecordingPublisher:
    def __init__(self, *, error: Exception | None = None) -> None:
        self.events: list[tuple[str, str, dict[str, Any]]] = []
        self.error = error

    async def publish(self, user_id: str, event: str, payload: dict[str, Any]) -> None:
        if self.error is not None:
            raise self.error
        self.events.append((user_id, event, payload))


class FakeEmailTransport:
    def __init__(self, *, error: Exception | None = None) -> None:
        self.sent: list[tuple[str, str, dict[str, Any]]] = []
        self.error = error

    async def send(self, address: str, template_key: str, data: dict[str, Any]) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append((address, template_key, data))


class FakeSMSTransport:
    def __init__(self, *, error: Exception | None = None) -> None:
        self.sent: list[tuple[str, str]] = []
        self.error = error

    async def send(self, number: str, text: str) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append((number, text))


class FakePushTransport:
    """Answers per endpoint from ``statuses``; unknown endpoints get OK."""

    def __init__(self, statuses: dict[str, PushSendStatus] | None = None) -> None:
        self.statuses = statuses or {}
        self.sent: list[dict[str, Any]] = []

    async def send(
        self,
        subscription: PushSubscriptionRecord,
        payload: dict[str, Any],
        *,
        urgency: str,
        ttl: int,
    ) -> PushSendStatus:
        self.sent.append({"endpoint": subscription.endpoint, "payload": payload, "urgency": urgency, "ttl": ttl})
        return self.statuses.get(subscription.endpoint, PushSendStatus.OK)


class InMemoryNotificationStore:
    def __init__(self, *, error: Exception | None = None) -> None:
        self.records: dict[UUID, NotificationRecord] = {}
        self.error = error

    async def create(self, values: NewNotification) -> NotificationRecord:
        if self.error is not None:
            raise self.error
        record = NotificationRecord(
            id=uuid4(),
            user_id=values.user_id,
            type=values.type,
            title=values.title,
            message=values.message,
            data=values.data,
            priority=values.priority,
            channels=values.channels,
            status=values.status,
            created_at=datetime.now(UTC),
            expires_at=values.expires_at,
            scheduled_for=values.scheduled_for,
        )
        self.records[record.id] = record
        return record

    async def mark_read(self, record_id: UUID, user_id: str) -> NotificationRecord | None:
        record = self.records.get(record_id)
        if record is None or record.user_id != user_id:
            return None
        if record.read_at is None:
            record = record.model_copy(update={"read_at": datetime.now(UTC)})
            self.records[record_id] = record
        return record

    def _visible(self, user_id: str) -> list[NotificationRecord]:
        now = datetime.now(UTC)
        return [
            r
            for r in self.records.values()
            if r.user_id == user_id and (r.expires_at is None or r.expires_at > now)
        ]

    async def list(self, user_id, *, page, page_size, types=None):
        visible = [r for r in self._visible(user_id) if not types or r.type in types]
        visible.sort(key=lambda r: r.created_at, reverse=True)
        start = (page - 1) * page_size
        return visible[start : start + page_size], len(visible)

    async def count_unread(self, user_id: str) -> int:
        return sum(1 for r in self._visible(user_id) if r.read_at is None)


class InMemoryPreferenceStore:
    def __init__(self, *, error: Exception | None = None) -> None:
        self.preferences: dict[str, UserPreferences] = {}
        self.error = error

    def set(self, user_id: str, notification_type, **fields: Any) -> None:
        prefs = self.preferences.setdefault(user_id, UserPreferences(user_id=user_id))
        prefs.types[notification_type] = TypePreference(**fields)

    async def get(self, user_id: str) -> UserPreferences:
        if self.error is not None:
            raise self.error
        return self.preferences.get(user_id, UserPreferences(user_id=user_id))

    async def update(self, user_id: str, update: PreferencesUpdate) -> UserPreferences:
        prefs = self.preferences.setdefault(user_id, UserPreferences(user_id=user_id))
        for notification_type, change in update.types.items():
            current = prefs.types.get(notification_type, TypePreference(channels=[Channel.IN_APP, Channel.EMAIL]))
            changes = change.model_dump(exclude_none=True, exclude={"clear_quiet_hours"})
            if change.clear_quiet_hours:
                changes["quiet_hours"] = None
            prefs.types[notification_type] = current.model_copy(update=changes)
        return prefs


class InMemorySubscriptionStore:
    def __init__(self) -> None:
        self.push: dict[str, PushSubscriptionRecord] = {}
        self.webhooks: dict[UUID, WebhookEndpointRecord] = {}
        self.delete_calls: list[str] = []

    async def list_push(self, user_id: str) -> list[PushSubscriptionRecord]:
        return [s for s in self.push.values() if s.user_id == user_id]

    async def upsert_push(self, record: PushSubscriptionRecord) -> PushSubscriptionRecord:
        self.push[record.endpoint] = record
        return record

    async def delete_push(self, endpoint: str, *, user_id: str | None = None) -> bool:
        self.delete_calls.append(endpoint)
        existing = self.push.get(endpoint)
        if existing is None or (user_id is not None and existing.user_id != user_id):
            return False
        del self.push[endpoint]
        return True

    async def list_webhooks(self, user_id: str) -> list[WebhookEndpointRecord]:
        return [w for w in self.webhooks.values() if w.user_id == user_id]

    async def add_webhook(self, user_id: str, url: str, secret: str) -> WebhookEndpointRecord:
        record = WebhookEndpointRecord(
            id=uuid4(),
            user_id=user_id,
            url=url,
            secret=secret,
            created_at=datetime.now(UTC),
        )
        self.webhooks[record.id] = record
        return record

    async def delete_webhook(self, webhook_id: UUID, user_id: str) -> bool:
        existing = self.webhooks.get(webhook_id)
        if existing is None or existing.user_id != user_id:
            return False
        del self.webhooks[webhook_id]
        return True


class StaticSender:
    """Sender that returns a fixed outcome, optionally after a delay."""

    def __init__(self, channel: Channel, *, succeeded: bool = True, delay: float = 0.0) -> None:
        self.channel = channel
        self.succeeded = succeeded
        self.delay = delay
        self.calls: list[UUID] = []
        self.finished = asyncio.Event()
        self.in_flight = 0
        self.max_in_flight = 0

    async def send(self, record, recipient) -> ChannelDeliveryOutcome:
        self.calls.append(record.id)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1
        self.finished.set()
        return ChannelDeliveryOutcome(
            channel=self.channel,
            succeeded=self.succeeded,
            error_detail=None if self.succeeded else "static failure",
        )


class RaisingSender:
    """Sender that breaks its contract by raising."""

    def __init__(self, channel: Channel, error: Exception) -> None:
        self.channel = channel
        self.error = error

    async def send(self, record, recipient) -> ChannelDeliveryOutcome:
        raise self.error
