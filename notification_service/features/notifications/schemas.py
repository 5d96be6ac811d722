"""Pydantic schemas for the notifications feature."""

from __future__ import annotations

from datetime import UTC, datetime
import re
from typing import Any
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, field_validator

from notification_service.features.notifications.enums import (
    Channel,
    DispatchState,
    NotificationType,
    Priority,
)

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


# ============================================================================
# Preferences
# ============================================================================


class QuietHours(BaseModel):
    """Local wall-clock window during which non-urgent sends are deferred.

    ``start > end`` wraps midnight; ``start == end`` is an empty window.
    """

    model_config = ConfigDict(frozen=True)

    start: str = Field(..., description="Window start, local HH:MM (inclusive)")
    end: str = Field(..., description="Window end, local HH:MM (exclusive)")
    timezone: str | None = Field(
        default=None,
        description="IANA timezone; falls back to the user's directory timezone",
    )

    @field_validator("start", "end")
    @classmethod
    def validate_hhmm(cls, v: str) -> str:
        if not _HHMM.match(v):
            raise ValueError("must be a 24-hour HH:MM time")
        return v

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str | None) -> str | None:
        if v is None:
            return v

        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown timezone: {v}") from e
        return v


class TypePreference(BaseModel):
    """Stored preference for one notification type."""

    model_config = ConfigDict(from_attributes=True)

    enabled: bool = True
    channels: list[Channel] = Field(default_factory=list)
    quiet_hours: QuietHours | None = None


class UserPreferences(BaseModel):
    """All stored preferences for a user, keyed by notification type.

    Types without an entry resolve to the system defaults.
    """

    user_id: str
    types: dict[NotificationType, TypePreference] = Field(default_factory=dict)


class TypePreferenceUpdate(BaseModel):
    """Partial update for one notification type; omitted fields are kept."""

    enabled: bool | None = None
    channels: list[Channel] | None = None
    quiet_hours: QuietHours | None = None
    clear_quiet_hours: bool = Field(
        default=False,
        description="Remove any stored quiet-hours window",
    )


class PreferencesUpdate(BaseModel):
    """Partial preferences payload."""

    types: dict[NotificationType, TypePreferenceUpdate] = Field(..., min_length=1)


# ============================================================================
# Requests and records
# ============================================================================


class NotificationRequest(BaseModel):
    """Input to a dispatch. Never persisted as-is."""

    user_id: str = Field(..., min_length=1, max_length=255)
    type: NotificationType
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)
    priority: Priority = Priority.MEDIUM
    channels: list[Channel] = Field(..., min_length=1, description="Channels the caller wants attempted")
    expires_at: datetime | None = None

    @field_validator("user_id", "title", "message")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("channels")
    @classmethod
    def dedupe_channels(cls, v: list[Channel]) -> list[Channel]:
        return list(dict.fromkeys(v))

    @field_validator("expires_at")
    @classmethod
    def ensure_aware(cls, v: datetime | None) -> datetime | None:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v


class NotificationRecord(BaseModel):
    """Persisted notification as seen by the engine and API callers."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str
    type: NotificationType
    title: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
    priority: Priority
    channels: list[Channel]
    status: DispatchState
    created_at: datetime
    read_at: datetime | None = None
    expires_at: datetime | None = None
    scheduled_for: datetime | None = None

    @property
    def is_read(self) -> bool:
        return self.read_at is not None


class ChannelDeliveryOutcome(BaseModel):
    """Result of one channel's send within one dispatch."""

    channel: Channel
    succeeded: bool
    error_detail: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class DispatchResult(BaseModel):
    """What ``send`` returns: the record id, the branch taken, and per-channel outcomes."""

    record_id: UUID
    state: DispatchState
    outcomes: list[ChannelDeliveryOutcome] = Field(default_factory=list)
    scheduled_for: datetime | None = None


class BatchSendRequest(BaseModel):
    """Independent requests; each is validated on its own when dispatched."""

    requests: list[dict[str, Any]] = Field(..., min_length=1, max_length=500)


class BatchItemError(BaseModel):
    type: str
    title: str
    status: int
    detail: str
    extra: dict[str, Any] = Field(default_factory=dict)


class BatchItemResult(BaseModel):
    index: int
    result: DispatchResult | None = None
    error: BatchItemError | None = None


class BatchSendResponse(BaseModel):
    results: list[BatchItemResult]
    succeeded: int
    failed: int


class NotificationPage(BaseModel):
    """One page of a user's notifications with totals."""

    records: list[NotificationRecord]
    total_count: int
    unread_count: int
    page: int
    page_size: int


class UnreadCount(BaseModel):
    unread_count: int


# ============================================================================
# Push subscriptions
# ============================================================================


class PushKeys(BaseModel):
    p256dh: str = Field(..., min_length=1)
    auth: str = Field(..., min_length=1)


class DeviceInfo(BaseModel):
    user_agent: str | None = Field(default=None, max_length=500)
    platform: str | None = Field(default=None, max_length=100)


class PushSubscriptionCreate(BaseModel):
    """Browser PushSubscription as posted by the client."""

    endpoint: AnyHttpUrl
    keys: PushKeys
    device_info: DeviceInfo | None = None


class PushSubscriptionRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    endpoint: str
    keys: PushKeys
    device_info: DeviceInfo | None = None
    created_at: datetime


class PushUnsubscribe(BaseModel):
    endpoint: str = Field(..., min_length=1)


# ============================================================================
# Webhooks
# ============================================================================


class WebhookEndpointCreate(BaseModel):
    url: AnyHttpUrl
    secret: str | None = Field(
        default=None,
        min_length=16,
        max_length=255,
        description="Signing secret; generated when omitted",
    )


class WebhookEndpointRecord(BaseModel):
    """Registered webhook endpoint including its signing secret."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str
    url: str
    secret: str
    created_at: datetime


class WebhookEndpointResponse(BaseModel):
    """Webhook endpoint as listed to its owner; the secret is not echoed."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    url: str
    created_at: datetime


class WebhookEndpointCreated(WebhookEndpointResponse):
    """Registration response; the only time the secret is returned."""

    secret: str
