"""SQLAlchemy models for the notifications feature."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from notification_service.core.database import (
    Base,
    JSONDocument,
    StringArray,
    TimestampMixin,
    UTCDateTime,
    UUIDv7PKMixin,
)


class Notification(Base, UUIDv7PKMixin, TimestampMixin):
    """Notification record, written exactly once per accepted request.

    ``status`` is the dispatch branch taken (SUPPRESSED, SCHEDULED or
    DISPATCHING). Only ``read_at`` changes after creation.

    Indexes:
        - (user_id, created_at) for the per-user feed
        - (user_id, read_at) for unread counts
    """

    __tablename__ = "notifications"

    user_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Recipient user identifier",
    )
    notification_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
        comment="NotificationType value",
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text(), nullable=False)
    data: Mapped[dict[str, Any] | None] = mapped_column(
        JSONDocument,
        nullable=True,
        comment="Opaque event payload (ids used for links and actions)",
    )
    priority: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="LOW, MEDIUM, HIGH or URGENT",
    )
    channels: Mapped[list[str]] = mapped_column(
        StringArray(),
        nullable=False,
        comment="Channels requested by the caller",
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Dispatch branch: SUPPRESSED, SCHEDULED or DISPATCHING",
    )
    read_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(),
        nullable=True,
        comment="First time the recipient marked it read",
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(),
        nullable=True,
        comment="After this instant the record is hidden from listings",
    )
    scheduled_for: Mapped[datetime | None] = mapped_column(
        UTCDateTime(),
        nullable=True,
        comment="End of the quiet-hours window that deferred the send",
    )

    __table_args__ = (
        Index("idx_notification_user_created", "user_id", "created_at"),
        Index("idx_notification_user_read", "user_id", "read_at"),
    )


class UserNotificationPreference(Base, UUIDv7PKMixin, TimestampMixin):
    """Per-user, per-type delivery preference.

    A missing row means the system defaults apply for that type.
    """

    __tablename__ = "user_notification_preferences"

    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    notification_type: Mapped[str] = mapped_column(String(50), nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean(), default=True, nullable=False)
    channels: Mapped[list[str]] = mapped_column(
        StringArray(),
        nullable=False,
        comment="Channels allowed for this type",
    )
    quiet_hours_start: Mapped[str | None] = mapped_column(
        String(5),
        nullable=True,
        comment="Local HH:MM, inclusive",
    )
    quiet_hours_end: Mapped[str | None] = mapped_column(
        String(5),
        nullable=True,
        comment="Local HH:MM, exclusive",
    )
    quiet_hours_timezone: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="IANA timezone of the quiet-hours window",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "notification_type", name="uq_preference_user_type"),
    )


class PushSubscription(Base, UUIDv7PKMixin, TimestampMixin):
    """Web Push subscription registered by a browser or device."""

    __tablename__ = "push_subscriptions"

    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    endpoint: Mapped[str] = mapped_column(
        String(2048),
        nullable=False,
        unique=True,
        comment="Push service URL; unique per subscription",
    )
    p256dh: Mapped[str] = mapped_column(String(255), nullable=False)
    auth: Mapped[str] = mapped_column(String(255), nullable=False)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)
    platform: Mapped[str | None] = mapped_column(String(100), nullable=True)


class WebhookEndpoint(Base, UUIDv7PKMixin, TimestampMixin):
    """User-configured URL that receives signed notification envelopes."""

    __tablename__ = "webhook_endpoints"

    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    secret: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="HMAC-SHA256 signing secret",
    )


__all__ = [
    "Notification",
    "PushSubscription",
    "UserNotificationPreference",
    "WebhookEndpoint",
]
