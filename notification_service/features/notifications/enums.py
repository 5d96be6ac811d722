"""Enumerations for the notifications feature."""

from __future__ import annotations

from enum import StrEnum


class NotificationType(StrEnum):
    """Closed set of domain events that produce notifications."""

    NEW_INQUIRY = "NEW_INQUIRY"
    OFFER_RECEIVED = "OFFER_RECEIVED"
    OFFER_ACCEPTED = "OFFER_ACCEPTED"
    OFFER_DECLINED = "OFFER_DECLINED"
    COUNTER_OFFER = "COUNTER_OFFER"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    ESCROW_RELEASED = "ESCROW_RELEASED"
    VERIFICATION_APPROVED = "VERIFICATION_APPROVED"
    VERIFICATION_REJECTED = "VERIFICATION_REJECTED"
    KYC_REQUIRED = "KYC_REQUIRED"
    SYSTEM_MAINTENANCE = "SYSTEM_MAINTENANCE"
    SECURITY_ALERT = "SECURITY_ALERT"
    FEATURE_UPDATE = "FEATURE_UPDATE"
    NEWSLETTER = "NEWSLETTER"
    PROMOTIONAL = "PROMOTIONAL"
    RECOMMENDATION = "RECOMMENDATION"


_PRIORITY_RANK = {"LOW": 0, "MEDIUM": 1, "HIGH": 2, "URGENT": 3}


class Priority(StrEnum):
    """Notification priority, ordered LOW < MEDIUM < HIGH < URGENT.

    Comparison operators use the rank, not the string value, so
    ``Priority.URGENT > Priority.HIGH`` holds.
    """

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self.value]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Priority):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Priority):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Priority):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Priority):
            return NotImplemented
        return self.rank >= other.rank


class Channel(StrEnum):
    """Delivery channels."""

    IN_APP = "IN_APP"
    EMAIL = "EMAIL"
    SMS = "SMS"
    PUSH = "PUSH"
    WEBHOOK = "WEBHOOK"


class DispatchState(StrEnum):
    """States of a single dispatch.

    CREATED -> EVALUATED -> {SUPPRESSED | SCHEDULED | DISPATCHING} -> COMPLETED.
    Records store the branch taken (SUPPRESSED, SCHEDULED or DISPATCHING).
    """

    CREATED = "CREATED"
    EVALUATED = "EVALUATED"
    SUPPRESSED = "SUPPRESSED"
    SCHEDULED = "SCHEDULED"
    DISPATCHING = "DISPATCHING"
    COMPLETED = "COMPLETED"


class PushSendStatus(StrEnum):
    """Result of a single Web Push delivery attempt."""

    OK = "ok"
    GONE = "gone"
    ERROR = "error"


# Push TTL tiers (seconds)
TIME_SENSITIVE_TTL = 60 * 60
INFORMATIONAL_TTL = 24 * 60 * 60
MARKETING_TTL = 7 * 24 * 60 * 60

TIME_SENSITIVE_TYPES = frozenset(
    {
        NotificationType.NEW_INQUIRY,
        NotificationType.OFFER_RECEIVED,
        NotificationType.OFFER_ACCEPTED,
        NotificationType.OFFER_DECLINED,
        NotificationType.COUNTER_OFFER,
        NotificationType.PAYMENT_FAILED,
        NotificationType.SECURITY_ALERT,
    },
)
MARKETING_TYPES = frozenset(
    {
        NotificationType.NEWSLETTER,
        NotificationType.PROMOTIONAL,
        NotificationType.RECOMMENDATION,
    },
)


def push_ttl_for(notification_type: NotificationType) -> int:
    """Seconds a push service should hold an undelivered message."""
    if notification_type in TIME_SENSITIVE_TYPES:
        return TIME_SENSITIVE_TTL
    if notification_type in MARKETING_TYPES:
        return MARKETING_TTL
    return INFORMATIONAL_TTL


_PUSH_URGENCY = {
    Priority.URGENT: "high",
    Priority.HIGH: "normal",
    Priority.MEDIUM: "low",
    Priority.LOW: "very-low",
}


def push_urgency_for(priority: Priority) -> str:
    """RFC 8030 Urgency header value for a priority."""
    return _PUSH_URGENCY[priority]
