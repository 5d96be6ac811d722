"""Base protocol and shared plumbing for channel senders."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import time
from typing import TYPE_CHECKING, ClassVar, Protocol

from notification_service.features.notifications.metrics import (
    notification_delivered_total,
    notification_delivery_duration_seconds,
    notification_delivery_errors_total,
)
from notification_service.features.notifications.schemas import ChannelDeliveryOutcome
from notification_service.infra.logging import get_logger

if TYPE_CHECKING:
    from notification_service.features.notifications.enums import Channel
    from notification_service.features.notifications.interfaces import UserContact
    from notification_service.features.notifications.schemas import NotificationRecord


@dataclass(frozen=True, slots=True)
class RecipientContext:
    """Who a dispatch is for.

    Contact details come from ``contact`` or, during a dispatch, from
    ``contact_lookup``: one user-directory lookup shared by every sender of
    that dispatch. Only senders that need an address await it, so a slow
    directory holds up no other channel. ``locale`` is used when the
    directory has none.
    """

    user_id: str
    locale: str
    contact: UserContact | None = None
    contact_lookup: asyncio.Future[UserContact | None] | None = None

    async def resolve_contact(self) -> UserContact | None:
        """Contact details, or None when the directory has no entry or failed."""
        if self.contact_lookup is not None:
            return await asyncio.shield(self.contact_lookup)
        return self.contact

    def locale_for(self, contact: UserContact | None) -> str:
        return contact.locale if contact and contact.locale else self.locale


class ChannelDeliveryFailure(Exception):
    """Raised inside a sender to end its attempt with a failed outcome.

    Never escapes ``BaseChannelSender.send``.

    Attributes:
        detail: Reason reported in ``ChannelDeliveryOutcome.error_detail``.
        category: Short label for the error metric.
    """

    def __init__(self, detail: str, category: str = "transport") -> None:
        super().__init__(detail)
        self.detail = detail
        self.category = category


class ChannelSender(Protocol):
    """Contract for one delivery channel.

    ``send`` must not raise on transport failure; every failure becomes an
    outcome with ``succeeded=False``.
    """

    channel: Channel

    async def send(self, record: NotificationRecord, recipient: RecipientContext) -> ChannelDeliveryOutcome: ...


class BaseChannelSender:
    """Template for channel senders: timing, metrics, logging and error capture.

    Subclasses set ``channel`` and implement ``_deliver``, raising
    ChannelDeliveryFailure (or letting a transport exception propagate) to
    report failure.
    """

    channel: ClassVar[Channel]

    def __init__(self) -> None:
        self._logger = get_logger(f"{__package__}.{self.channel.lower()}", channel=str(self.channel))

    async def send(self, record: NotificationRecord, recipient: RecipientContext) -> ChannelDeliveryOutcome:
        start = time.perf_counter()
        try:
            await self._deliver(record, recipient)
        except ChannelDeliveryFailure as failure:
            return self._failed(record, failure.detail, failure.category, start)
        except Exception as exc:
            self._logger.exception(
                "Channel transport raised",
                extra={"notification_id": str(record.id)},
            )
            return self._failed(record, f"{type(exc).__name__}: {exc}", "transport", start)

        elapsed = time.perf_counter() - start
        notification_delivery_duration_seconds.labels(channel=self.channel).observe(elapsed)
        notification_delivered_total.labels(channel=self.channel, status="delivered").inc()
        self._logger.info(
            "Channel delivery succeeded",
            extra={
                "notification_id": str(record.id),
                "response_time_ms": int(elapsed * 1000),
            },
        )
        return ChannelDeliveryOutcome(channel=self.channel, succeeded=True)

    async def _deliver(self, record: NotificationRecord, recipient: RecipientContext) -> None:
        raise NotImplementedError

    def _failed(
        self,
        record: NotificationRecord,
        detail: str,
        category: str,
        start: float,
    ) -> ChannelDeliveryOutcome:
        elapsed = time.perf_counter() - start
        notification_delivery_duration_seconds.labels(channel=self.channel).observe(elapsed)
        notification_delivered_total.labels(channel=self.channel, status="failed").inc()
        notification_delivery_errors_total.labels(channel=self.channel, error_category=category).inc()
        self._logger.warning(
            "Channel delivery failed",
            extra={
                "notification_id": str(record.id),
                "error": detail,
                "error_category": category,
            },
        )
        return ChannelDeliveryOutcome(channel=self.channel, succeeded=False, error_detail=detail)
