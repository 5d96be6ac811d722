"""Notification dispatcher: preference gating, quiet hours, concurrent fan-out."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from notification_service.core.exceptions import PersistenceException, ValidationException
from notification_service.features.notifications.channels.base import RecipientContext
from notification_service.features.notifications.enums import Channel, DispatchState, Priority
from notification_service.features.notifications.interfaces import NewNotification
from notification_service.features.notifications.metrics import (
    notification_created_total,
    notification_dispatch_abandoned_total,
    notification_quiet_hours_delayed_total,
    notification_suppressed_total,
)
from notification_service.features.notifications.schemas import (
    ChannelDeliveryOutcome,
    DispatchResult,
    NotificationRecord,
    NotificationRequest,
)
from notification_service.infra.logging import get_lazy_logger, set_log_context

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from notification_service.features.notifications.channels.base import ChannelSender
    from notification_service.features.notifications.interfaces import NotificationStore, UserContact, UserDirectory
    from notification_service.features.notifications.preferences import PreferenceResolver, ResolvedPreference
    from notification_service.features.notifications.quiet_hours import QuietHoursEvaluator

logger = logging.getLogger(__name__)
lazy_logger = get_lazy_logger(__name__)

_CONTACT_CHANNELS = frozenset({Channel.EMAIL, Channel.SMS})

# Sentinel so an explicit timeout=None (wait for every channel) differs from "use the default"
_DEFAULT: Any = object()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class NotificationDispatcher:
    """Turn one NotificationRequest into one persisted record and channel sends.

    States: CREATED -> EVALUATED -> {SUPPRESSED | SCHEDULED | DISPATCHING} -> COMPLETED.

    The record is persisted once, before any channel runs, whichever branch is
    taken; a failing store is the only runtime error ``send`` raises. Channel
    senders run as independent asyncio tasks. When a deadline is given and
    elapses, unfinished sends keep running in the background but are left
    out of the result. The user-directory lookup is a task of its own: only
    Email and SMS wait for it, and the quiet-hours timezone fallback waits
    at most until the deadline.

    Args:
        resolver: Preference lookup with default fallback.
        evaluator: Quiet-hours window check.
        store: Where records are written.
        directory: Contact/locale/timezone lookup.
        senders: Channel table; a requested channel missing here yields a
            failed outcome.
        default_locale: Locale for template keys when the directory has none.
        default_timeout: Deadline for fan-out in seconds (None waits for all).
        clock: Source of "now"; injectable for tests.
    """

    def __init__(
        self,
        *,
        resolver: PreferenceResolver,
        evaluator: QuietHoursEvaluator,
        store: NotificationStore,
        directory: UserDirectory,
        senders: Mapping[Channel, ChannelSender],
        default_locale: str = "sv",
        default_timeout: float | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._resolver = resolver
        self._evaluator = evaluator
        self._store = store
        self._directory = directory
        self._senders = dict(senders)
        self._default_locale = default_locale
        self._default_timeout = default_timeout
        self._clock = clock
        self._abandoned: set[asyncio.Task[ChannelDeliveryOutcome]] = set()

    @property
    def channels(self) -> frozenset[Channel]:
        """Channels that have a registered sender."""
        return frozenset(self._senders)

    @property
    def pending_abandoned(self) -> int:
        return len(self._abandoned)

    async def send(
        self,
        request: NotificationRequest | Mapping[str, Any],
        *,
        timeout: float | None = _DEFAULT,
    ) -> DispatchResult:
        """Dispatch one notification.

        Raises:
            ValidationException: The request is malformed; nothing persisted.
            PersistenceException: The record could not be written.
        """
        state = DispatchState.CREATED
        request = self._validate(request)
        set_log_context(user_id=request.user_id, notification_type=str(request.type))

        now = self._clock()
        deadline = self._deadline(self._default_timeout if timeout is _DEFAULT else timeout)
        preference = await self._resolver.resolve(request.user_id, request.type)
        state = DispatchState.EVALUATED
        lazy_logger.debug(lambda: f"dispatch.evaluated: {state} allowed={sorted(preference.allowed_channels)}")

        channels = [c for c in request.channels if c in preference.allowed_channels]
        quiet = preference.quiet_hours
        checks_quiet_hours = request.priority != Priority.URGENT and quiet is not None
        needs_timezone = checks_quiet_hours and quiet is not None and quiet.timezone is None
        contact_channels = _CONTACT_CHANNELS.intersection(channels).intersection(self._senders)

        # Started once and shared: Email/SMS await it inside their own tasks
        lookup: asyncio.Task[UserContact | None] | None = None
        if preference.enabled and channels and (contact_channels or needs_timezone):
            lookup = asyncio.create_task(self._lookup(request.user_id), name=f"directory:{request.user_id}")

        scheduled_for: datetime | None = None

        if not preference.enabled:
            state = DispatchState.SUPPRESSED
            self._count_suppressed(request, "type_disabled")
        elif not channels:
            state = DispatchState.SUPPRESSED
            self._count_suppressed(request, "no_allowed_channels")
        else:
            state = DispatchState.DISPATCHING
            if checks_quiet_hours:
                fallback_timezone = await self._fallback_timezone(request.user_id, lookup, preference, deadline)
                if self._evaluator.is_quiet(preference.quiet_hours, now, fallback_timezone=fallback_timezone):
                    state = DispatchState.SCHEDULED
                    scheduled_for = self._evaluator.window_end(
                        preference.quiet_hours,
                        now,
                        fallback_timezone=fallback_timezone,
                    )
                    notification_quiet_hours_delayed_total.labels(notification_type=request.type).inc()

        if lookup is not None and not (state == DispatchState.DISPATCHING and contact_channels):
            lookup.cancel()

        try:
            record = await self._persist(request, state, scheduled_for)
        except PersistenceException:
            if lookup is not None:
                lookup.cancel()
            raise
        set_log_context(notification_id=str(record.id))

        outcomes: list[ChannelDeliveryOutcome] = []
        if state == DispatchState.DISPATCHING:
            recipient = RecipientContext(
                user_id=request.user_id,
                locale=self._default_locale,
                contact_lookup=lookup,
            )
            outcomes = await self._fan_out(record, recipient, channels, self._remaining(deadline))

        logger.info(
            "Notification dispatch completed",
            extra={
                "notification_id": str(record.id),
                "state": str(state),
                "channels": [str(c) for c in channels],
                "succeeded": [str(o.channel) for o in outcomes if o.succeeded],
                "failed": [str(o.channel) for o in outcomes if not o.succeeded],
            },
        )
        return DispatchResult(record_id=record.id, state=state, outcomes=outcomes, scheduled_for=scheduled_for)

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for abandoned channel sends, e.g. during shutdown."""
        if self._abandoned:
            await asyncio.wait(set(self._abandoned), timeout=timeout)

    # ------------------------------------------------------------------

    def _validate(self, request: NotificationRequest | Mapping[str, Any]) -> NotificationRequest:
        try:
            validated = NotificationRequest.model_validate(
                request.model_dump() if isinstance(request, NotificationRequest) else request,
            )
        except ValidationError as e:
            raise ValidationException(
                detail="Invalid notification request",
                extra={"errors": e.errors(include_url=False, include_context=False, include_input=False)},
            ) from e
        return validated

    def _deadline(self, timeout: float | None) -> float | None:
        if timeout is None:
            return None
        return asyncio.get_running_loop().time() + timeout

    def _remaining(self, deadline: float | None) -> float | None:
        if deadline is None:
            return None
        return max(0.0, deadline - asyncio.get_running_loop().time())

    async def _fallback_timezone(
        self,
        user_id: str,
        lookup: asyncio.Task[UserContact | None] | None,
        preference: ResolvedPreference,
        deadline: float | None,
    ) -> str | None:
        """Directory timezone for a quiet-hours window that has none, bounded by the deadline."""
        if lookup is None or preference.quiet_hours is None or preference.quiet_hours.timezone is not None:
            return None
        try:
            contact = await asyncio.wait_for(asyncio.shield(lookup), self._remaining(deadline))
        except TimeoutError:
            logger.warning(
                "User directory lookup exceeded the dispatch deadline; using the default timezone",
                extra={"user_id": user_id},
            )
            return None
        return contact.timezone if contact else None

    async def _lookup(self, user_id: str) -> UserContact | None:
        try:
            return await self._directory.lookup(user_id)
        except Exception as e:
            logger.warning(
                "User directory lookup failed; continuing without contact info",
                extra={"user_id": user_id, "error": str(e)},
            )
            return None

    async def _persist(
        self,
        request: NotificationRequest,
        state: DispatchState,
        scheduled_for: datetime | None,
    ) -> NotificationRecord:
        try:
            record = await self._store.create(
                NewNotification(
                    user_id=request.user_id,
                    type=request.type,
                    title=request.title,
                    message=request.message,
                    data=request.data,
                    priority=request.priority,
                    channels=list(request.channels),
                    status=state,
                    expires_at=request.expires_at,
                    scheduled_for=scheduled_for,
                ),
            )
        except Exception as e:
            logger.exception(
                "Failed to persist notification",
                extra={"user_id": request.user_id, "notification_type": str(request.type)},
            )
            raise PersistenceException(
                detail="Failed to persist notification",
                extra={"user_id": request.user_id, "type": str(request.type)},
            ) from e

        notification_created_total.labels(notification_type=request.type, priority=request.priority).inc()
        return record

    async def _fan_out(
        self,
        record: NotificationRecord,
        recipient: RecipientContext,
        channels: list[Channel],
        timeout: float | None,
    ) -> list[ChannelDeliveryOutcome]:
        results: dict[Channel, ChannelDeliveryOutcome] = {}
        tasks: dict[asyncio.Task[ChannelDeliveryOutcome], Channel] = {}

        for channel in channels:
            sender = self._senders.get(channel)
            if sender is None:
                results[channel] = ChannelDeliveryOutcome(
                    channel=channel,
                    succeeded=False,
                    error_detail="channel not configured",
                )
                continue
            task = asyncio.create_task(sender.send(record, recipient), name=f"notify:{record.id}:{channel}")
            tasks[task] = channel

        if tasks:
            done, pending = await asyncio.wait(tasks, timeout=timeout)
            for task in done:
                results[tasks[task]] = self._collect(task, tasks[task])
            for task in pending:
                self._abandon(task, tasks[task], record)

        # Stable order: the order the caller requested
        return [results[c] for c in channels if c in results]

    def _collect(self, task: asyncio.Task[ChannelDeliveryOutcome], channel: Channel) -> ChannelDeliveryOutcome:
        if task.cancelled():
            return ChannelDeliveryOutcome(channel=channel, succeeded=False, error_detail="cancelled")
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Channel sender raised instead of returning an outcome",
                extra={"channel": str(channel), "error": str(exc)},
                exc_info=exc,
            )
            return ChannelDeliveryOutcome(channel=channel, succeeded=False, error_detail=str(exc))
        return task.result()

    def _abandon(
        self,
        task: asyncio.Task[ChannelDeliveryOutcome],
        channel: Channel,
        record: NotificationRecord,
    ) -> None:
        self._abandoned.add(task)
        task.add_done_callback(self._abandoned.discard)
        notification_dispatch_abandoned_total.labels(channel=channel).inc()
        logger.warning(
            "Dispatch deadline elapsed; channel send abandoned",
            extra={"notification_id": str(record.id), "channel": str(channel)},
        )

    def _count_suppressed(self, request: NotificationRequest, reason: str) -> None:
        notification_suppressed_total.labels(notification_type=request.type, reason=reason).inc()
        logger.info(
            "Notification suppressed by preferences",
            extra={"user_id": request.user_id, "notification_type": str(request.type), "reason": reason},
        )
