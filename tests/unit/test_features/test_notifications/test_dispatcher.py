"""Unit tests for NotificationDispatcher."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import pytest

from notification_service.core.exceptions import PersistenceException, ValidationException
from notification_service.features.notifications import events
from notification_service.features.notifications.channels import EmailSender, InAppSender
from notification_service.features.notifications.dispatcher import NotificationDispatcher
from notification_service.features.notifications.enums import Channel, DispatchState, NotificationType, Priority
from notification_service.features.notifications.interfaces import UserContact
from notification_service.features.notifications.preferences import PreferenceResolver
from notification_service.features.notifications.quiet_hours import QuietHoursEvaluator
from notification_service.features.notifications.schemas import NotificationRequest, QuietHours
from tests.fakes import (
    FakeDirectory,
    FakeEmailTransport,
    InMemoryNotificationStore,
    InMemoryPreferenceStore,
    RaisingSender,
    RecordingPublisher,
    StaticSender,
)

NIGHT = datetime(2026, 3, 10, 23, 30, tzinfo=UTC)
NOON = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)
NIGHT_WINDOW = QuietHours(start="22:00", end="07:00", timezone="UTC")


def make_request(**overrides) -> NotificationRequest:
    values = {
        "user_id": "u1",
        "type": NotificationType.PAYMENT_RECEIVED,
        "title": "Betalning mottagen",
        "message": "Betalning på 500 SEK har mottagits",
        "priority": Priority.MEDIUM,
        "channels": [Channel.IN_APP, Channel.EMAIL],
    }
    values.update(overrides)
    return NotificationRequest(**values)


def build(
    senders,
    *,
    store=None,
    preferences=None,
    directory=None,
    clock=lambda: NOON,
    timeout=None,
) -> NotificationDispatcher:
    return NotificationDispatcher(
        resolver=PreferenceResolver(preferences or InMemoryPreferenceStore(), [Channel.IN_APP, Channel.EMAIL]),
        evaluator=QuietHoursEvaluator("UTC"),
        store=store or InMemoryNotificationStore(),
        directory=directory or FakeDirectory(),
        senders={sender.channel: sender for sender in senders},
        default_timeout=timeout,
        clock=clock,
    )


class TestOfferReceivedScenario:
    """URGENT offer with default preferences, end to end over SQLite."""

    async def test_default_preferences_restrict_to_in_app_and_email(
        self,
        dispatcher,
        notification_store,
        email_transport,
        sms_transport,
        push_transport,
        publisher,
    ):
        request = events.offer_received(
            "seller-1",
            offer_id="offer-9",
            business_id="biz-2",
            buyer_id="buyer-7",
            amount=2_500_000,
            business_title="Café Nord",
        )

        result = await dispatcher.send(request)

        assert result.state == DispatchState.DISPATCHING
        assert [o.channel for o in result.outcomes] == [Channel.IN_APP, Channel.EMAIL]
        assert all(o.succeeded for o in result.outcomes)

        records, total = await notification_store.list("seller-1", page=1, page_size=10)
        assert total == 1
        assert records[0].id == result.record_id
        assert records[0].priority == Priority.URGENT
        assert records[0].status == DispatchState.DISPATCHING

        assert email_transport.sent[0][0] == "seller@example.se"
        assert email_transport.sent[0][1] == "email-template-offer_received-sv"
        assert sms_transport.sent == []
        assert push_transport.sent == []
        assert [event for _, event, _ in publisher.events] == ["notification", "unread-count"]
        assert publisher.events[1][2] == {"count": 1}


class TestPreferenceGating:
    async def test_disabled_type_is_suppressed_but_persisted(self):
        store = InMemoryNotificationStore()
        preferences = InMemoryPreferenceStore()
        preferences.set("u1", NotificationType.PAYMENT_RECEIVED, enabled=False, channels=[Channel.IN_APP])
        in_app = StaticSender(Channel.IN_APP)

        result = await build([in_app], store=store, preferences=preferences).send(make_request())

        assert result.state == DispatchState.SUPPRESSED
        assert result.outcomes == []
        assert in_app.calls == []
        assert store.records[result.record_id].status == DispatchState.SUPPRESSED

    async def test_no_allowed_channel_is_suppressed(self):
        preferences = InMemoryPreferenceStore()
        preferences.set("u1", NotificationType.PAYMENT_RECEIVED, enabled=True, channels=[Channel.SMS])
        in_app = StaticSender(Channel.IN_APP)

        result = await build([in_app], preferences=preferences).send(make_request())

        assert result.state == DispatchState.SUPPRESSED
        assert in_app.calls == []

    async def test_only_allowed_channels_are_attempted(self):
        preferences = InMemoryPreferenceStore()
        preferences.set("u1", NotificationType.PAYMENT_RECEIVED, enabled=True, channels=[Channel.EMAIL])
        in_app, email = StaticSender(Channel.IN_APP), StaticSender(Channel.EMAIL)

        result = await build([in_app, email], preferences=preferences).send(make_request())

        assert [o.channel for o in result.outcomes] == [Channel.EMAIL]
        assert in_app.calls == []


class TestQuietHours:
    @pytest.fixture
    def preferences(self) -> InMemoryPreferenceStore:
        store = InMemoryPreferenceStore()
        store.set(
            "u1",
            NotificationType.PAYMENT_RECEIVED,
            enabled=True,
            channels=[Channel.IN_APP, Channel.EMAIL],
            quiet_hours=NIGHT_WINDOW,
        )
        return store

    async def test_non_urgent_inside_window_is_scheduled(self, preferences):
        store = InMemoryNotificationStore()
        in_app = StaticSender(Channel.IN_APP)

        result = await build([in_app], store=store, preferences=preferences, clock=lambda: NIGHT).send(
            make_request(channels=[Channel.IN_APP]),
        )

        assert result.state == DispatchState.SCHEDULED
        assert result.scheduled_for == datetime(2026, 3, 11, 7, 0, tzinfo=UTC)
        assert in_app.calls == []
        assert store.records[result.record_id].scheduled_for == result.scheduled_for

    async def test_urgent_bypasses_window(self, preferences):
        in_app = StaticSender(Channel.IN_APP)

        result = await build([in_app], preferences=preferences, clock=lambda: NIGHT).send(
            make_request(channels=[Channel.IN_APP], priority=Priority.URGENT),
        )

        assert result.state == DispatchState.DISPATCHING
        assert len(in_app.calls) == 1

    async def test_outside_window_dispatches(self, preferences):
        in_app = StaticSender(Channel.IN_APP)

        result = await build([in_app], preferences=preferences, clock=lambda: NOON).send(
            make_request(channels=[Channel.IN_APP]),
        )

        assert result.state == DispatchState.DISPATCHING

    async def test_window_without_timezone_uses_directory_timezone(self):
        preferences = InMemoryPreferenceStore()
        preferences.set(
            "u1",
            NotificationType.PAYMENT_RECEIVED,
            enabled=True,
            channels=[Channel.IN_APP],
            quiet_hours=QuietHours(start="22:00", end="07:00"),
        )
        directory = FakeDirectory({"u1": UserContact(user_id="u1", timezone="Asia/Tokyo")})

        # 14:00 UTC is 23:00 in Tokyo
        result = await build(
            [StaticSender(Channel.IN_APP)],
            preferences=preferences,
            directory=directory,
            clock=lambda: datetime(2026, 3, 10, 14, 0, tzinfo=UTC),
        ).send(make_request(channels=[Channel.IN_APP]))

        assert result.state == DispatchState.SCHEDULED
        assert directory.calls == ["u1"]


class TestChannelIsolation:
    async def test_failing_transport_does_not_affect_siblings(self):
        publisher = RecordingPublisher()
        store = InMemoryNotificationStore()
        directory = FakeDirectory({"u1": UserContact(user_id="u1", email="u1@example.se")})
        email = EmailSender(FakeEmailTransport(error=ConnectionError("smtp down")))

        result = await build(
            [InAppSender(publisher, store), email],
            store=store,
            directory=directory,
        ).send(make_request())

        outcomes = {o.channel: o for o in result.outcomes}
        assert outcomes[Channel.IN_APP].succeeded
        assert not outcomes[Channel.EMAIL].succeeded
        assert "smtp down" in outcomes[Channel.EMAIL].error_detail
        assert len(publisher.events) == 2

    async def test_missing_contact_reports_no_contact_info(self):
        email = EmailSender(FakeEmailTransport())

        result = await build([StaticSender(Channel.IN_APP), email]).send(make_request())

        outcomes = {o.channel: o for o in result.outcomes}
        assert outcomes[Channel.IN_APP].succeeded
        assert outcomes[Channel.EMAIL].error_detail == "no contact info"

    async def test_directory_failure_is_not_fatal(self):
        directory = FakeDirectory(error=TimeoutError("directory slow"))

        result = await build(
            [StaticSender(Channel.IN_APP), EmailSender(FakeEmailTransport())],
            directory=directory,
        ).send(make_request())

        assert result.state == DispatchState.DISPATCHING
        assert {o.channel: o.succeeded for o in result.outcomes} == {Channel.IN_APP: True, Channel.EMAIL: False}

    async def test_sender_that_raises_becomes_failed_outcome(self):
        result = await build(
            [StaticSender(Channel.IN_APP), RaisingSender(Channel.EMAIL, RuntimeError("boom"))],
        ).send(make_request())

        outcomes = {o.channel: o for o in result.outcomes}
        assert outcomes[Channel.IN_APP].succeeded
        assert not outcomes[Channel.EMAIL].succeeded
        assert outcomes[Channel.EMAIL].error_detail == "boom"

    async def test_unregistered_channel_is_reported(self):
        result = await build([StaticSender(Channel.IN_APP)]).send(make_request())

        outcomes = {o.channel: o for o in result.outcomes}
        assert outcomes[Channel.EMAIL].error_detail == "channel not configured"

    async def test_channels_run_concurrently(self):
        slow = [StaticSender(Channel.IN_APP, delay=0.2), StaticSender(Channel.EMAIL, delay=0.2)]
        loop = asyncio.get_running_loop()

        started = loop.time()
        await build(slow).send(make_request())

        assert loop.time() - started < 0.35


class TestDeadline:
    async def test_unfinished_channel_is_abandoned(self):
        fast = StaticSender(Channel.IN_APP)
        slow = StaticSender(Channel.EMAIL, delay=0.5)
        store = InMemoryNotificationStore()
        dispatcher = build([fast, slow], store=store)

        result = await dispatcher.send(make_request(), timeout=0.05)

        assert [o.channel for o in result.outcomes] == [Channel.IN_APP]
        assert result.record_id in store.records
        assert dispatcher.pending_abandoned == 1

        await dispatcher.drain(timeout=2.0)
        assert slow.finished.is_set()
        assert dispatcher.pending_abandoned == 0

    async def test_timeout_none_waits_for_every_channel(self):
        slow = StaticSender(Channel.EMAIL, delay=0.1)
        dispatcher = build([StaticSender(Channel.IN_APP), slow], timeout=0.01)

        result = await dispatcher.send(make_request(), timeout=None)

        assert len(result.outcomes) == 2

    async def test_slow_directory_does_not_hold_up_in_app(self):
        publisher = RecordingPublisher()
        store = InMemoryNotificationStore()
        transport = FakeEmailTransport()
        directory = FakeDirectory({"u1": UserContact(user_id="u1", email="u1@example.se")}, delay=0.5)
        dispatcher = build(
            [InAppSender(publisher, store), EmailSender(transport)],
            store=store,
            directory=directory,
        )
        loop = asyncio.get_running_loop()

        started = loop.time()
        result = await dispatcher.send(make_request(), timeout=0.1)

        assert loop.time() - started < 0.3
        assert [(o.channel, o.succeeded) for o in result.outcomes] == [(Channel.IN_APP, True)]
        assert publisher.events
        assert dispatcher.pending_abandoned == 1

        await dispatcher.drain(timeout=2.0)
        assert directory.calls == ["u1"]
        assert transport.sent[0][0] == "u1@example.se"

    async def test_quiet_hours_timezone_lookup_stops_at_deadline(self):
        preferences = InMemoryPreferenceStore()
        preferences.set(
            "u1",
            NotificationType.PAYMENT_RECEIVED,
            enabled=True,
            channels=[Channel.IN_APP],
            quiet_hours=QuietHours(start="22:00", end="07:00"),
        )
        in_app = StaticSender(Channel.IN_APP)
        dispatcher = build(
            [in_app],
            preferences=preferences,
            directory=FakeDirectory({"u1": UserContact(user_id="u1", timezone="Asia/Tokyo")}, delay=0.5),
            clock=lambda: NIGHT,
        )
        loop = asyncio.get_running_loop()

        started = loop.time()
        result = await dispatcher.send(make_request(channels=[Channel.IN_APP]), timeout=0.05)

        # Default UTC applies: 23:30 is inside the window
        assert loop.time() - started < 0.3
        assert result.state == DispatchState.SCHEDULED
        assert in_app.calls == []


class TestFailures:
    async def test_invalid_request_persists_nothing(self):
        store = InMemoryNotificationStore()
        dispatcher = build([StaticSender(Channel.IN_APP)], store=store)

        with pytest.raises(ValidationException) as exc_info:
            await dispatcher.send(
                {"user_id": "u1", "type": "NOT_A_TYPE", "title": "x", "message": "y", "channels": []},
            )

        assert exc_info.value.status_code == 422
        assert exc_info.value.extra["errors"]
        assert store.records == {}

    async def test_blank_title_is_rejected(self):
        store = InMemoryNotificationStore()

        with pytest.raises(ValidationException):
            await build([StaticSender(Channel.IN_APP)], store=store).send(
                {"user_id": "u1", "type": "NEWSLETTER", "title": "   ", "message": "y", "channels": ["IN_APP"]},
            )

        assert store.records == {}

    async def test_persistence_failure_raises_and_skips_channels(self):
        in_app = StaticSender(Channel.IN_APP)
        store = InMemoryNotificationStore(error=OSError("disk full"))

        with pytest.raises(PersistenceException) as exc_info:
            await build([in_app], store=store).send(make_request(channels=[Channel.IN_APP]))

        assert exc_info.value.status_code == 503
        assert in_app.calls == []

    async def test_mapping_input_is_accepted(self):
        result = await build([StaticSender(Channel.IN_APP)]).send(
            {
                "user_id": "u1",
                "type": "SYSTEM_MAINTENANCE",
                "title": "Planerat underhåll",
                "message": "Tjänsten är otillgänglig 02:00-03:00",
                "channels": ["IN_APP", "IN_APP"],
            },
        )

        assert [o.channel for o in result.outcomes] == [Channel.IN_APP]
