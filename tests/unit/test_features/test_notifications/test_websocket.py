"""Live feed WebSocket tests.

Starlette's TestClient runs the app on its own event loop, so the service
here is built from in-memory fakes rather than the SQLite fixtures.
"""

from __future__ import annotations

import pytest
from starlette.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from notification_service.features.notifications.dependencies import get_notification_service
from notification_service.features.notifications.dispatcher import NotificationDispatcher
from notification_service.features.notifications.enums import Channel
from notification_service.features.notifications.preferences import PreferenceResolver
from notification_service.features.notifications.quiet_hours import QuietHoursEvaluator
from notification_service.features.notifications.service import NotificationService
from notification_service.features.notifications.subscriptions import SubscriptionRegistry
from notification_service.infra.realtime import ConnectionManager, manager as manager_module
from tests.fakes import (
    FakeDirectory,
    InMemoryNotificationStore,
    InMemoryPreferenceStore,
    InMemorySubscriptionStore,
)

FEED = "/api/v1/notifications/ws"


@pytest.fixture
def connection_manager(monkeypatch) -> ConnectionManager:
    manager = ConnectionManager(max_connections_per_user=1)
    monkeypatch.setattr(manager_module, "_manager", manager)
    return manager


@pytest.fixture
def feed_client(connection_manager) -> TestClient:
    from notification_service.app.main import create_app
    from notification_service.features.notifications.channels import InAppSender

    store = InMemoryNotificationStore()
    preferences = InMemoryPreferenceStore()
    dispatcher = NotificationDispatcher(
        resolver=PreferenceResolver(preferences, [Channel.IN_APP]),
        evaluator=QuietHoursEvaluator("UTC"),
        store=store,
        directory=FakeDirectory(),
        senders={Channel.IN_APP: InAppSender(connection_manager, store)},
    )
    service = NotificationService(
        dispatcher=dispatcher,
        store=store,
        preference_store=preferences,
        registry=SubscriptionRegistry(InMemorySubscriptionStore()),
        publisher=connection_manager,
    )
    application = create_app()
    application.dependency_overrides[get_notification_service] = lambda: service
    # No context manager: the lifespan (database, Redis) is not started
    return TestClient(application)


def test_feed_sends_unread_count_first(feed_client):
    with feed_client.websocket_connect(f"{FEED}?user_id=seller-1") as ws:
        assert ws.receive_json() == {"type": "unread-count", "data": {"count": 0}}


def test_header_identity(feed_client):
    with feed_client.websocket_connect(FEED, headers={"X-User-ID": "seller-1"}) as ws:
        assert ws.receive_json()["type"] == "unread-count"


def test_ping_pong(feed_client):
    with feed_client.websocket_connect(f"{FEED}?user_id=seller-1") as ws:
        ws.receive_json()
        ws.send_text("ping")

        assert ws.receive_text() == "pong"


def test_missing_identity_is_rejected(feed_client):
    with pytest.raises(WebSocketDisconnect) as exc_info, feed_client.websocket_connect(FEED):
        pass

    assert exc_info.value.code == 1008


def test_connection_limit(feed_client, connection_manager):
    with feed_client.websocket_connect(f"{FEED}?user_id=seller-1") as first:
        first.receive_json()

        with pytest.raises(WebSocketDisconnect) as exc_info, feed_client.websocket_connect(f"{FEED}?user_id=seller-1"):
            pass

        assert exc_info.value.code == 1013
        assert connection_manager.user_connection_count("seller-1") == 1
