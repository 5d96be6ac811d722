"""Pytest configuration and shared fixtures.

Organization:
    - Environment: settings that keep tests away from external services
    - Database Fixtures: SQLite (aiosqlite) engine and session factory
    - Collaborator Fixtures: in-memory directory, publisher and transports
    - Engine Fixtures: stores, registry, dispatcher and service
    - Application Fixtures: FastAPI app and HTTP client
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
import os
from typing import TYPE_CHECKING

from httpx import ASGITransport, AsyncClient
import pytest

# Ensure tests run without external infrastructure
os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("DB_CREATE_TABLES", "true")
os.environ.setdefault("EMAIL_ENABLED", "false")
os.environ.setdefault("REALTIME_REDIS_URL", "")
os.environ.setdefault("USER_DIRECTORY_BASE_URL", "")

from notification_service.core.settings import clear_all_caches  # noqa: E402
from notification_service.features.notifications.channels import (  # noqa: E402
    EmailSender,
    InAppSender,
    PushSender,
    SMSSender,
)
from notification_service.features.notifications.dispatcher import NotificationDispatcher  # noqa: E402
from notification_service.features.notifications.enums import Channel  # noqa: E402
from notification_service.features.notifications.interfaces import UserContact  # noqa: E402
from notification_service.features.notifications.preferences import PreferenceResolver  # noqa: E402
from notification_service.features.notifications.quiet_hours import QuietHoursEvaluator  # noqa: E402
from notification_service.features.notifications.service import NotificationService  # noqa: E402
from notification_service.features.notifications.store import (  # noqa: E402
    SqlNotificationStore,
    SqlPreferenceStore,
    SqlSubscriptionStore,
)
from notification_service.features.notifications.subscriptions import SubscriptionRegistry  # noqa: E402
from notification_service.infra.database import create_session_factory, init_models  # noqa: E402
from tests.fakes import (  # noqa: E402
    FakeDirectory,
    FakeEmailTransport,
    FakePushTransport,
    FakeSMSTransport,
    RecordingPublisher,
)

if TYPE_CHECKING:
    from fastapi import FastAPI
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

DEFAULT_CHANNELS = (Channel.IN_APP, Channel.EMAIL)


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Reload settings for every test so monkeypatched env vars take effect."""
    clear_all_caches()
    yield
    clear_all_caches()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine]:
    """File-backed SQLite so concurrent sessions see each other's commits."""
    from sqlalchemy.ext.asyncio import create_async_engine

    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'notifications.db'}",
        connect_args={"check_same_thread": False},
    )
    await init_models(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(db_engine)


# ============================================================================
# Collaborator Fixtures
# ============================================================================


@pytest.fixture
def contact() -> UserContact:
    return UserContact(
        user_id="seller-1",
        email="seller@example.se",
        phone="+46701234567",
        locale="sv",
        timezone="Europe/Stockholm",
    )


@pytest.fixture
def directory(contact: UserContact) -> FakeDirectory:
    return FakeDirectory({contact.user_id: contact})


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def email_transport() -> FakeEmailTransport:
    return FakeEmailTransport()


@pytest.fixture
def sms_transport() -> FakeSMSTransport:
    return FakeSMSTransport()


@pytest.fixture
def push_transport() -> FakePushTransport:
    return FakePushTransport()


# ============================================================================
# Engine Fixtures
# ============================================================================


@pytest.fixture
def notification_store(session_factory) -> SqlNotificationStore:
    return SqlNotificationStore(session_factory)


@pytest.fixture
def preference_store(session_factory) -> SqlPreferenceStore:
    return SqlPreferenceStore(session_factory, DEFAULT_CHANNELS)


@pytest.fixture
def subscription_store(session_factory) -> SqlSubscriptionStore:
    return SqlSubscriptionStore(session_factory)


@pytest.fixture
def registry(subscription_store: SqlSubscriptionStore) -> SubscriptionRegistry:
    return SubscriptionRegistry(subscription_store)


@pytest.fixture
def dispatcher(
    notification_store,
    preference_store,
    registry,
    directory,
    publisher,
    email_transport,
    sms_transport,
    push_transport,
) -> NotificationDispatcher:
    """Dispatcher over SQLite stores with IN_APP, EMAIL, SMS and PUSH senders."""
    return NotificationDispatcher(
        resolver=PreferenceResolver(preference_store, DEFAULT_CHANNELS),
        evaluator=QuietHoursEvaluator("UTC"),
        store=notification_store,
        directory=directory,
        senders={
            Channel.IN_APP: InAppSender(publisher, notification_store),
            Channel.EMAIL: EmailSender(email_transport),
            Channel.SMS: SMSSender(sms_transport, "123hansa"),
            Channel.PUSH: PushSender(push_transport, registry, icon="/icon.png", badge="/badge.png"),
        },
        default_locale="sv",
        default_timeout=5.0,
    )


@pytest.fixture
def service(dispatcher, notification_store, preference_store, registry, publisher) -> NotificationService:
    return NotificationService(
        dispatcher=dispatcher,
        store=notification_store,
        preference_store=preference_store,
        registry=registry,
        publisher=publisher,
        max_concurrent_dispatches=4,
    )


# ============================================================================
# Application Fixtures
# ============================================================================


@pytest.fixture
def app(service: NotificationService) -> FastAPI:
    """Application with the notification service dependency overridden.

    The lifespan does not run under ASGITransport, so no database file,
    Redis connection or HTTP client is created.
    """
    from notification_service.app.main import create_app
    from notification_service.features.notifications.dependencies import get_notification_service

    application = create_app()
    application.dependency_overrides[get_notification_service] = lambda: service
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
