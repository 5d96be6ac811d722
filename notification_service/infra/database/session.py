"""Async database engine and session management."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from notification_service.core.database import Base
from notification_service.core.settings import get_app_settings, get_db_settings

if TYPE_CHECKING:
    from notification_service.core.settings.database import DatabaseSettings

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def create_engine_from_settings(db_settings: DatabaseSettings | None = None) -> AsyncEngine:
    """Build an async engine from DatabaseSettings.

    SQLite gets ``check_same_thread=False`` so aiosqlite's worker thread can
    use connections opened elsewhere.
    """
    db_settings = db_settings or get_db_settings()
    connect_args = {"check_same_thread": False} if db_settings.is_sqlite else {}
    return create_async_engine(
        db_settings.url,
        echo=db_settings.echo or get_app_settings().debug,
        pool_pre_ping=db_settings.pool_pre_ping,
        connect_args=connect_args,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_engine() -> AsyncEngine:
    """Return the process engine, creating it on first use."""
    global _engine
    if _engine is None:
        _engine = create_engine_from_settings()
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the process session factory bound to get_engine()."""
    global _session_factory
    if _session_factory is None:
        _session_factory = create_session_factory(get_engine())
    return _session_factory


async def init_models(engine: AsyncEngine) -> None:
    """Create every table registered on Base.metadata that does not exist yet."""
    # Import for side effect: registers the notification tables on Base.metadata
    from notification_service.features.notifications import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_database() -> None:
    """Verify connectivity and optionally create tables.

    Raises:
        Exception: Whatever the driver raises when the database is unreachable.
    """
    db_settings = get_db_settings()
    engine = get_engine()
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        if db_settings.create_tables:
            await init_models(engine)
    except Exception as e:
        logger.error(
            "Failed to connect to database",
            extra={"url": engine.url.render_as_string(hide_password=True), "error": str(e)},
        )
        raise

    logger.info(
        "Database connection established",
        extra={"url": engine.url.render_as_string(hide_password=True), "create_tables": db_settings.create_tables},
    )


async def close_database() -> None:
    """Dispose the engine; called during application shutdown."""
    global _engine, _session_factory
    if _engine is None:
        return

    logger.info("Closing database connection")
    try:
        await _engine.dispose()
    except Exception as e:
        logger.exception("Error closing database connection", extra={"error": str(e)})
    finally:
        _engine = None
        _session_factory = None


__all__ = [
    "close_database",
    "create_engine_from_settings",
    "create_session_factory",
    "get_engine",
    "get_session_factory",
    "init_database",
    "init_models",
]
