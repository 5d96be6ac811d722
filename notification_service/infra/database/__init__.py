"""Database engine and session infrastructure."""

from notification_service.infra.database.session import (
    close_database,
    create_engine_from_settings,
    create_session_factory,
    get_engine,
    get_session_factory,
    init_database,
    init_models,
)

__all__ = [
    "close_database",
    "create_engine_from_settings",
    "create_session_factory",
    "get_engine",
    "get_session_factory",
    "init_database",
    "init_models",
]
