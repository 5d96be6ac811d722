"""Database core: declarative base, mixins, column types and repositories."""

from notification_service.core.database.base import (
    NAMING_CONVENTION,
    Base,
    TimestampMixin,
    UUIDv7PKMixin,
    generate_uuid7,
)
from notification_service.core.database.repository import BaseRepository, SearchResult
from notification_service.core.database.types import JSONDocument, StringArray, UTCDateTime

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "BaseRepository",
    "JSONDocument",
    "SearchResult",
    "StringArray",
    "TimestampMixin",
    "UTCDateTime",
    "UUIDv7PKMixin",
    "generate_uuid7",
]
