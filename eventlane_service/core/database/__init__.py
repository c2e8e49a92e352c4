"""Core database package with composable base classes, mixins, and repository.

Base Classes and Mixins:
    - Base: Declarative base with constraint naming convention
    - UUIDPKMixin: UUID v4 primary key
    - TimestampMixin: created_at, updated_at tracking
    - UUIDTimestampedBase: UUID PK + timestamps

Repository:
    - BaseRepository[T]: Generic CRUD with explicit session passing
    - SearchResult[T]: Paginated result container

Types:
    - StringArray: ARRAY on PostgreSQL, JSON text elsewhere
    - UTCDateTime: timezone-aware UTC timestamps on every backend
    - WebhookDeliveryStatus: PostgreSQL ENUM for delivery status
"""

from __future__ import annotations

from eventlane_service.core.database.base import (
    NAMING_CONVENTION,
    Base,
    TimestampMixin,
    UUIDPKMixin,
    UUIDTimestampedBase,
)
from eventlane_service.core.database.enums import WebhookDeliveryStatus
from eventlane_service.core.database.repository import BaseRepository, SearchResult
from eventlane_service.core.database.types import StringArray, UTCDateTime

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "BaseRepository",
    "SearchResult",
    "StringArray",
    "TimestampMixin",
    "UUIDPKMixin",
    "UTCDateTime",
    "UUIDTimestampedBase",
    "WebhookDeliveryStatus",
]
