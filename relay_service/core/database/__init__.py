"""Database primitives: declarative base, mixins, generic repository."""

from relay_service.core.database.base import (
    Base,
    TimestampMixin,
    UUIDPKMixin,
    new_uuid,
    utcnow,
)
from relay_service.core.database.repository import BaseRepository

__all__ = [
    "Base",
    "BaseRepository",
    "TimestampMixin",
    "UUIDPKMixin",
    "new_uuid",
    "utcnow",
]
