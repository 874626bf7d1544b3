"""Domain events and the transactional outbox write path."""

from relay_service.core.events.base import DomainEvent
from relay_service.core.events.publisher import EventPublisher
from relay_service.core.events.registry import (
    EventRegistry,
    UnknownEventTypeError,
    event_registry,
)

__all__ = [
    "DomainEvent",
    "EventPublisher",
    "EventRegistry",
    "UnknownEventTypeError",
    "event_registry",
]
