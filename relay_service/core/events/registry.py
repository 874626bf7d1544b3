"""Event type registry for reconstructing typed events from the outbox.

The registry maps event type strings to event classes so the dispatcher can
turn an outbox record's ``(event_type, payload)`` back into a typed event.

Usage:
    from relay_service.core.events import event_registry, DomainEvent

    @event_registry.register
    class UserCreatedEvent(DomainEvent):
        event_type: ClassVar[str] = "user.created"
        user_id: str

    event = event_registry.decode("user.created", payload)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from collections.abc import Mapping

    from relay_service.core.events.base import DomainEvent

logger = logging.getLogger(__name__)

T = TypeVar("T", bound="DomainEvent")


class UnknownEventTypeError(KeyError):
    """Raised when an outbox record carries an event type nobody registered."""

    def __init__(self, event_type: str) -> None:
        self.event_type = event_type
        super().__init__(event_type)

    def __str__(self) -> str:
        return f"Unknown event type: {self.event_type}"


class EventRegistry:
    """Registry for domain event types.

    Registration is expected during import/startup; lookups are read-only
    afterwards.
    """

    def __init__(self) -> None:
        self._events: dict[str, type[DomainEvent]] = {}

    def register(self, event_class: type[T]) -> type[T]:
        """Register an event class. Usable as a decorator.

        Raises:
            ValueError: If a different class already owns the event type.
        """
        event_type = event_class.get_event_type()
        existing = self._events.get(event_type)
        if existing is not None and existing is not event_class:
            raise ValueError(
                f"Event type '{event_type}' already registered with {existing.__name__}"
            )

        self._events[event_type] = event_class
        logger.debug(
            "Registered event type",
            extra={"event_type": event_type, "class": event_class.__name__},
        )
        return event_class

    def get(self, event_type: str) -> type[DomainEvent] | None:
        """Get an event class by type, or None."""
        return self._events.get(event_type)

    def decode(self, event_type: str, payload: Mapping[str, Any]) -> DomainEvent:
        """Reconstruct a typed event from its type tag and stored payload.

        Raises:
            UnknownEventTypeError: If no class is registered for ``event_type``.
            pydantic.ValidationError: If the payload does not match the schema.
        """
        event_class = self._events.get(event_type)
        if event_class is None:
            raise UnknownEventTypeError(event_type)
        return event_class.model_validate(dict(payload))

    def list_types(self) -> list[str]:
        """List all registered event types."""
        return sorted(self._events)

    def __contains__(self, event_type: object) -> bool:
        return event_type in self._events

    def __len__(self) -> int:
        return len(self._events)

    def clear(self) -> None:
        """Clear all registrations (mainly for testing)."""
        self._events.clear()


# Global registry instance
event_registry = EventRegistry()


__all__ = ["EventRegistry", "UnknownEventTypeError", "event_registry"]
