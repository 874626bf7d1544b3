"""Domain event base class.

Domain events represent something meaningful that happened in the domain.
They are staged in the outbox by the transactional write path and later
reconstructed from ``(event_type, payload)`` by the outbox dispatcher.

Key features:
- Immutable pydantic models with strict schemas
- Automatic ID and timestamp generation
- Outbox payload serialization
- Message headers and routing keys for RabbitMQ publishing
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

from relay_service.core.settings import get_app_settings


class DomainEvent(BaseModel):
    """Base class for all domain events.

    Subclasses must define ``event_type``, the discriminator stored on the
    outbox record and used to pick the class again at publish time.

    Example:
        class UserCreatedEvent(DomainEvent):
            event_type: ClassVar[str] = "user.created"

            user_id: str
            email: str

    Attributes:
        event_id: Unique identifier for this event instance
        occurred_at: When the event occurred (UTC)
        correlation_id: ID linking related events across services
        service: Name of the service that generated the event
    """

    event_type: ClassVar[str] = "domain.event"

    event_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique event identifier",
    )
    occurred_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Event timestamp in UTC",
    )
    correlation_id: str | None = Field(
        default=None,
        description="Correlation ID for distributed tracing",
    )
    service: str = Field(
        default_factory=lambda: get_app_settings().service_name,
        description="Service that generated the event",
    )

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        extra="forbid",
    )

    def __init_subclass__(cls, **kwargs: Any) -> None:
        """Validate concrete subclasses declare their event type."""
        super().__init_subclass__(**kwargs)
        if cls.event_type == "domain.event":
            msg = f"{cls.__name__} must define 'event_type' class variable"
            raise TypeError(msg)

    @classmethod
    def get_event_type(cls) -> str:
        """Get the event type identifier."""
        return cls.event_type

    def with_correlation(self, correlation_id: str) -> DomainEvent:
        """Create a copy of this event with a correlation ID."""
        return self.model_copy(update={"correlation_id": correlation_id})

    def to_outbox_payload(self) -> dict[str, Any]:
        """Serialize event fields for outbox storage.

        The payload is a JSON-safe mapping in field declaration order.
        The type tag is not repeated here; it lives on the outbox record.
        """
        return self.model_dump(mode="json")

    def headers(self) -> dict[str, Any]:
        """Generate message headers for RabbitMQ publishing."""
        headers: dict[str, Any] = {
            "x-event-type": self.event_type,
            "x-event-id": self.event_id,
            "x-service": self.service,
            "x-timestamp": self.occurred_at.isoformat(),
        }
        if self.correlation_id:
            headers["x-correlation-id"] = self.correlation_id
        return headers

    @property
    def routing_key(self) -> str:
        """Routing key for the topic exchange (the event type)."""
        return self.event_type

    def __repr__(self) -> str:
        """Human-readable representation."""
        return (
            f"{self.__class__.__name__}("
            f"event_id={self.event_id!r}, "
            f"event_type={self.event_type!r}, "
            f"occurred_at={self.occurred_at.isoformat()}"
            f")"
        )


__all__ = ["DomainEvent"]
