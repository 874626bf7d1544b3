"""Domain events for the accounts feature."""

from __future__ import annotations

from typing import ClassVar

from pydantic import Field

from relay_service.core.events import DomainEvent, event_registry

USER_AGGREGATE = "User"


@event_registry.register
class UserCreatedEvent(DomainEvent):
    """Published when a new user registers.

    Example:
        event = UserCreatedEvent(
            user_id=user.id,
            email=user.email,
            name=user.name,
            roles=user.roles,
        )
        await EventPublisher(session).publish(
            event, aggregate_id=user.id, aggregate_type=USER_AGGREGATE
        )
    """

    event_type: ClassVar[str] = "user.created"

    user_id: str = Field(description="ID of the created user")
    email: str = Field(description="User email")
    name: str = Field(description="Display name")
    roles: list[str] = Field(default_factory=list, description="Granted roles")


__all__ = ["USER_AGGREGATE", "UserCreatedEvent"]
