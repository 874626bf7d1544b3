"""Transactional outbox write path.

The EventPublisher stages events in the outbox table inside the caller's
transaction:

1. The caller persists its aggregate in an open session
2. ``publish`` adds an OutboxRecord to the same session
3. The caller commits (both rows land) or rolls back (neither does)

Delivery to the broker happens later, in the outbox dispatcher. This
guarantees at-least-once delivery without ever recording an event for a
write that did not happen.

Usage:
    async with session.begin():
        user = User(email="user@example.com", name="Ada")
        session.add(user)
        await EventPublisher(session).publish(
            UserCreatedEvent(user_id=user.id, email=user.email, name=user.name),
            aggregate_id=user.id,
            aggregate_type="User",
        )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from relay_service.core.events.base import DomainEvent
    from relay_service.infra.events.outbox.models import OutboxRecord

logger = logging.getLogger(__name__)


class EventPublisher:
    """Stages domain events in the outbox using the caller's session.

    Attributes:
        session: Database session for outbox writes
        correlation_id: Optional correlation ID attached to every event
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        correlation_id: str | None = None,
    ) -> None:
        self._session = session
        self._correlation_id = correlation_id
        self._pending_count = 0

    async def publish(
        self,
        event: DomainEvent,
        *,
        aggregate_id: str,
        aggregate_type: str,
    ) -> OutboxRecord:
        """Append an outbox record for ``event`` to the current transaction.

        The record is only persisted when the session commits. Nothing is
        flushed here, so a later failure in the caller's transaction discards
        the event together with the aggregate.

        Returns:
            The staged OutboxRecord (status PENDING).
        """
        if self._correlation_id and not event.correlation_id:
            event = event.with_correlation(self._correlation_id)

        # Import here to avoid circular imports
        from relay_service.infra.events.outbox.models import OutboxRecord

        record = OutboxRecord(
            aggregate_id=aggregate_id,
            aggregate_type=aggregate_type,
            event_type=event.event_type,
            payload=event.to_outbox_payload(),
        )
        self._session.add(record)
        self._pending_count += 1

        logger.debug(
            "Event staged in outbox",
            extra={
                "record_id": record.id,
                "event_type": event.event_type,
                "event_id": event.event_id,
                "aggregate_id": aggregate_id,
                "aggregate_type": aggregate_type,
            },
        )
        return record

    @property
    def pending_count(self) -> int:
        """Number of events staged by this publisher."""
        return self._pending_count


__all__ = ["EventPublisher"]
