"""OutboxRecord SQLAlchemy model for the transactional outbox pattern.

Records are written in the same transaction as the aggregate that produced
them. The dispatcher later reads PENDING records oldest first, publishes
them, and moves each to PROCESSED or FAILED.

Status transitions:
    PENDING -> PROCESSED   successful publish (terminal)
    PENDING -> FAILED      failed publish, retry_count + 1
    FAILED  -> PENDING     explicit reset_for_retry() only
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import JSON, DateTime, Enum, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from relay_service.core.database.base import Base, new_uuid, utcnow

MAX_ERROR_MESSAGE_LENGTH = 1000


class OutboxStatus(StrEnum):
    """Delivery state of an outbox record."""

    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"


class InvalidStatusTransition(ValueError):
    """Raised when an outbox record is moved to a state it cannot reach."""

    def __init__(self, record_id: str, current: OutboxStatus, target: OutboxStatus) -> None:
        self.record_id = record_id
        self.current = current
        self.target = target
        super().__init__(
            f"Outbox record {record_id} cannot move from {current.value} to {target.value}"
        )


class OutboxRecord(Base):
    """One domain event awaiting delivery to the broker.

    Attributes:
        id: UUID4 string assigned at construction
        aggregate_id: ID of the entity that produced the event
        aggregate_type: Entity type (e.g., "User")
        event_type: Registry tag used to rebuild the typed event
        payload: JSON event body
        occurred_at: Creation time, the delivery-order key
        processed_at: Set once, on successful publish
        status: PENDING, PROCESSED or FAILED
        retry_count: Failed publish attempts so far
        error_message: Last failure reason, cleared on success
    """

    __tablename__ = "outbox_events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    aggregate_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Aggregate ID",
    )
    aggregate_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Aggregate type (e.g., User)",
    )
    event_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Event type identifier",
    )
    payload: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        comment="Event payload",
    )
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="When the event was recorded",
    )
    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the event was successfully published",
    )
    status: Mapped[OutboxStatus] = mapped_column(
        Enum(
            OutboxStatus,
            name="outbox_status",
            native_enum=False,
            length=20,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=OutboxStatus.PENDING,
    )
    retry_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Number of failed publish attempts",
    )
    error_message: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Last error message if publishing failed",
    )

    __table_args__ = (
        # Pending fetch, oldest first
        Index("ix_outbox_events_status_occurred_at", "status", "occurred_at"),
        Index("ix_outbox_events_aggregate", "aggregate_id", "aggregate_type"),
        Index("ix_outbox_events_event_type", "event_type"),
    )

    def __init__(self, **kwargs: Any) -> None:
        # id and occurred_at are fixed at construction, not at flush.
        kwargs.setdefault("id", new_uuid())
        kwargs.setdefault("occurred_at", utcnow())
        kwargs.setdefault("status", OutboxStatus.PENDING)
        kwargs.setdefault("retry_count", 0)
        super().__init__(**kwargs)

    @property
    def is_pending(self) -> bool:
        return self.status == OutboxStatus.PENDING

    @property
    def is_processed(self) -> bool:
        """Check if event has been successfully published."""
        return self.status == OutboxStatus.PROCESSED

    @property
    def is_failed(self) -> bool:
        return self.status == OutboxStatus.FAILED

    def can_retry(self, max_retries: int) -> bool:
        """Check if another failed attempt may still be recorded."""
        return self.retry_count < max_retries

    def mark_processed(self) -> None:
        """Record a successful publish."""
        self.status = OutboxStatus.PROCESSED
        if self.processed_at is None:
            self.processed_at = utcnow()
        self.error_message = None

    def mark_failed(self, error_message: str) -> None:
        """Record a failed publish attempt.

        Raises:
            InvalidStatusTransition: If the record was already processed.
        """
        if self.is_processed:
            raise InvalidStatusTransition(self.id, self.status, OutboxStatus.FAILED)
        self.status = OutboxStatus.FAILED
        self.retry_count = (self.retry_count or 0) + 1
        self.error_message = error_message[:MAX_ERROR_MESSAGE_LENGTH]

    def reset_for_retry(self, *, clear_retries: bool = False) -> None:
        """Make a failed record eligible for pickup again.

        ``retry_count`` is kept unless ``clear_retries`` is set, so a routine
        retry does not replenish the budget; an operator override does.

        Raises:
            InvalidStatusTransition: If the record is not FAILED.
        """
        if not self.is_failed:
            raise InvalidStatusTransition(self.id, self.status, OutboxStatus.PENDING)
        self.status = OutboxStatus.PENDING
        self.error_message = None
        if clear_retries:
            self.retry_count = 0

    def __repr__(self) -> str:
        """Human-readable representation."""
        return (
            f"OutboxRecord("
            f"id={self.id}, "
            f"event_type={self.event_type!r}, "
            f"status={self.status}, "
            f"retries={self.retry_count}"
            f")"
        )


__all__ = ["MAX_ERROR_MESSAGE_LENGTH", "InvalidStatusTransition", "OutboxRecord", "OutboxStatus"]
