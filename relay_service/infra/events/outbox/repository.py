"""Repository for OutboxRecord persistence.

Provides methods for:
- Fetching pending records for the dispatcher
- Marking records as processed or failed
- Resetting failed records for another attempt
- Status counts and cleanup of old processed records

Like every repository here, nothing in this module commits. The dispatcher
(or the caller's ``session.begin()`` block) owns the transaction.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, select

from relay_service.core.database.base import utcnow
from relay_service.core.database.repository import BaseRepository
from relay_service.infra.events.outbox.models import OutboxRecord, OutboxStatus

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession


class OutboxRepository(BaseRepository[OutboxRecord]):
    """Repository for outbox record operations.

    Provides specialized methods for the outbox dispatcher beyond
    basic CRUD from BaseRepository.
    """

    def __init__(self) -> None:
        """Initialize repository with OutboxRecord model."""
        super().__init__(OutboxRecord)

    async def fetch_pending(
        self,
        session: AsyncSession,
        *,
        batch_size: int = 100,
        skip_locked: bool = False,
    ) -> Sequence[OutboxRecord]:
        """Fetch PENDING records, oldest first.

        Args:
            session: Database session
            batch_size: Maximum number of records to fetch
            skip_locked: Lock the selected rows with FOR UPDATE SKIP LOCKED
                so concurrent drainers on PostgreSQL never share a row.
                Ignored by SQLite.

        Returns:
            Sequence of pending OutboxRecord rows
        """
        stmt = (
            select(OutboxRecord)
            .where(OutboxRecord.status == OutboxStatus.PENDING)
            .order_by(OutboxRecord.occurred_at.asc())
            .limit(batch_size)
        )
        if skip_locked:
            stmt = stmt.with_for_update(skip_locked=True)

        result = await session.execute(stmt)
        return result.scalars().all()

    async def find_by_aggregate(
        self,
        session: AsyncSession,
        aggregate_id: str,
        aggregate_type: str,
    ) -> Sequence[OutboxRecord]:
        """All records emitted by one aggregate, in emission order."""
        stmt = (
            select(OutboxRecord)
            .where(
                OutboxRecord.aggregate_id == aggregate_id,
                OutboxRecord.aggregate_type == aggregate_type,
            )
            .order_by(OutboxRecord.occurred_at.asc())
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def mark_processed(self, session: AsyncSession, record: OutboxRecord) -> None:
        """Mark a record as successfully published."""
        record.mark_processed()
        await session.flush()
        self._logger.debug("db.mark_processed", extra={"record_id": record.id})

    async def mark_failed(
        self,
        session: AsyncSession,
        record: OutboxRecord,
        error_message: str,
    ) -> None:
        """Record a failed publish attempt (FAILED, retry_count + 1)."""
        record.mark_failed(error_message)
        await session.flush()
        self._logger.debug(
            "db.mark_failed",
            extra={"record_id": record.id, "retry_count": record.retry_count},
        )

    async def reset_for_retry(
        self,
        session: AsyncSession,
        record: OutboxRecord,
        *,
        clear_retries: bool = False,
    ) -> None:
        """Move a FAILED record back to PENDING."""
        record.reset_for_retry(clear_retries=clear_retries)
        await session.flush()
        self._logger.debug("db.reset_for_retry", extra={"record_id": record.id})

    async def fetch_retryable(
        self,
        session: AsyncSession,
        *,
        max_retries: int,
        limit: int | None = None,
    ) -> Sequence[OutboxRecord]:
        """FAILED records that still have retry budget, oldest first."""
        stmt = (
            select(OutboxRecord)
            .where(
                OutboxRecord.status == OutboxStatus.FAILED,
                OutboxRecord.retry_count < max_retries,
            )
            .order_by(OutboxRecord.occurred_at.asc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await session.execute(stmt)
        return result.scalars().all()

    async def count_by_status(self, session: AsyncSession) -> dict[OutboxStatus, int]:
        """Count records per status. Every status is present in the result."""
        stmt = select(OutboxRecord.status, func.count()).group_by(OutboxRecord.status)
        result = await session.execute(stmt)
        counts = dict.fromkeys(OutboxStatus, 0)
        for status, count in result.all():
            counts[OutboxStatus(status)] = count
        return counts

    async def count_exhausted(self, session: AsyncSession, *, max_retries: int) -> int:
        """Count FAILED records that have used up their retry budget.

        These need operator intervention (``outbox retry --id``).
        """
        stmt = (
            select(func.count())
            .select_from(OutboxRecord)
            .where(
                OutboxRecord.status == OutboxStatus.FAILED,
                OutboxRecord.retry_count >= max_retries,
            )
        )
        result = await session.execute(stmt)
        return result.scalar_one()

    async def cleanup_processed(
        self,
        session: AsyncSession,
        *,
        older_than_days: int = 7,
    ) -> int:
        """Delete processed records older than specified days.

        This is a maintenance operation to prevent the outbox table
        from growing indefinitely.

        Returns:
            Number of records deleted
        """
        cutoff = utcnow() - timedelta(days=older_than_days)
        stmt = delete(OutboxRecord).where(
            OutboxRecord.status == OutboxStatus.PROCESSED,
            OutboxRecord.processed_at < cutoff,
        )
        result = await session.execute(stmt)
        return result.rowcount or 0


__all__ = ["OutboxRepository"]
