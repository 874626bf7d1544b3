"""Tests for OutboxRepository queries against SQLite."""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from relay_service.core.database.base import utcnow
from relay_service.infra.events.outbox import OutboxRecord, OutboxRepository, OutboxStatus


@pytest.fixture
def repository() -> OutboxRepository:
    return OutboxRepository()


def make_record(minutes_ago: int, **overrides) -> OutboxRecord:
    fields = {
        "aggregate_id": "user-1",
        "aggregate_type": "User",
        "event_type": "user.created",
        "payload": {"n": minutes_ago},
        "occurred_at": utcnow() - timedelta(minutes=minutes_ago),
    }
    fields.update(overrides)
    return OutboxRecord(**fields)


class TestFetchPending:
    async def test_oldest_first_and_limited(
        self,
        db_session: AsyncSession,
        repository: OutboxRepository,
    ) -> None:
        db_session.add_all([make_record(1), make_record(30), make_record(10)])
        await db_session.flush()

        records = await repository.fetch_pending(db_session, batch_size=2)

        assert [r.payload["n"] for r in records] == [30, 10]

    async def test_only_pending(self, db_session: AsyncSession, repository: OutboxRepository) -> None:
        pending = make_record(5)
        failed = make_record(4)
        failed.mark_failed("boom")
        processed = make_record(3)
        processed.mark_processed()
        db_session.add_all([pending, failed, processed])
        await db_session.flush()

        records = await repository.fetch_pending(db_session)

        assert [r.id for r in records] == [pending.id]

    async def test_empty(self, db_session: AsyncSession, repository: OutboxRepository) -> None:
        assert list(await repository.fetch_pending(db_session)) == []


class TestOutboxQueries:
    async def test_find_by_aggregate(self, db_session: AsyncSession, repository: OutboxRepository) -> None:
        db_session.add_all(
            [
                make_record(2, aggregate_id="user-1"),
                make_record(1, aggregate_id="user-1"),
                make_record(3, aggregate_id="user-2"),
            ]
        )
        await db_session.flush()

        records = await repository.find_by_aggregate(db_session, "user-1", "User")

        assert [r.payload["n"] for r in records] == [2, 1]

    async def test_fetch_retryable_respects_budget(
        self,
        db_session: AsyncSession,
        repository: OutboxRepository,
    ) -> None:
        retryable = make_record(2, retry_count=1)
        retryable.mark_failed("boom")
        exhausted = make_record(1, retry_count=2)
        exhausted.mark_failed("boom")
        db_session.add_all([retryable, exhausted])
        await db_session.flush()

        records = await repository.fetch_retryable(db_session, max_retries=3)

        assert [r.id for r in records] == [retryable.id]
        assert await repository.count_exhausted(db_session, max_retries=3) == 1

    async def test_count_by_status_includes_every_status(
        self,
        db_session: AsyncSession,
        repository: OutboxRepository,
    ) -> None:
        db_session.add_all([make_record(2), make_record(1)])
        await db_session.flush()

        counts = await repository.count_by_status(db_session)

        assert counts == {
            OutboxStatus.PENDING: 2,
            OutboxStatus.PROCESSED: 0,
            OutboxStatus.FAILED: 0,
        }

    async def test_mark_helpers_flush(
        self,
        db_session: AsyncSession,
        repository: OutboxRepository,
    ) -> None:
        record = make_record(1)
        db_session.add(record)
        await db_session.flush()

        await repository.mark_failed(db_session, record, "boom")
        await repository.reset_for_retry(db_session, record)
        await repository.mark_processed(db_session, record)

        counts = await repository.count_by_status(db_session)
        assert counts[OutboxStatus.PROCESSED] == 1
        assert record.retry_count == 1

    async def test_cleanup_processed(self, db_session: AsyncSession, repository: OutboxRepository) -> None:
        old = make_record(60 * 24 * 10)
        old.mark_processed()
        old.processed_at = utcnow() - timedelta(days=10)
        recent = make_record(1)
        recent.mark_processed()
        pending = make_record(60 * 24 * 10)
        db_session.add_all([old, recent, pending])
        await db_session.flush()

        deleted = await repository.cleanup_processed(db_session, older_than_days=7)

        assert deleted == 1
        counts = await repository.count_by_status(db_session)
        assert counts[OutboxStatus.PROCESSED] == 1
        assert counts[OutboxStatus.PENDING] == 1
