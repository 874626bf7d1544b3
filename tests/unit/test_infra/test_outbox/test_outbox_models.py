"""Tests for the OutboxRecord model and its status transitions."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from relay_service.infra.events.outbox import (
    InvalidStatusTransition,
    OutboxRecord,
    OutboxStatus,
)
from relay_service.infra.events.outbox.models import MAX_ERROR_MESSAGE_LENGTH


def make_record(**overrides) -> OutboxRecord:
    fields = {
        "aggregate_id": "user-1",
        "aggregate_type": "User",
        "event_type": "user.created",
        "payload": {"user_id": "user-1", "email": "ada@example.com"},
    }
    fields.update(overrides)
    return OutboxRecord(**fields)


class TestOutboxRecordDefaults:
    def test_new_record_is_pending(self) -> None:
        record = make_record()

        assert record.id
        assert len(record.id) == 36
        assert record.occurred_at is not None
        assert record.status == OutboxStatus.PENDING
        assert record.retry_count == 0
        assert record.processed_at is None
        assert record.error_message is None
        assert record.is_pending

    def test_ids_are_unique(self) -> None:
        assert make_record().id != make_record().id

    async def test_round_trip(self, db_session: AsyncSession) -> None:
        record = make_record(payload={"user_id": "user-1", "roles": ["ROLE_USER"]})
        db_session.add(record)
        await db_session.commit()
        db_session.expunge_all()

        loaded = await db_session.get(OutboxRecord, record.id)

        assert loaded is not None
        assert loaded.aggregate_id == "user-1"
        assert loaded.aggregate_type == "User"
        assert loaded.event_type == "user.created"
        assert loaded.payload == {"user_id": "user-1", "roles": ["ROLE_USER"]}
        assert loaded.status == OutboxStatus.PENDING


class TestOutboxRecordTransitions:
    def test_mark_processed_sets_processed_at_once(self) -> None:
        record = make_record()
        record.mark_failed("boom")
        record.reset_for_retry()

        record.mark_processed()
        first = record.processed_at
        record.mark_processed()

        assert record.is_processed
        assert first is not None
        assert record.processed_at == first
        assert record.error_message is None

    def test_mark_failed_counts_and_truncates(self) -> None:
        record = make_record()

        record.mark_failed("x" * (MAX_ERROR_MESSAGE_LENGTH + 500))

        assert record.is_failed
        assert record.retry_count == 1
        assert len(record.error_message) == MAX_ERROR_MESSAGE_LENGTH

    def test_processed_record_cannot_fail(self) -> None:
        record = make_record()
        record.mark_processed()

        with pytest.raises(InvalidStatusTransition) as exc_info:
            record.mark_failed("late failure")

        assert exc_info.value.current == OutboxStatus.PROCESSED
        assert exc_info.value.target == OutboxStatus.FAILED
        assert record.retry_count == 0

    def test_reset_for_retry_keeps_budget(self) -> None:
        record = make_record()
        record.mark_failed("boom")
        record.mark_failed("boom again")

        record.reset_for_retry()

        assert record.is_pending
        assert record.retry_count == 2
        assert record.error_message is None

    def test_reset_for_retry_can_clear_budget(self) -> None:
        record = make_record()
        record.mark_failed("boom")

        record.reset_for_retry(clear_retries=True)

        assert record.retry_count == 0

    @pytest.mark.parametrize("prepare", ["pending", "processed"])
    def test_reset_requires_failed(self, prepare: str) -> None:
        record = make_record()
        if prepare == "processed":
            record.mark_processed()

        with pytest.raises(InvalidStatusTransition):
            record.reset_for_retry()

    def test_can_retry(self) -> None:
        record = make_record(retry_count=2)

        assert record.can_retry(3) is True
        record.mark_failed("boom")
        assert record.can_retry(3) is False
