"""Outbox dispatcher for reliable event publishing.

The dispatcher drains the outbox table in batches:
1. Fetches PENDING records, oldest first
2. Rebuilds each typed event through the event registry
3. Publishes it through a circuit breaker keyed by the downstream name
4. Marks the record PROCESSED, or FAILED with retry_count + 1

A failed record is never picked up again by the drain loop on its own.
``reset_failed`` moves records with remaining retry budget back to PENDING;
records that have used it up stay FAILED and are logged at CRITICAL until an
operator resets them by id.

The dispatcher uses:
- Sequential processing within a batch (delivery order follows occurred_at)
- Per-record failure isolation; store errors abort the batch
- Optional FOR UPDATE SKIP LOCKED for multi-worker deployments
- Graceful shutdown handling for the polling loop
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

from relay_service.core.events.registry import UnknownEventTypeError, event_registry
from relay_service.core.exceptions import NotFoundException
from relay_service.core.settings import get_outbox_settings
from relay_service.infra.events.outbox.repository import OutboxRepository
from relay_service.infra.metrics.tracking import (
    track_outbox_exhausted,
    track_outbox_failed,
    track_outbox_published,
)
from relay_service.infra.resilience.circuit_breaker import CircuitOpenError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from relay_service.core.events.registry import EventRegistry
    from relay_service.infra.events.outbox.models import OutboxRecord
    from relay_service.infra.messaging.broker import EventPublisherPort
    from relay_service.infra.resilience.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)

# Global dispatcher instance
_dispatcher: OutboxDispatcher | None = None


@dataclass(slots=True)
class DrainResult:
    """Outcome of one ``drain`` call.

    Attributes:
        fetched: Records picked up in this batch
        processed: Records published and marked PROCESSED
        failed: Records marked FAILED (retry budget left at the time)
        exhausted: Records that failed with no budget left and were not mutated
    """

    fetched: int = 0
    processed: int = 0
    failed: int = 0
    exhausted: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


class OutboxDispatcher:
    """Drains the outbox table into the message broker.

    Attributes:
        batch_size: Number of records to fetch per drain
        max_retries: Failed attempts recorded before a record is frozen
        downstream: Circuit breaker key for the broker
        poll_interval: Seconds between drains when idle
        skip_locked: Row-lock fetched records (PostgreSQL)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        publisher: EventPublisherPort,
        circuit_breaker: CircuitBreaker,
        *,
        registry: EventRegistry = event_registry,
        batch_size: int = 100,
        max_retries: int = 3,
        downstream: str = "broker",
        poll_interval: float = 5.0,
        skip_locked: bool = False,
    ) -> None:
        if batch_size <= 0:
            msg = "batch_size must be greater than 0"
            raise ValueError(msg)
        if max_retries <= 0:
            msg = "max_retries must be greater than 0"
            raise ValueError(msg)

        self._session_factory = session_factory
        self._publisher = publisher
        self._circuit_breaker = circuit_breaker
        self._registry = registry
        self._repository = OutboxRepository()

        self.batch_size = batch_size
        self.max_retries = max_retries
        self.downstream = downstream
        self.poll_interval = poll_interval
        self.skip_locked = skip_locked

        self._running = False
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def drain(self, batch_size: int | None = None) -> DrainResult:
        """Publish one batch of pending records.

        Args:
            batch_size: Override the configured batch size for this call.

        Returns:
            Counts of what happened to the fetched records.

        Raises:
            ValueError: If ``batch_size`` is given and not positive.
        """
        if batch_size is None:
            batch_size = self.batch_size
        elif batch_size <= 0:
            msg = "batch_size must be greater than 0"
            raise ValueError(msg)

        result = DrainResult()

        async with self._session_factory() as session:
            records = await self._repository.fetch_pending(
                session,
                batch_size=batch_size,
                skip_locked=self.skip_locked,
            )

            if not records:
                logger.debug("No pending outbox records")
                return result

            result.fetched = len(records)
            logger.debug("Processing outbox batch", extra={"batch_size": result.fetched})

            for record in records:
                outcome = await self._dispatch(session, record)
                if outcome == "processed":
                    result.processed += 1
                elif outcome == "failed":
                    result.failed += 1
                else:
                    result.exhausted += 1

            await session.commit()

        logger.info("Outbox batch processed", extra=result.as_dict())
        return result

    async def _dispatch(self, session: AsyncSession, record: OutboxRecord) -> str:
        """Publish a single record and update its status."""
        try:
            event = self._registry.decode(record.event_type, record.payload)
            await self._circuit_breaker.call(
                self._publisher.publish,
                event,
                key=self.downstream,
            )
        except Exception as e:
            return await self._handle_failure(session, record, e)

        await self._repository.mark_processed(session, record)
        track_outbox_published(record.event_type)
        logger.debug(
            "Event published successfully",
            extra={"record_id": record.id, "event_type": record.event_type},
        )
        return "processed"

    async def _handle_failure(
        self,
        session: AsyncSession,
        record: OutboxRecord,
        error: Exception,
    ) -> str:
        extra: dict[str, Any] = {
            "record_id": record.id,
            "event_type": record.event_type,
            "aggregate_id": record.aggregate_id,
            "retry_count": record.retry_count,
            "max_retries": self.max_retries,
            "error": str(error),
            "error_type": type(error).__name__,
        }

        if not record.can_retry(self.max_retries):
            track_outbox_exhausted(record.event_type)
            logger.critical("Outbox record exceeded max retries", extra=extra)
            return "exhausted"

        await self._repository.mark_failed(session, record, str(error))
        track_outbox_failed(record.event_type, type(error).__name__)
        extra["retry_count"] = record.retry_count

        if isinstance(error, CircuitOpenError):
            logger.warning("Publish skipped, circuit open", extra=extra)
        elif isinstance(error, UnknownEventTypeError):
            logger.warning("Cannot decode outbox record", extra=extra)
        else:
            logger.warning("Failed to publish event", extra=extra)
        return "failed"

    async def reset_failed(
        self,
        *,
        record_id: str | None = None,
        limit: int | None = None,
    ) -> int:
        """Move FAILED records back to PENDING.

        Without ``record_id`` only records with retry budget left are reset.
        With ``record_id`` that one record is reset whatever its retry count
        and gets a fresh budget, which is how an operator revives an
        exhausted record.

        Returns:
            Number of records reset.

        Raises:
            NotFoundException: If ``record_id`` does not exist.
            InvalidStatusTransition: If ``record_id`` is not FAILED.
        """
        async with self._session_factory() as session:
            if record_id is not None:
                record = await self._repository.get(session, record_id)
                if record is None:
                    raise NotFoundException(
                        detail=f"Outbox record {record_id} not found",
                        type="outbox-record-not-found",
                        extra={"record_id": record_id},
                    )
                records = [record]
            else:
                records = list(
                    await self._repository.fetch_retryable(
                        session,
                        max_retries=self.max_retries,
                        limit=limit,
                    )
                )

            for record in records:
                await self._repository.reset_for_retry(
                    session,
                    record,
                    clear_retries=record_id is not None,
                )
            await session.commit()

        if records:
            logger.info(
                "Outbox records reset for retry",
                extra={"count": len(records), "record_id": record_id},
            )
        return len(records)

    async def stats(self) -> dict[str, int]:
        """Record counts by status plus the exhausted FAILED count."""
        async with self._session_factory() as session:
            counts = await self._repository.count_by_status(session)
            exhausted = await self._repository.count_exhausted(
                session,
                max_retries=self.max_retries,
            )
        stats = {status.value: count for status, count in counts.items()}
        stats["exhausted"] = exhausted
        return stats

    async def cleanup(self, *, older_than_days: int = 7) -> int:
        """Delete PROCESSED records older than ``older_than_days``."""
        async with self._session_factory() as session:
            deleted = await self._repository.cleanup_processed(
                session,
                older_than_days=older_than_days,
            )
            await session.commit()
        logger.info(
            "Outbox cleanup finished",
            extra={"deleted": deleted, "older_than_days": older_than_days},
        )
        return deleted

    async def start(self) -> None:
        """Start the background polling loop."""
        if self._running:
            logger.warning("Outbox dispatcher already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(
            "Outbox dispatcher started",
            extra={
                "batch_size": self.batch_size,
                "poll_interval": self.poll_interval,
                "max_retries": self.max_retries,
                "downstream": self.downstream,
            },
        )

    async def stop(self, timeout: float = 30.0) -> None:
        """Stop the polling loop, waiting for the current batch to complete."""
        if not self._running:
            return

        self._running = False

        if self._task:
            try:
                await asyncio.wait_for(self._task, timeout=timeout)
            except TimeoutError:
                logger.warning("Outbox dispatcher shutdown timed out, cancelling")
                self._task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._task
            self._task = None

        logger.info("Outbox dispatcher stopped")

    async def _run_loop(self) -> None:
        """Main polling loop."""
        while self._running:
            try:
                result = await self.drain()

                if result.fetched < self.batch_size:
                    # Caught up, wait before polling again
                    await asyncio.sleep(self.poll_interval)
                else:
                    await asyncio.sleep(0)

            except asyncio.CancelledError:
                logger.info("Outbox dispatcher loop cancelled")
                break
            except Exception:
                logger.exception("Error in outbox dispatcher loop")
                # Back off on errors to avoid tight error loop
                await asyncio.sleep(self.poll_interval * 2)


def create_outbox_dispatcher(
    publisher: EventPublisherPort,
    circuit_breaker: CircuitBreaker,
    *,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    **overrides: Any,
) -> OutboxDispatcher:
    """Build a dispatcher from ``OutboxSettings``; keyword overrides win."""
    settings = get_outbox_settings()
    if session_factory is None:
        from relay_service.infra.database.session import AsyncSessionLocal

        session_factory = AsyncSessionLocal

    options: dict[str, Any] = {
        "batch_size": settings.batch_size,
        "max_retries": settings.max_retries,
        "downstream": settings.downstream,
        "poll_interval": settings.poll_interval,
        "skip_locked": settings.skip_locked,
    }
    options.update({k: v for k, v in overrides.items() if v is not None})
    return OutboxDispatcher(session_factory, publisher, circuit_breaker, **options)


async def start_outbox_dispatcher(
    publisher: EventPublisherPort,
    circuit_breaker: CircuitBreaker,
    **overrides: Any,
) -> OutboxDispatcher:
    """Start the global outbox dispatcher."""
    global _dispatcher

    if _dispatcher is not None and _dispatcher.is_running:
        return _dispatcher

    _dispatcher = create_outbox_dispatcher(publisher, circuit_breaker, **overrides)
    await _dispatcher.start()
    return _dispatcher


async def stop_outbox_dispatcher() -> None:
    """Stop the global outbox dispatcher."""
    global _dispatcher

    if _dispatcher is not None:
        await _dispatcher.stop()
        _dispatcher = None


def get_outbox_dispatcher() -> OutboxDispatcher | None:
    """Get the global outbox dispatcher instance."""
    return _dispatcher


__all__ = [
    "DrainResult",
    "OutboxDispatcher",
    "create_outbox_dispatcher",
    "get_outbox_dispatcher",
    "start_outbox_dispatcher",
    "stop_outbox_dispatcher",
]
