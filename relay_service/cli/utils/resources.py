"""Infrastructure lifecycles shared by CLI commands.

Every command opens what it needs, does its work in one event loop, and
closes everything again before ``asyncio.run`` returns.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy.ext.asyncio import async_sessionmaker

from relay_service.cli.utils.formatters import warning
from relay_service.infra.counters import InMemoryCounterStore, RedisCounterStore, create_counter_store
from relay_service.infra.database.session import ensure_schema
from relay_service.infra.events.outbox import create_outbox_dispatcher
from relay_service.infra.messaging.broker import BrokerPublisher
from relay_service.infra.resilience import create_circuit_breaker

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

    from relay_service.infra.counters import KeyedExpiringStore
    from relay_service.infra.events.outbox import OutboxDispatcher
    from relay_service.infra.messaging.broker import EventPublisherPort


def get_engine() -> AsyncEngine:
    """The application engine built from ``DatabaseSettings``."""
    from relay_service.infra.database.session import engine

    return engine


def create_publisher() -> EventPublisherPort:
    return BrokerPublisher.from_settings()


@asynccontextmanager
async def open_session_factory() -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Session factory on an engine whose tables are guaranteed to exist."""
    engine = get_engine()
    await ensure_schema(engine)
    try:
        yield async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
    finally:
        await engine.dispose()


class ProcessLocalStoreError(RuntimeError):
    """Shared breaker or limiter state was requested from a per-process store."""


@asynccontextmanager
async def open_counter_store(*, require_shared: bool = False) -> AsyncIterator[KeyedExpiringStore]:
    """The configured counter store, connected when it is Redis.

    Args:
        require_shared: Refuse the in-memory backend, whose state dies with
            this process and is invisible to every other one.

    Raises:
        ProcessLocalStoreError: If ``require_shared`` and the backend is memory.
    """
    store = create_counter_store()
    if require_shared and isinstance(store, InMemoryCounterStore):
        msg = (
            "COUNTERS_BACKEND=memory keeps circuit and rate limit state inside a "
            "single process; set COUNTERS_BACKEND=redis to inspect or change it"
        )
        raise ProcessLocalStoreError(msg)
    if isinstance(store, RedisCounterStore):
        await store.connect()
    try:
        yield store
    finally:
        if isinstance(store, RedisCounterStore):
            await store.close()


@asynccontextmanager
async def open_dispatcher(
    *,
    connect_broker: bool = True,
    **overrides: Any,
) -> AsyncIterator[OutboxDispatcher]:
    """A dispatcher wired to the database, counter store and broker.

    Args:
        connect_broker: Only draining needs a live broker connection.
        **overrides: Dispatcher options that win over ``OutboxSettings``.
    """
    # Registers every event type the dispatcher may need to decode
    import relay_service.features.accounts.events  # noqa: F401

    publisher = create_publisher()
    async with open_session_factory() as session_factory, open_counter_store() as store:
        if connect_broker and isinstance(publisher, BrokerPublisher):
            await publisher.connect()
        if connect_broker and isinstance(store, InMemoryCounterStore):
            warning(
                "Circuit breaker state is kept in memory and is lost when this "
                "command exits; set COUNTERS_BACKEND=redis to share it between runs"
            )
        try:
            yield create_outbox_dispatcher(
                publisher,
                create_circuit_breaker(store),
                session_factory=session_factory,
                **overrides,
            )
        finally:
            if isinstance(publisher, BrokerPublisher):
                await publisher.close()
