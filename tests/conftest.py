"""Pytest configuration and shared fixtures.

This module provides reusable fixtures for testing across the entire test suite.
Fixtures are organized by category to make them easy to discover and extend.

Organization:
    - Database Fixtures: SQLAlchemy engine, session factory and session
    - Counter Store Fixtures: controllable clock and in-memory store
    - Messaging Fixtures: publisher doubles for the outbox dispatcher
    - Cache Fixtures: Redis client mocks
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from relay_service.infra.counters.memory import InMemoryCounterStore

# Ensure tests run without external infrastructure
os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("DB_ENABLED", "false")
os.environ.setdefault("RABBIT_ENABLED", "false")
os.environ.setdefault("COUNTERS_BACKEND", "memory")


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Create async SQLAlchemy engine with in-memory SQLite and all tables.

    A StaticPool keeps the single in-memory database alive across the
    sessions the dispatcher opens.

    Yields:
        Async SQLAlchemy engine connected to in-memory SQLite.
    """
    from relay_service.infra.database.session import ensure_schema

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await ensure_schema(engine)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine, configured like the app's."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Create async database session that is rolled back after the test.

    Example:
        async def test_create_user(db_session):
            db_session.add(User(email="ada@example.com", name="Ada"))
            await db_session.commit()
    """
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()


# ============================================================================
# Counter Store Fixtures
# ============================================================================


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Clock starting at t=0 that only moves when a test advances it."""
    return FakeClock()


@pytest.fixture
def memory_store(clock: FakeClock) -> InMemoryCounterStore:
    """In-memory counter store driven by the fake clock."""
    from relay_service.infra.counters.memory import InMemoryCounterStore

    return InMemoryCounterStore(clock=clock)


# ============================================================================
# Messaging Fixtures
# ============================================================================


@pytest.fixture
def mock_publisher() -> AsyncMock:
    """Publisher double whose ``publish`` succeeds and records every event.

    Example:
        async def test_drain(mock_publisher):
            mock_publisher.publish.side_effect = ConnectionError("down")
    """
    publisher = AsyncMock()
    publisher.publish = AsyncMock(return_value=None)
    return publisher


# ============================================================================
# Cache Fixtures
# ============================================================================


@pytest.fixture
def mock_redis_client() -> MagicMock:
    """Create mock Redis client with dict-backed get/set/delete.

    ``register_script`` returns an awaitable script that emulates the
    INCR-with-expiry script on the same storage.

    Returns:
        MagicMock Redis client; ``storage`` and ``expiries`` expose state.
    """
    client = MagicMock()
    storage: dict[str, str] = {}
    expiries: dict[str, int] = {}

    async def mock_get(key: str):
        return storage.get(key)

    async def mock_set(key: str, value, ex=None, nx=False):
        if nx and key in storage:
            return None
        storage[key] = value
        if ex is not None:
            expiries[key] = ex
        return True

    async def mock_delete(*keys: str):
        deleted = 0
        for key in keys:
            if storage.pop(key, None) is not None:
                deleted += 1
            expiries.pop(key, None)
        return deleted

    async def mock_increment(keys, args):
        key = keys[0]
        count = int(storage.get(key, 0)) + 1
        storage[key] = str(count)
        if len(args) > 1 and int(args[1]):
            expiries[key] = int(args[0])
        else:
            expiries.setdefault(key, int(args[0]))
        return count

    client.get = AsyncMock(side_effect=mock_get)
    client.set = AsyncMock(side_effect=mock_set)
    client.delete = AsyncMock(side_effect=mock_delete)

    async def mock_pttl(key: str):
        if key not in storage:
            return -2
        return expiries[key] * 1000 if key in expiries else -1

    client.pttl = AsyncMock(side_effect=mock_pttl)
    client.ping = AsyncMock(return_value=True)
    client.aclose = AsyncMock()
    client.register_script = MagicMock(return_value=AsyncMock(side_effect=mock_increment))
    client.storage = storage
    client.expiries = expiries
    return client
