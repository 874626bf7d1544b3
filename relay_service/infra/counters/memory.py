"""In-process counter store for single-instance deployments and tests."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    from .base import CounterValue

logger = logging.getLogger(__name__)


class InMemoryCounterStore:
    """Dict-backed ``KeyedExpiringStore`` guarded by an ``asyncio.Lock``.

    Expiry is checked lazily on access against ``clock``, so tests can move
    time forward without sleeping.

    Example:
        store = InMemoryCounterStore()
        await store.increment("rate_limit:abc", ttl=900)
        await store.get("rate_limit:abc")  # 1
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._data: dict[str, tuple[CounterValue, float | None]] = {}
        self._lock = asyncio.Lock()

    def _live(self, key: str) -> tuple[CounterValue, float | None] | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        _, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._data[key]
            return None
        return entry

    async def get_or_init(
        self,
        key: str,
        ttl: int | None,
        initializer: Callable[[], CounterValue],
    ) -> CounterValue:
        async with self._lock:
            entry = self._live(key)
            if entry is not None:
                return entry[0]
            value = initializer()
            if ttl is not None:
                self._data[key] = (value, self._clock() + ttl)
            return value

    async def get(self, key: str) -> CounterValue:
        async with self._lock:
            entry = self._live(key)
            return entry[0] if entry is not None else None

    async def set(self, key: str, value: CounterValue, ttl: int) -> None:
        async with self._lock:
            self._data[key] = (value, self._clock() + ttl)

    async def increment(self, key: str, ttl: int, *, refresh_ttl: bool = False) -> int:
        async with self._lock:
            entry = self._live(key)
            if entry is None:
                self._data[key] = (1, self._clock() + ttl)
                return 1
            value, expires_at = entry
            count = int(value or 0) + 1
            if refresh_ttl:
                expires_at = self._clock() + ttl
            self._data[key] = (count, expires_at)
            return count

    async def delete(self, *keys: str) -> int:
        async with self._lock:
            removed = 0
            for key in keys:
                if self._live(key) is not None:
                    removed += 1
                self._data.pop(key, None)
            return removed

    async def ttl(self, key: str) -> float | None:
        """Seconds until ``key`` expires, or ``None`` when it is absent."""
        async with self._lock:
            entry = self._live(key)
            if entry is None or entry[1] is None:
                return None
            return entry[1] - self._clock()

    def __len__(self) -> int:
        return len(self._data)

    async def clear(self) -> None:
        """Drop every key."""
        async with self._lock:
            self._data.clear()
        logger.debug("In-memory counter store cleared")


__all__ = ["InMemoryCounterStore"]
