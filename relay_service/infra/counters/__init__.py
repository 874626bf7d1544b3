"""Expiring counter stores backing circuit breakers and rate limiters.

``COUNTERS_BACKEND`` selects the implementation:

- ``memory``: process-local, only safe with a single worker.
- ``redis``: shared across workers; atomic increments via a Lua script.
"""

from __future__ import annotations

from relay_service.core.settings import (
    CounterStoreSettings,
    RedisSettings,
    get_counter_store_settings,
    get_redis_settings,
)
from relay_service.infra.counters.base import CounterValue, KeyedExpiringStore
from relay_service.infra.counters.memory import InMemoryCounterStore
from relay_service.infra.counters.redis import RedisCounterStore


def create_counter_store(
    settings: CounterStoreSettings | None = None,
    redis_settings: RedisSettings | None = None,
) -> InMemoryCounterStore | RedisCounterStore:
    """Build the configured store. A Redis store still needs ``connect()``."""
    settings = settings or get_counter_store_settings()
    if settings.backend == "redis":
        return RedisCounterStore.from_settings(redis_settings or get_redis_settings())
    return InMemoryCounterStore()


__all__ = [
    "CounterValue",
    "InMemoryCounterStore",
    "KeyedExpiringStore",
    "RedisCounterStore",
    "create_counter_store",
]
