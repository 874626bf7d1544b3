"""Redis-backed counter store shared across processes."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Self, cast

from redis.asyncio import ConnectionPool, Redis

from relay_service.core.settings import get_redis_settings

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from redis.commands.core import AsyncScript

    from relay_service.core.settings import RedisSettings

    from .base import CounterValue

logger = logging.getLogger(__name__)

# INCR, then set the expiry when the key has none or when ARGV[2] asks for a
# refresh. Without the refresh a live window keeps its original deadline.
_INCREMENT_SCRIPT = """
local count = redis.call('INCR', KEYS[1])
if ARGV[2] == '1' or redis.call('TTL', KEYS[1]) == -1 then
    redis.call('EXPIRE', KEYS[1], ARGV[1])
end
return count
"""


class RedisCounterStore:
    """``KeyedExpiringStore`` on top of ``redis.asyncio``.

    Values are JSON encoded. Every key is namespaced with ``key_prefix``.

    Example:
        store = RedisCounterStore.from_settings()
        await store.connect()
        await store.increment("rate_limit:abc", ttl=900)
        await store.close()
    """

    def __init__(
        self,
        client: Redis | None = None,
        *,
        url: str | None = None,
        key_prefix: str = "relay",
        pool_kwargs: dict[str, Any] | None = None,
    ) -> None:
        self._client = client
        self._pool: ConnectionPool | None = None
        self._url = url
        self._pool_kwargs = pool_kwargs or {}
        self.key_prefix = key_prefix
        self._increment_script: AsyncScript | None = None

    @classmethod
    def from_settings(cls, settings: RedisSettings | None = None) -> Self:
        """Build an unconnected store from ``RedisSettings``."""
        settings = settings or get_redis_settings()
        return cls(
            url=settings.url,
            key_prefix=settings.key_prefix,
            pool_kwargs=settings.connection_pool_kwargs(),
        )

    async def connect(self) -> None:
        """Open a pooled connection and verify it with PING."""
        if self._client is not None:
            return
        if not self._url:
            msg = "RedisCounterStore needs a client or a url"
            raise RuntimeError(msg)

        logger.info("Connecting counter store to Redis", extra={"key_prefix": self.key_prefix})
        try:
            self._pool = ConnectionPool.from_url(self._url, **self._pool_kwargs)
            self._client = Redis(connection_pool=self._pool)
            await cast("Awaitable[bool]", self._client.ping())
        except Exception as e:
            logger.exception("Failed to connect counter store to Redis", extra={"error": str(e)})
            raise

    async def close(self) -> None:
        """Release the client and pool created by ``connect``."""
        if self._pool is None:
            return
        if self._client is not None:
            await cast("Any", self._client).aclose()
            self._client = None
        await cast("Any", self._pool).aclose()
        self._pool = None
        self._increment_script = None
        logger.info("Counter store Redis connection closed")

    @property
    def client(self) -> Redis:
        if self._client is None:
            msg = "Redis client not connected. Call connect() first."
            raise RuntimeError(msg)
        return self._client

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}:{key}"

    @staticmethod
    def _decode(raw: str | bytes | None) -> CounterValue:
        if raw is None:
            return None
        return cast("CounterValue", json.loads(raw))

    async def get_or_init(
        self,
        key: str,
        ttl: int | None,
        initializer: Callable[[], CounterValue],
    ) -> CounterValue:
        full_key = self._key(key)
        raw = await self.client.get(full_key)
        if raw is not None:
            return self._decode(raw)

        value = initializer()
        if ttl is None:
            return value
        created = await self.client.set(full_key, json.dumps(value), ex=ttl, nx=True)
        if created:
            return value
        # Another writer initialized the key between GET and SET NX.
        raw = await self.client.get(full_key)
        return self._decode(raw) if raw is not None else value

    async def get(self, key: str) -> CounterValue:
        return self._decode(await self.client.get(self._key(key)))

    async def set(self, key: str, value: CounterValue, ttl: int) -> None:
        await self.client.set(self._key(key), json.dumps(value), ex=ttl)

    async def increment(self, key: str, ttl: int, *, refresh_ttl: bool = False) -> int:
        if self._increment_script is None:
            self._increment_script = self.client.register_script(_INCREMENT_SCRIPT)
        result = await self._increment_script(keys=[self._key(key)], args=[ttl, int(refresh_ttl)])
        return int(result)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(await self.client.delete(*(self._key(k) for k in keys)))

    async def ttl(self, key: str) -> float | None:
        remaining_ms = await self.client.pttl(self._key(key))
        return remaining_ms / 1000 if remaining_ms >= 0 else None


__all__ = ["RedisCounterStore"]
