"""Tests for the Redis-backed counter store using a mocked client."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from relay_service.core.settings import CounterStoreSettings, RedisSettings
from relay_service.infra.counters import (
    InMemoryCounterStore,
    KeyedExpiringStore,
    RedisCounterStore,
    create_counter_store,
)


@pytest.fixture
def store(mock_redis_client: MagicMock) -> RedisCounterStore:
    return RedisCounterStore(mock_redis_client, key_prefix="test")


class TestRedisCounterStore:
    def test_satisfies_protocol(self, store: RedisCounterStore) -> None:
        assert isinstance(store, KeyedExpiringStore)

    def test_client_requires_connect(self) -> None:
        store = RedisCounterStore(url="redis://localhost:6379/0")

        with pytest.raises(RuntimeError, match="not connected"):
            _ = store.client

    async def test_set_namespaces_and_encodes(
        self,
        store: RedisCounterStore,
        mock_redis_client: MagicMock,
    ) -> None:
        await store.set("circuit_breaker:broker:last_failure", 12.5, 3600)

        mock_redis_client.set.assert_awaited_once_with(
            "test:circuit_breaker:broker:last_failure",
            "12.5",
            ex=3600,
        )
        assert await store.get("circuit_breaker:broker:last_failure") == 12.5

    async def test_get_missing_returns_none(self, store: RedisCounterStore) -> None:
        assert await store.get("missing") is None

    async def test_get_or_init_sets_when_absent(
        self,
        store: RedisCounterStore,
        mock_redis_client: MagicMock,
    ) -> None:
        value = await store.get_or_init("state", 60, lambda: "closed")

        assert value == "closed"
        assert mock_redis_client.storage["test:state"] == json.dumps("closed")
        assert mock_redis_client.expiries["test:state"] == 60

    async def test_get_or_init_returns_existing(
        self,
        store: RedisCounterStore,
        mock_redis_client: MagicMock,
    ) -> None:
        mock_redis_client.storage["test:state"] = json.dumps("open")
        initializer = MagicMock(return_value="closed")

        assert await store.get_or_init("state", 60, initializer) == "open"
        initializer.assert_not_called()

    async def test_get_or_init_loses_race_to_other_writer(
        self,
        store: RedisCounterStore,
        mock_redis_client: MagicMock,
    ) -> None:
        responses = iter([None, json.dumps("open")])
        mock_redis_client.get = AsyncMock(side_effect=lambda key: next(responses))
        mock_redis_client.set = AsyncMock(return_value=None)

        assert await store.get_or_init("state", 60, lambda: "closed") == "open"

    async def test_get_or_init_without_ttl_does_not_store(
        self,
        store: RedisCounterStore,
        mock_redis_client: MagicMock,
    ) -> None:
        assert await store.get_or_init("state", None, lambda: "closed") == "closed"
        mock_redis_client.set.assert_not_awaited()

    async def test_increment_uses_script(
        self,
        store: RedisCounterStore,
        mock_redis_client: MagicMock,
    ) -> None:
        assert await store.increment("count", 900) == 1
        assert await store.increment("count", 900) == 2

        mock_redis_client.register_script.assert_called_once()
        assert mock_redis_client.expiries["test:count"] == 900

    async def test_increment_passes_refresh_flag(
        self,
        store: RedisCounterStore,
        mock_redis_client: MagicMock,
    ) -> None:
        script = mock_redis_client.register_script.return_value

        await store.increment("count", 900)
        await store.increment("count", 3600, refresh_ttl=True)

        assert script.await_args_list[0].kwargs == {"keys": ["test:count"], "args": [900, 0]}
        assert script.await_args_list[1].kwargs == {"keys": ["test:count"], "args": [3600, 1]}
        assert mock_redis_client.expiries["test:count"] == 3600

    async def test_delete(self, store: RedisCounterStore, mock_redis_client: MagicMock) -> None:
        await store.set("a", 1, 60)

        assert await store.delete("a", "b") == 1
        assert await store.delete() == 0

    async def test_ttl_reads_millisecond_expiry(self, store: RedisCounterStore) -> None:
        await store.set("a", 1, 60)

        assert await store.ttl("a") == 60.0
        assert await store.ttl("missing") is None

    async def test_connect_and_close(self) -> None:
        client = MagicMock()
        client.ping = AsyncMock(return_value=True)
        client.aclose = AsyncMock()
        pool = MagicMock()
        pool.aclose = AsyncMock()

        with (
            patch("relay_service.infra.counters.redis.ConnectionPool") as pool_cls,
            patch("relay_service.infra.counters.redis.Redis", return_value=client),
        ):
            pool_cls.from_url.return_value = pool
            store = RedisCounterStore(url="redis://localhost:6379/0", pool_kwargs={"max_connections": 5})

            await store.connect()
            pool_cls.from_url.assert_called_once_with("redis://localhost:6379/0", max_connections=5)
            client.ping.assert_awaited_once()
            assert store.client is client

            await store.close()

        client.aclose.assert_awaited_once()
        pool.aclose.assert_awaited_once()
        with pytest.raises(RuntimeError):
            _ = store.client


class TestCreateCounterStore:
    def test_memory_backend(self) -> None:
        store = create_counter_store(CounterStoreSettings(backend="memory"))

        assert isinstance(store, InMemoryCounterStore)

    def test_redis_backend(self) -> None:
        store = create_counter_store(
            CounterStoreSettings(backend="redis"),
            RedisSettings(key_prefix="relay-test"),
        )

        assert isinstance(store, RedisCounterStore)
        assert store.key_prefix == "relay-test"
