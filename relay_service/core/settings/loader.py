"""LRU-cached settings loaders.

Settings are loaded and validated once, then cached for the lifetime of the
process.

Testing:
    In tests, clear the cache to force reload:
    get_outbox_settings.cache_clear()

    Or construct a model directly:
    settings = OutboxSettings(batch_size=10)
"""

from __future__ import annotations

from functools import lru_cache

from .app import AppSettings
from .database import DatabaseSettings
from .logs import LoggingSettings
from .outbox import OutboxSettings
from .rabbit import RabbitSettings
from .redis import RedisSettings
from .resilience import CircuitBreakerSettings, CounterStoreSettings, RateLimitSettings


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    """Get cached application settings."""
    return AppSettings()


@lru_cache(maxsize=1)
def get_db_settings() -> DatabaseSettings:
    """Get cached database settings."""
    return DatabaseSettings()


@lru_cache(maxsize=1)
def get_redis_settings() -> RedisSettings:
    """Get cached Redis settings."""
    return RedisSettings()


@lru_cache(maxsize=1)
def get_rabbit_settings() -> RabbitSettings:
    """Get cached RabbitMQ settings."""
    return RabbitSettings()


@lru_cache(maxsize=1)
def get_outbox_settings() -> OutboxSettings:
    """Get cached outbox dispatcher settings."""
    return OutboxSettings()


@lru_cache(maxsize=1)
def get_circuit_breaker_settings() -> CircuitBreakerSettings:
    """Get cached circuit breaker settings."""
    return CircuitBreakerSettings()


@lru_cache(maxsize=1)
def get_rate_limit_settings() -> RateLimitSettings:
    """Get cached rate limiter settings."""
    return RateLimitSettings()


@lru_cache(maxsize=1)
def get_counter_store_settings() -> CounterStoreSettings:
    """Get cached counter store settings."""
    return CounterStoreSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings."""
    return LoggingSettings()


def clear_all_caches() -> None:
    """Reset every cached settings instance (tests and reloads)."""
    for loader in (
        get_app_settings,
        get_db_settings,
        get_redis_settings,
        get_rabbit_settings,
        get_outbox_settings,
        get_circuit_breaker_settings,
        get_rate_limit_settings,
        get_counter_store_settings,
        get_logging_settings,
    ):
        loader.cache_clear()

    from .unified import get_settings

    get_settings.cache_clear()
