"""Unified settings composition for convenient access.

Usage:
    from relay_service.core.settings import get_settings

    settings = get_settings()
    print(settings.outbox.batch_size)
    print(settings.circuit.failure_threshold)

Each nested settings class still respects its own env prefix. Production
code that only needs one domain should prefer the individual loaders.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache

from .app import AppSettings
from .database import DatabaseSettings
from .loader import (
    get_app_settings,
    get_circuit_breaker_settings,
    get_counter_store_settings,
    get_db_settings,
    get_logging_settings,
    get_outbox_settings,
    get_rabbit_settings,
    get_rate_limit_settings,
    get_redis_settings,
)
from .logs import LoggingSettings
from .outbox import OutboxSettings
from .rabbit import RabbitSettings
from .redis import RedisSettings
from .resilience import CircuitBreakerSettings, CounterStoreSettings, RateLimitSettings


@dataclass(frozen=True, slots=True)
class Settings:
    """All settings domains in one object."""

    app: AppSettings = field(default_factory=get_app_settings)
    db: DatabaseSettings = field(default_factory=get_db_settings)
    redis: RedisSettings = field(default_factory=get_redis_settings)
    rabbit: RabbitSettings = field(default_factory=get_rabbit_settings)
    outbox: OutboxSettings = field(default_factory=get_outbox_settings)
    circuit: CircuitBreakerSettings = field(default_factory=get_circuit_breaker_settings)
    ratelimit: RateLimitSettings = field(default_factory=get_rate_limit_settings)
    counters: CounterStoreSettings = field(default_factory=get_counter_store_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached unified settings."""
    return Settings()
