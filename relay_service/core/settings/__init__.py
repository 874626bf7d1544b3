"""Modular Pydantic Settings v2 configuration.

Settings are split by domain (app/db/redis/broker/outbox/resilience/logging),
loaded from environment variables and an optional ``.env`` file, frozen,
and cached by the ``get_*_settings`` loaders.

    from relay_service.core.settings import get_outbox_settings

    settings = get_outbox_settings()
    settings.batch_size  # 100
"""

from __future__ import annotations

from .app import AppSettings
from .database import DatabaseSettings
from .loader import (
    clear_all_caches,
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
from .unified import Settings, get_settings

__all__ = [
    "AppSettings",
    "CircuitBreakerSettings",
    "CounterStoreSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "OutboxSettings",
    "RabbitSettings",
    "RateLimitSettings",
    "RedisSettings",
    "Settings",
    "clear_all_caches",
    "get_app_settings",
    "get_circuit_breaker_settings",
    "get_counter_store_settings",
    "get_db_settings",
    "get_logging_settings",
    "get_outbox_settings",
    "get_rabbit_settings",
    "get_rate_limit_settings",
    "get_redis_settings",
    "get_settings",
]
