"""Circuit breaker and rate limiter settings."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

CounterBackend = Literal["memory", "redis"]


class CircuitBreakerSettings(BaseSettings):
    """Circuit breaker thresholds.

    Environment variables use CIRCUIT_ prefix.
    Example: CIRCUIT_FAILURE_THRESHOLD=5, CIRCUIT_TIMEOUT=60
    """

    failure_threshold: int = Field(
        default=5,
        ge=1,
        description="Consecutive failures that open the circuit.",
    )
    timeout: float = Field(
        default=60.0,
        gt=0,
        description="Seconds an open circuit waits before allowing a trial call.",
    )
    state_ttl: int = Field(
        default=3600,
        ge=1,
        description="Seconds untouched circuit state is kept before it resets to CLOSED.",
    )

    model_config = SettingsConfigDict(
        env_prefix="CIRCUIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )


class RateLimitSettings(BaseSettings):
    """Fixed-window limiter parameters.

    Environment variables use RATELIMIT_ prefix.
    Example: RATELIMIT_MAX_ATTEMPTS=5, RATELIMIT_DECAY_MINUTES=15
    """

    max_attempts: int = Field(
        default=5,
        ge=1,
        description="Attempts permitted per window.",
    )
    decay_minutes: int = Field(
        default=15,
        ge=1,
        description="Window length in minutes.",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATELIMIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )


class CounterStoreSettings(BaseSettings):
    """Backend selection for the shared expiring counter store.

    Environment variables use COUNTERS_ prefix.
    Example: COUNTERS_BACKEND=redis
    """

    backend: CounterBackend = Field(
        default="memory",
        description=(
            "Store backing circuit breakers and rate limiters. "
            "'memory' is only safe for a single process."
        ),
    )

    model_config = SettingsConfigDict(
        env_prefix="COUNTERS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
