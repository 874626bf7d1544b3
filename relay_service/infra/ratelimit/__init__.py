"""Fixed-window rate limiting."""

from __future__ import annotations

from relay_service.core.settings import RateLimitSettings, get_rate_limit_settings
from relay_service.infra.counters.base import KeyedExpiringStore
from relay_service.infra.ratelimit.limiter import RateLimiter, check_rate_limit


def create_rate_limiter(
    store: KeyedExpiringStore,
    settings: RateLimitSettings | None = None,
) -> RateLimiter:
    """Build a rate limiter from ``RateLimitSettings``."""
    settings = settings or get_rate_limit_settings()
    return RateLimiter(
        store,
        max_attempts=settings.max_attempts,
        decay_minutes=settings.decay_minutes,
    )


__all__ = ["RateLimiter", "check_rate_limit", "create_rate_limiter"]
