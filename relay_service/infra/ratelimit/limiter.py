"""Fixed-window rate limiting on the shared counter store.

A window opens on the first attempt for a key and lasts ``decay_minutes``.
Up to ``max_attempts`` attempts are allowed inside it; after that every
attempt is rejected until the window expires, at which point the count starts
over. Bursts straddling a window boundary can therefore reach twice the
limit; this is a known property of fixed windows.

Store keys per limited key (hashed so arbitrary client identifiers are safe):
    rate_limit:{md5(key)}            attempt count
    rate_limit:{md5(key)}:expires    epoch second the window closes
"""

from __future__ import annotations

import hashlib
import logging
import math
import time
from typing import TYPE_CHECKING, Any

from relay_service.core.exceptions import RateLimitException
from relay_service.infra.metrics.tracking import track_rate_limit_check

if TYPE_CHECKING:
    from collections.abc import Callable

    from relay_service.infra.counters.base import KeyedExpiringStore

logger = logging.getLogger(__name__)

KEY_PREFIX = "rate_limit"


class RateLimiter:
    """Fixed-window attempt counter keyed by arbitrary strings.

    The limiter never raises for a rejected attempt; ``attempt`` returns
    False. Use ``check_rate_limit`` when an exception is wanted.

    Attributes:
        max_attempts: Attempts allowed per window
        decay_minutes: Window length in minutes

    Example:
        limiter = RateLimiter(store, max_attempts=5, decay_minutes=15)

        if not await limiter.attempt(f"login:{ip}"):
            wait = await limiter.available_in(f"login:{ip}")
            ...
        # after a successful login
        await limiter.clear(f"login:{ip}")
    """

    def __init__(
        self,
        store: KeyedExpiringStore,
        *,
        max_attempts: int,
        decay_minutes: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_attempts <= 0:
            msg = "max_attempts must be greater than 0"
            raise ValueError(msg)
        if decay_minutes <= 0:
            msg = "decay_minutes must be greater than 0"
            raise ValueError(msg)

        self._store = store
        self._clock = clock
        self.max_attempts = max_attempts
        self.decay_minutes = decay_minutes

    @property
    def decay_seconds(self) -> int:
        return self.decay_minutes * 60

    @staticmethod
    def _keys(key: str) -> tuple[str, str]:
        digest = hashlib.md5(key.encode(), usedforsecurity=False).hexdigest()
        base = f"{KEY_PREFIX}:{digest}"
        return base, f"{base}:expires"

    async def attempts(self, key: str) -> int:
        """Attempts recorded in the current window."""
        count_key, _ = self._keys(key)
        return int(await self._store.get(count_key) or 0)

    async def too_many_attempts(self, key: str) -> bool:
        return await self.attempts(key) >= self.max_attempts

    async def remaining(self, key: str) -> int:
        """Attempts still allowed in the current window."""
        return max(0, self.max_attempts - await self.attempts(key))

    async def attempt(self, key: str) -> bool:
        """Record an attempt if the window allows it.

        Returns:
            True if the attempt was allowed and counted, False if the limit
            was already reached (nothing is written in that case).
        """
        if await self.too_many_attempts(key):
            track_rate_limit_check(key, allowed=False)
            logger.warning(
                "Rate limit exceeded",
                extra={
                    "key": key,
                    "max_attempts": self.max_attempts,
                    "available_in": await self.available_in(key),
                },
            )
            return False

        count_key, expires_key = self._keys(key)
        count = await self._store.increment(count_key, self.decay_seconds)
        if count == 1:
            # New window: remember when it closes
            await self._store.set(
                expires_key,
                self._clock() + self.decay_seconds,
                self.decay_seconds,
            )

        if count > self.max_attempts:
            # Lost a race with a concurrent attempt that took the last slot
            track_rate_limit_check(key, allowed=False)
            logger.warning(
                "Rate limit exceeded",
                extra={"key": key, "max_attempts": self.max_attempts, "attempts": count},
            )
            return False

        track_rate_limit_check(key, allowed=True)
        logger.debug(
            "Rate limit attempt recorded",
            extra={"key": key, "attempts": count, "max_attempts": self.max_attempts},
        )
        return True

    async def available_in(self, key: str) -> int:
        """Seconds until the current window closes; 0 without a window."""
        count_key, expires_key = self._keys(key)
        expires_at = await self._store.get(expires_key)
        if expires_at is None:
            # Window opened but its deadline was never written
            remaining = await self._store.ttl(count_key)
            return math.ceil(remaining) if remaining and remaining > 0 else 0
        return max(0, math.ceil(float(expires_at) - self._clock()))

    async def clear(self, key: str) -> None:
        """Drop the window for ``key`` (e.g. after a successful login)."""
        await self._store.delete(*self._keys(key))
        logger.debug("Rate limit cleared", extra={"key": key})

    async def status(self, key: str) -> dict[str, Any]:
        """Snapshot of a key's window for diagnostics."""
        attempts = await self.attempts(key)
        return {
            "key": key,
            "attempts": attempts,
            "max_attempts": self.max_attempts,
            "remaining": max(0, self.max_attempts - attempts),
            "available_in": await self.available_in(key),
            "limited": attempts >= self.max_attempts,
        }


async def check_rate_limit(limiter: RateLimiter, key: str) -> None:
    """Record an attempt and raise if it was rejected.

    Raises:
        RateLimitException: Carrying the seconds until the window closes.

    Example:
        await check_rate_limit(limiter, f"register:{client_ip}")
    """
    if await limiter.attempt(key):
        return

    retry_after = await limiter.available_in(key)
    raise RateLimitException(
        detail=f"Too many attempts. Try again in {retry_after} seconds",
        retry_after=retry_after,
        extra={"max_attempts": limiter.max_attempts},
    )


__all__ = ["KEY_PREFIX", "RateLimiter", "check_rate_limit"]
