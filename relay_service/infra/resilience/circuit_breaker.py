"""Circuit breaker backed by the shared expiring counter store.

The breaker protects calls to a named downstream (the ``key``). All state
lives in a ``KeyedExpiringStore`` so several workers share one view of each
downstream, and untouched state expires back to CLOSED after ``state_ttl``.

States:
    - CLOSED: Normal operation, calls pass through
    - OPEN: Failure threshold reached, calls are rejected
    - HALF_OPEN: Timeout elapsed, the next call runs as a trial

Transitions:
    CLOSED -> OPEN: failure count reaches the threshold
    OPEN -> HALF_OPEN: timeout elapsed since the last failure (checked on the next call)
    HALF_OPEN -> CLOSED: trial call succeeds, failure count reset
    HALF_OPEN -> OPEN: trial call fails

Store keys per downstream:
    circuit_breaker:{key}:state
    circuit_breaker:{key}:failures
    circuit_breaker:{key}:last_failure

Example:
    >>> breaker = CircuitBreaker(store, failure_threshold=5, timeout=60)
    >>>
    >>> await breaker.call(broker.publish, event, key="broker")
    >>>
    >>> @breaker.protected(key="payments")
    ... async def charge(amount: float) -> None:
    ...     await payments_client.charge(amount)
"""

from __future__ import annotations

import functools
import logging
import math
import time
from enum import StrEnum
from typing import TYPE_CHECKING, Any, ParamSpec, TypeVar

from relay_service.core.exceptions import ServiceUnavailableException
from relay_service.infra.metrics.tracking import (
    track_circuit_breaker_failure,
    track_circuit_breaker_rejection,
    track_circuit_breaker_state_change,
    track_circuit_breaker_success,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from relay_service.infra.counters.base import KeyedExpiringStore

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

KEY_PREFIX = "circuit_breaker"


class CircuitState(StrEnum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(ServiceUnavailableException):
    """Raised when the breaker rejects a call without invoking it.

    Distinct from whatever the protected operation raises, so callers can
    tell "not attempted" apart from "attempted and failed".

    Attributes:
        service: Downstream key whose circuit is open
        retry_after: Seconds until a trial call will be allowed
    """

    def __init__(self, service: str, retry_after: int) -> None:
        self.service = service
        self.retry_after = retry_after
        super().__init__(
            detail=f"Circuit breaker is OPEN for service: {service}",
            type="circuit-breaker-open",
            extra={"service": service, "retry_after": retry_after},
        )


class CircuitBreaker:
    """Per-key circuit breaker for calls to unreliable downstreams.

    One instance can guard any number of downstream keys; the threshold and
    timeout apply to all of them.

    Attributes:
        failure_threshold: Failures that open the circuit
        timeout: Seconds after the last failure before a trial call
        state_ttl: Seconds each state key lives without being rewritten
        expected_exception: Exception type that counts as a failure
    """

    def __init__(
        self,
        store: KeyedExpiringStore,
        *,
        failure_threshold: int = 5,
        timeout: float = 60.0,
        state_ttl: int = 3600,
        clock: Callable[[], float] = time.time,
        expected_exception: type[BaseException] | tuple[type[BaseException], ...] = Exception,
    ) -> None:
        """Initialize circuit breaker.

        Args:
            store: Shared store holding state, failure count and last failure.
            failure_threshold: Failures before the circuit opens. Must be > 0.
            timeout: Seconds an open circuit waits after the last failure
                before letting a trial call through. Must be > 0.
            state_ttl: TTL in seconds of every key written. Must be > 0.
            clock: Returns the current time in epoch seconds.
            expected_exception: Exception type(s) that count as failures.
                Others propagate without touching circuit state.

        Raises:
            ValueError: If any threshold or timeout value is invalid.
        """
        if failure_threshold <= 0:
            msg = "failure_threshold must be greater than 0"
            raise ValueError(msg)
        if timeout <= 0:
            msg = "timeout must be greater than 0"
            raise ValueError(msg)
        if state_ttl <= 0:
            msg = "state_ttl must be greater than 0"
            raise ValueError(msg)

        self._store = store
        self._clock = clock
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.state_ttl = state_ttl
        self.expected_exception = expected_exception

    @staticmethod
    def _keys(key: str) -> tuple[str, str, str]:
        base = f"{KEY_PREFIX}:{key}"
        return f"{base}:state", f"{base}:failures", f"{base}:last_failure"

    async def get_state(self, key: str = "default") -> CircuitState:
        """Current stored state; CLOSED when nothing is stored."""
        state_key, _, _ = self._keys(key)
        value = await self._store.get(state_key)
        return CircuitState(value) if value else CircuitState.CLOSED

    async def get_failure_count(self, key: str = "default") -> int:
        _, failures_key, _ = self._keys(key)
        value = await self._store.get(failures_key)
        return int(value or 0)

    async def get_last_failure(self, key: str = "default") -> float | None:
        _, _, last_failure_key = self._keys(key)
        value = await self._store.get(last_failure_key)
        return float(value) if value is not None else None

    async def is_open(self, key: str = "default") -> bool:
        """Check the stored state without evaluating the timeout."""
        return await self.get_state(key) == CircuitState.OPEN

    async def call(
        self,
        operation: Callable[..., Awaitable[T]],
        *args: Any,
        key: str = "default",
        **kwargs: Any,
    ) -> T:
        """Execute ``operation`` with circuit breaker protection.

        Args:
            operation: Async callable to execute.
            *args: Positional arguments for the operation.
            key: Downstream name the circuit is tracked under.
            **kwargs: Keyword arguments for the operation.

        Returns:
            Whatever the operation returns.

        Raises:
            CircuitOpenError: If the circuit is open and the timeout has not
                elapsed. The operation is not invoked.
            Exception: The operation's own error, re-raised after recording it.
        """
        state = await self.get_state(key)

        if state == CircuitState.OPEN:
            retry_after = await self._remaining_open_time(key)
            if retry_after > 0:
                track_circuit_breaker_rejection(key)
                logger.warning(
                    "Circuit breaker is OPEN, rejecting call",
                    extra={"circuit_breaker": key, "retry_after": retry_after},
                )
                raise CircuitOpenError(key, retry_after)
            await self._set_state(key, state, CircuitState.HALF_OPEN)
            state = CircuitState.HALF_OPEN

        try:
            result = await operation(*args, **kwargs)
        except self.expected_exception as e:
            await self._on_failure(key, state, e)
            raise

        await self._on_success(key, state)
        return result

    def protected(
        self,
        key: str = "default",
    ) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
        """Decorator that routes every call of the wrapped function through ``call``."""

        def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
            @functools.wraps(func)
            async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
                return await self.call(func, *args, key=key, **kwargs)

            return wrapper

        return decorator

    async def reset(self, key: str = "default") -> None:
        """Force the circuit CLOSED and drop the failure count."""
        previous = await self.get_state(key)
        state_key, failures_key, _ = self._keys(key)
        await self._store.set(state_key, CircuitState.CLOSED.value, self.state_ttl)
        await self._store.delete(failures_key)
        if previous != CircuitState.CLOSED:
            track_circuit_breaker_state_change(key, previous.value, CircuitState.CLOSED.value)
        logger.info("Circuit breaker manually reset", extra={"circuit_breaker": key})

    async def get_metrics(self, key: str = "default") -> dict[str, Any]:
        """Snapshot of one circuit's stored state and configuration."""
        state = await self.get_state(key)
        retry_after = await self._remaining_open_time(key) if state == CircuitState.OPEN else 0
        return {
            "name": key,
            "state": state.value,
            "failures": await self.get_failure_count(key),
            "last_failure": await self.get_last_failure(key),
            "retry_after": retry_after,
            "failure_threshold": self.failure_threshold,
            "timeout": self.timeout,
        }

    async def _remaining_open_time(self, key: str) -> int:
        """Whole seconds until a trial call is allowed; 0 when allowed now."""
        last_failure = await self.get_last_failure(key)
        if last_failure is None:
            return 0
        remaining = self.timeout - (self._clock() - last_failure)
        return math.ceil(remaining) if remaining > 0 else 0

    async def _set_state(self, key: str, previous: CircuitState, state: CircuitState) -> None:
        state_key, _, _ = self._keys(key)
        await self._store.set(state_key, state.value, self.state_ttl)
        if previous != state:
            track_circuit_breaker_state_change(key, previous.value, state.value)
            logger.info(
                f"Circuit breaker transitioning to {state.name}",
                extra={"circuit_breaker": key, "from_state": previous.value, "to_state": state.value},
            )

    async def _on_success(self, key: str, state: CircuitState) -> None:
        track_circuit_breaker_success(key)
        if state != CircuitState.HALF_OPEN:
            return

        _, failures_key, _ = self._keys(key)
        await self._set_state(key, state, CircuitState.CLOSED)
        await self._store.delete(failures_key)
        logger.info("Circuit breaker closed after successful call", extra={"circuit_breaker": key})

    async def _on_failure(self, key: str, state: CircuitState, exception: BaseException) -> None:
        _, failures_key, last_failure_key = self._keys(key)
        failures = await self._store.increment(failures_key, self.state_ttl, refresh_ttl=True)
        await self._store.set(last_failure_key, self._clock(), self.state_ttl)
        track_circuit_breaker_failure(key)

        extra = {
            "circuit_breaker": key,
            "failure_count": failures,
            "failure_threshold": self.failure_threshold,
            "exception_type": type(exception).__name__,
            "error": str(exception),
        }

        if failures >= self.failure_threshold or state == CircuitState.HALF_OPEN:
            await self._set_state(key, state, CircuitState.OPEN)
            logger.error("Circuit breaker opened due to failures", extra=extra)
        else:
            logger.warning("Circuit breaker recorded failure", extra=extra)


__all__ = ["KEY_PREFIX", "CircuitBreaker", "CircuitOpenError", "CircuitState"]
