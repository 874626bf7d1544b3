"""Resilience patterns for handling downstream failures.

- Circuit Breaker: stops calling a downstream that keeps failing and lets a
  single trial call through after a timeout

State is kept in the shared counter store, so every worker sees the same
circuit for a given downstream key.

Example:
    >>> from relay_service.infra.resilience import CircuitBreaker, CircuitOpenError
    >>>
    >>> breaker = CircuitBreaker(store, failure_threshold=5, timeout=60)
    >>> try:
    ...     await breaker.call(publisher.publish, event, key="broker")
    ... except CircuitOpenError as e:
    ...     logger.warning("Broker unavailable", extra={"retry_after": e.retry_after})
"""

from __future__ import annotations

from relay_service.core.settings import CircuitBreakerSettings, get_circuit_breaker_settings
from relay_service.infra.counters.base import KeyedExpiringStore
from relay_service.infra.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitOpenError,
    CircuitState,
)


def create_circuit_breaker(
    store: KeyedExpiringStore,
    settings: CircuitBreakerSettings | None = None,
) -> CircuitBreaker:
    """Build a circuit breaker from ``CircuitBreakerSettings``."""
    settings = settings or get_circuit_breaker_settings()
    return CircuitBreaker(
        store,
        failure_threshold=settings.failure_threshold,
        timeout=settings.timeout,
        state_ttl=settings.state_ttl,
    )


__all__ = [
    "CircuitBreaker",
    "CircuitOpenError",
    "CircuitState",
    "create_circuit_breaker",
]
