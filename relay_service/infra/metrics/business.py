"""Outbox, circuit breaker and rate limiter metrics."""

from __future__ import annotations

from prometheus_client import Counter, Gauge

from relay_service.infra.metrics.prometheus import REGISTRY

# ============================================================================
# Outbox Metrics
# ============================================================================

outbox_published_total = Counter(
    "outbox_published_total",
    "Total number of outbox records published to the broker",
    ["event_type"],
    registry=REGISTRY,
)

outbox_failed_total = Counter(
    "outbox_failed_total",
    "Total number of failed outbox publish attempts",
    ["event_type", "error_type"],
    registry=REGISTRY,
)

outbox_exhausted_total = Counter(
    "outbox_exhausted_total",
    "Total number of publish failures on records with no retry budget left",
    ["event_type"],
    registry=REGISTRY,
)

# ============================================================================
# Rate Limiting Metrics
# ============================================================================

rate_limit_hits_total = Counter(
    "rate_limit_hits_total",
    "Total number of times rate limit was hit",
    ["action"],
    registry=REGISTRY,
)

rate_limit_checks_total = Counter(
    "rate_limit_checks_total",
    "Total number of rate limit checks",
    ["action", "result"],
    registry=REGISTRY,
)

# ============================================================================
# Circuit Breaker Metrics
# ============================================================================

circuit_breaker_state = Gauge(
    "circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=half_open, 2=open)",
    ["circuit_name"],
    registry=REGISTRY,
)

circuit_breaker_failures_total = Counter(
    "circuit_breaker_failures_total",
    "Total number of circuit breaker failures",
    ["circuit_name"],
    registry=REGISTRY,
)

circuit_breaker_successes_total = Counter(
    "circuit_breaker_successes_total",
    "Total number of circuit breaker successes",
    ["circuit_name"],
    registry=REGISTRY,
)

circuit_breaker_state_changes_total = Counter(
    "circuit_breaker_state_changes_total",
    "Total number of circuit breaker state changes",
    ["circuit_name", "from_state", "to_state"],
    registry=REGISTRY,
)

circuit_breaker_rejected_total = Counter(
    "circuit_breaker_rejected_total",
    "Total number of calls rejected by circuit breaker",
    ["circuit_name"],
    registry=REGISTRY,
)
