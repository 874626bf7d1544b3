"""Helpers that update the business metrics.

Components call these instead of touching prometheus objects directly so
label names stay consistent.
"""

from __future__ import annotations

from relay_service.infra.metrics import business

# ============================================================================
# Outbox Tracking
# ============================================================================


def track_outbox_published(event_type: str) -> None:
    """Track a record published and marked processed.

    Example:
        track_outbox_published("user.created")
    """
    business.outbox_published_total.labels(event_type=event_type).inc()


def track_outbox_failed(event_type: str, error_type: str) -> None:
    """Track a failed publish that was recorded on the outbox row."""
    business.outbox_failed_total.labels(event_type=event_type, error_type=error_type).inc()


def track_outbox_exhausted(event_type: str) -> None:
    """Track a failure on a record whose retry budget is used up."""
    business.outbox_exhausted_total.labels(event_type=event_type).inc()


# ============================================================================
# Rate Limit Tracking
# ============================================================================


def _action(key: str) -> str:
    # "login:1.2.3.4" -> "login"; the client part would explode cardinality
    return key.split(":", 1)[0]


def track_rate_limit_check(key: str, allowed: bool) -> None:
    """Track a rate limit check.

    Args:
        key: Limiter key, labelled by its action prefix only
        allowed: Whether the attempt was allowed

    Example:
        track_rate_limit_check("login:1.2.3.4", allowed=True)
    """
    result = "allowed" if allowed else "denied"
    business.rate_limit_checks_total.labels(action=_action(key), result=result).inc()
    if not allowed:
        business.rate_limit_hits_total.labels(action=_action(key)).inc()


# ============================================================================
# Circuit Breaker Tracking
# ============================================================================


def update_circuit_breaker_state(circuit_name: str, state: str) -> None:
    """Update circuit breaker state gauge.

    Args:
        circuit_name: Name of the circuit breaker
        state: Current state ('closed', 'half_open', 'open')

    Example:
        update_circuit_breaker_state("broker", "open")
    """
    state_map = {"closed": 0, "half_open": 1, "open": 2}
    business.circuit_breaker_state.labels(circuit_name=circuit_name).set(state_map.get(state, 0))


def track_circuit_breaker_failure(circuit_name: str) -> None:
    business.circuit_breaker_failures_total.labels(circuit_name=circuit_name).inc()


def track_circuit_breaker_success(circuit_name: str) -> None:
    business.circuit_breaker_successes_total.labels(circuit_name=circuit_name).inc()


def track_circuit_breaker_rejection(circuit_name: str) -> None:
    business.circuit_breaker_rejected_total.labels(circuit_name=circuit_name).inc()


def track_circuit_breaker_state_change(circuit_name: str, from_state: str, to_state: str) -> None:
    """Track a circuit breaker state change and update the state gauge."""
    business.circuit_breaker_state_changes_total.labels(
        circuit_name=circuit_name,
        from_state=from_state,
        to_state=to_state,
    ).inc()
    update_circuit_breaker_state(circuit_name, to_state)
