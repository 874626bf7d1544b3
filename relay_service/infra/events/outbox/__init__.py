"""Transactional outbox pattern implementation.

The outbox pattern ensures reliable event publishing by:
1. Writing events to a database table in the same transaction as domain changes
2. Draining the table asynchronously into the message broker
3. Marking records as processed, or failed with a bounded retry count

This guarantees at-least-once delivery semantics.
"""

from relay_service.infra.events.outbox.models import (
    InvalidStatusTransition,
    OutboxRecord,
    OutboxStatus,
)
from relay_service.infra.events.outbox.processor import (
    DrainResult,
    OutboxDispatcher,
    create_outbox_dispatcher,
    get_outbox_dispatcher,
    start_outbox_dispatcher,
    stop_outbox_dispatcher,
)
from relay_service.infra.events.outbox.repository import OutboxRepository

__all__ = [
    "DrainResult",
    "InvalidStatusTransition",
    "OutboxDispatcher",
    "OutboxRecord",
    "OutboxRepository",
    "OutboxStatus",
    "create_outbox_dispatcher",
    "get_outbox_dispatcher",
    "start_outbox_dispatcher",
    "stop_outbox_dispatcher",
]
