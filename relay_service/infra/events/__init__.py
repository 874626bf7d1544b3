"""Event infrastructure for reliable event delivery.

This package provides the infrastructure for the transactional outbox pattern:
- OutboxRecord model for storing pending events
- OutboxDispatcher for publishing records to the message broker
- OutboxRepository for persistence operations
"""

from relay_service.infra.events.outbox import (
    DrainResult,
    OutboxDispatcher,
    OutboxRecord,
    OutboxRepository,
    OutboxStatus,
)

__all__ = [
    "DrainResult",
    "OutboxDispatcher",
    "OutboxRecord",
    "OutboxRepository",
    "OutboxStatus",
]
