"""Message broker integration (RabbitMQ via FastStream)."""

from relay_service.infra.messaging.broker import BrokerPublisher, EventPublisherPort

__all__ = ["BrokerPublisher", "EventPublisherPort"]
