"""RabbitMQ publishing for the outbox dispatcher using FastStream.

Every domain event goes to one topic exchange. The routing key is the event
type (``user.created``) so consumers can bind with patterns like ``user.*``.

Usage:
    publisher = BrokerPublisher.from_settings()
    await publisher.connect()
    await publisher.publish(event)
    await publisher.close()
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Protocol, Self, runtime_checkable

from faststream.rabbit import ExchangeType, RabbitBroker, RabbitExchange

from relay_service.core.settings import get_rabbit_settings

if TYPE_CHECKING:
    from relay_service.core.events.base import DomainEvent
    from relay_service.core.settings import RabbitSettings

logger = logging.getLogger(__name__)


@runtime_checkable
class EventPublisherPort(Protocol):
    """Anything that can deliver a typed domain event downstream.

    ``publish`` raises on failure; the dispatcher counts any exception as a
    failed attempt.
    """

    async def publish(self, event: DomainEvent) -> None: ...


class BrokerPublisher:
    """Publishes domain events to a RabbitMQ topic exchange."""

    def __init__(
        self,
        url: str,
        *,
        exchange_name: str,
        connection_timeout: float = 10.0,
        broker: RabbitBroker | None = None,
    ) -> None:
        self._url = url
        self.exchange = RabbitExchange(
            name=exchange_name,
            type=ExchangeType.TOPIC,
            durable=True,
            auto_delete=False,
        )
        self.connection_timeout = connection_timeout
        self._broker = broker
        self._connected = broker is not None

    @classmethod
    def from_settings(cls, settings: RabbitSettings | None = None) -> Self:
        """Build an unconnected publisher from ``RabbitSettings``."""
        settings = settings or get_rabbit_settings()
        return cls(
            settings.url,
            exchange_name=settings.exchange_name,
            connection_timeout=settings.connection_timeout,
        )

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        """Start the broker connection and declare the exchange.

        Raises:
            TimeoutError: If RabbitMQ does not answer within ``connection_timeout``.
        """
        if self._connected:
            return

        logger.info(
            "Starting RabbitMQ broker",
            extra={"exchange": self.exchange.name, "connection_timeout": self.connection_timeout},
        )
        self._broker = RabbitBroker(self._url, logger=logger)
        try:
            await asyncio.wait_for(self._broker.start(), timeout=self.connection_timeout)
            await self._broker.declare_exchange(self.exchange)
        except TimeoutError:
            logger.error(
                f"RabbitMQ connection timeout after {self.connection_timeout}s",
                extra={"exchange": self.exchange.name},
            )
            raise
        self._connected = True
        logger.info("RabbitMQ broker started successfully")

    async def close(self) -> None:
        """Close the broker connection."""
        if self._broker is None:
            return
        try:
            await self._broker.close()
            logger.info("RabbitMQ broker stopped successfully")
        except Exception as e:
            logger.exception("Error stopping RabbitMQ broker", extra={"error": str(e)})
        finally:
            self._broker = None
            self._connected = False

    async def publish(self, event: DomainEvent) -> None:
        """Publish ``event`` with its type as routing key.

        Raises:
            RuntimeError: If ``connect`` has not been called.
        """
        if self._broker is None:
            msg = "Broker not initialized. Call connect() first."
            raise RuntimeError(msg)

        await self._broker.publish(
            message=event.to_outbox_payload(),
            exchange=self.exchange,
            routing_key=event.routing_key,
            headers=event.headers(),
            correlation_id=event.correlation_id,
            message_id=event.event_id,
            persist=True,
        )
        logger.debug(
            "Event published to RabbitMQ",
            extra={
                "event_type": event.event_type,
                "event_id": event.event_id,
                "routing_key": event.routing_key,
            },
        )


__all__ = ["BrokerPublisher", "EventPublisherPort"]
