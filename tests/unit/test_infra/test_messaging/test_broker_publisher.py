"""Tests for the FastStream-backed broker publisher."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from relay_service.core.settings import RabbitSettings
from relay_service.features.accounts.events import UserCreatedEvent
from relay_service.infra.messaging import BrokerPublisher, EventPublisherPort


@pytest.fixture
def event() -> UserCreatedEvent:
    return UserCreatedEvent(
        user_id="user-1",
        email="ada@example.com",
        name="Ada",
        correlation_id="corr-1",
    )


@pytest.fixture
def mock_broker() -> MagicMock:
    broker = MagicMock()
    broker.start = AsyncMock()
    broker.close = AsyncMock()
    broker.publish = AsyncMock()
    broker.declare_exchange = AsyncMock()
    return broker


class TestBrokerPublisher:
    def test_satisfies_port(self, mock_broker: MagicMock) -> None:
        publisher = BrokerPublisher("amqp://localhost", exchange_name="events", broker=mock_broker)

        assert isinstance(publisher, EventPublisherPort)
        assert publisher.is_connected

    def test_from_settings(self) -> None:
        publisher = BrokerPublisher.from_settings(
            RabbitSettings(host="rabbit", exchange_name="relay.events", connection_timeout=3)
        )

        assert publisher.exchange.name == "relay.events"
        assert publisher.connection_timeout == 3
        assert not publisher.is_connected

    async def test_publish_routes_by_event_type(
        self,
        mock_broker: MagicMock,
        event: UserCreatedEvent,
    ) -> None:
        publisher = BrokerPublisher("amqp://localhost", exchange_name="events", broker=mock_broker)

        await publisher.publish(event)

        kwargs = mock_broker.publish.await_args.kwargs
        assert kwargs["message"] == event.to_outbox_payload()
        assert kwargs["routing_key"] == "user.created"
        assert kwargs["exchange"] is publisher.exchange
        assert kwargs["message_id"] == event.event_id
        assert kwargs["correlation_id"] == "corr-1"
        assert kwargs["headers"]["x-event-type"] == "user.created"
        assert kwargs["persist"] is True

    async def test_publish_requires_connection(self, event: UserCreatedEvent) -> None:
        publisher = BrokerPublisher("amqp://localhost", exchange_name="events")

        with pytest.raises(RuntimeError, match="Call connect\\(\\) first"):
            await publisher.publish(event)

    async def test_publish_errors_propagate(
        self,
        mock_broker: MagicMock,
        event: UserCreatedEvent,
    ) -> None:
        mock_broker.publish.side_effect = ConnectionError("channel closed")
        publisher = BrokerPublisher("amqp://localhost", exchange_name="events", broker=mock_broker)

        with pytest.raises(ConnectionError):
            await publisher.publish(event)

    async def test_connect_declares_exchange_and_close(self, mock_broker: MagicMock) -> None:
        with patch(
            "relay_service.infra.messaging.broker.RabbitBroker",
            return_value=mock_broker,
        ) as broker_cls:
            publisher = BrokerPublisher("amqp://localhost", exchange_name="events")
            await publisher.connect()

        broker_cls.assert_called_once()
        mock_broker.start.assert_awaited_once()
        mock_broker.declare_exchange.assert_awaited_once_with(publisher.exchange)
        assert publisher.is_connected

        await publisher.close()

        mock_broker.close.assert_awaited_once()
        assert not publisher.is_connected

    async def test_connect_timeout(self, mock_broker: MagicMock) -> None:
        async def hang() -> None:
            await asyncio.sleep(10)

        mock_broker.start = AsyncMock(side_effect=hang)
        with patch("relay_service.infra.messaging.broker.RabbitBroker", return_value=mock_broker):
            publisher = BrokerPublisher(
                "amqp://localhost",
                exchange_name="events",
                connection_timeout=0.01,
            )
            with pytest.raises(TimeoutError):
                await publisher.connect()

        assert not publisher.is_connected
