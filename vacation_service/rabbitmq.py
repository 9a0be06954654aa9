import logging

import aio_pika

from .config import RABBIT_URL
from .events import to_json

logger = logging.getLogger(__name__)

EXCHANGE_NAME = "domain_events"


async def connect() -> aio_pika.abc.AbstractRobustConnection:
    return await aio_pika.connect_robust(RABBIT_URL)


class EventPublisher:
    """
    Publishes booking events on the topic exchange, routed by event type.

    Disabled when no broker URL is configured. Publishing happens after the
    booking write has committed, so a broker failure is logged and swallowed
    rather than turned into a failed request.
    """

    def __init__(self, url: str | None = RABBIT_URL):
        self.url = url
        self.enabled = bool(url)
        self._connection: aio_pika.abc.AbstractRobustConnection | None = None
        self._exchange: aio_pika.abc.AbstractExchange | None = None

    @property
    def connected(self) -> bool:
        return self._connection is not None and not self._connection.is_closed

    async def start(self):
        if not self.enabled or self.connected:
            return

        try:
            self._connection = await aio_pika.connect_robust(self.url)
            channel = await self._connection.channel()
            self._exchange = await channel.declare_exchange(
                EXCHANGE_NAME,
                aio_pika.ExchangeType.TOPIC,
                durable=True,
            )
        except Exception as e:
            logger.warning("RabbitMQ connect failed: %s", e)
            self._connection = None
            self._exchange = None
            raise
        logger.info("Event publisher connected to exchange %s", EXCHANGE_NAME)

    async def publish_event(self, event: dict) -> bool:
        """Returns True once the broker accepted the event."""
        if not self.enabled:
            return False

        try:
            await self.start()
        except Exception:
            logger.error("Dropping event %s (%s), broker unreachable", event["event_id"], event["event_type"])
            return False

        message = aio_pika.Message(
            body=to_json(event).encode("utf-8"),
            content_type="application/json",
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
            message_id=event["event_id"],
            type=event["event_type"],
        )
        try:
            await self._exchange.publish(message, routing_key=event["event_type"])
        except Exception as e:
            logger.error("Publishing event %s (%s) failed: %s", event["event_id"], event["event_type"], e)
            return False
        return True

    async def stop(self):
        try:
            if self.connected:
                await self._connection.close()
        finally:
            self._connection = None
            self._exchange = None


publisher = EventPublisher()
