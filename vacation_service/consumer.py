import json
import logging

import aio_pika

from . import redis_client
from .bookings import apply_payment_event
from .db import SessionLocal
from .errors import Conflict, QueryFailure
from .rabbitmq import connect, EXCHANGE_NAME
from .statuses import PaymentStatus
from .store import Store

logger = logging.getLogger(__name__)

QUEUE_NAME = "vacation_service_payment_events"

ROUTING_KEYS = {
    "payment.succeeded": PaymentStatus.PAID,
    "payment.failed": PaymentStatus.FAILED,
    "payment.pending": PaymentStatus.PENDING,
}


async def process_payload(payload: dict, session_factory=SessionLocal) -> bool:
    """Apply one payment event. Returns True when the booking was updated."""
    event_id = payload.get("event_id")
    event_type = payload.get("event_type")
    data = payload.get("data") or {}
    booking_id = data.get("booking_id")

    payment_status = ROUTING_KEYS.get(event_type)
    if payment_status is None or not booking_id or not event_id:
        logger.warning("Ignoring malformed payment event: %s", payload)
        return False

    if await redis_client.is_processed(event_id):
        logger.info("Payment event %s already processed", event_id)
        return False

    async with session_factory() as session:
        applied = await apply_payment_event(Store(session), booking_id, payment_status)

    await redis_client.mark_processed(event_id)
    return applied


async def handle_message(message: aio_pika.abc.AbstractIncomingMessage):
    # acked on success; requeued when the store could not take the update yet
    async with message.process(requeue=False, ignore_processed=True):
        try:
            payload = json.loads(message.body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            logger.warning("Dropping undecodable payment event")
            return
        if not isinstance(payload, dict):
            logger.warning("Dropping payment event that is not a JSON object")
            return

        try:
            await process_payload(payload)
        except (QueryFailure, Conflict) as e:
            logger.warning("Payment event %s not applied, requeueing: %s", payload.get("event_id"), e)
            await message.nack(requeue=True)


async def start_consumer():
    conn = await connect()
    channel = await conn.channel()
    await channel.set_qos(prefetch_count=50)

    exchange = await channel.declare_exchange(
        EXCHANGE_NAME, aio_pika.ExchangeType.TOPIC, durable=True
    )

    queue = await channel.declare_queue(QUEUE_NAME, durable=True)
    for rk in ROUTING_KEYS:
        await queue.bind(exchange, routing_key=rk)

    await queue.consume(handle_message)
    logger.info("Payment event consumer started")
    return conn
