import json
from contextlib import asynccontextmanager

import pytest
from sqlalchemy.exc import OperationalError

from vacation_service import consumer, redis_client
from vacation_service.errors import Conflict, QueryFailure
from vacation_service.models import Booking

from .helpers import add_booking, add_listing


class FakeRedis:
    def __init__(self):
        self.data = {}

    async def exists(self, key):
        return 1 if key in self.data else 0

    async def set(self, key, value, ex=None):
        self.data[key] = value


@pytest.fixture
def fake_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(redis_client, "redis_client", fake)
    return fake


def _event(event_type="payment.succeeded", booking_id="bk-1", event_id="evt-1"):
    return {"event_id": event_id, "event_type": event_type, "data": {"booking_id": booking_id}}


async def _payment_status(session_factory, booking_id="bk-1"):
    async with session_factory() as session:
        booking = await session.get(Booking, booking_id)
        return booking.payment_status, booking.version


async def test_payment_event_updates_confirmed_booking(store, session_factory, fake_redis):
    listing = await add_listing(store, status="booked")
    await add_booking(store, listing, status="confirmed")

    assert await consumer.process_payload(_event(), session_factory=session_factory)
    assert await _payment_status(session_factory) == ("paid", 2)
    assert redis_client.processed_key("evt-1") in fake_redis.data


async def test_replayed_event_is_applied_once(store, session_factory, fake_redis):
    listing = await add_listing(store, status="booked")
    await add_booking(store, listing, status="confirmed")

    assert await consumer.process_payload(_event(), session_factory=session_factory)
    assert not await consumer.process_payload(_event(), session_factory=session_factory)
    assert await _payment_status(session_factory) == ("paid", 2)


async def test_failed_payment(store, session_factory, fake_redis):
    listing = await add_listing(store, status="booked")
    await add_booking(store, listing, status="confirmed")

    assert await consumer.process_payload(_event("payment.failed"), session_factory=session_factory)
    assert (await _payment_status(session_factory))[0] == "failed"


async def test_pending_booking_is_not_payable(store, session_factory, fake_redis):
    listing = await add_listing(store)
    await add_booking(store, listing, status="pending")

    assert not await consumer.process_payload(_event(), session_factory=session_factory)
    assert await _payment_status(session_factory) == (None, 1)
    # not retried forever
    assert redis_client.processed_key("evt-1") in fake_redis.data


async def test_unknown_booking(session_factory, fake_redis):
    assert not await consumer.process_payload(_event(booking_id="nope"), session_factory=session_factory)


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"event_id": "evt-1", "event_type": "payment.refunded", "data": {"booking_id": "bk-1"}},
        {"event_id": "evt-1", "event_type": "payment.succeeded", "data": {}},
        {"event_type": "payment.succeeded", "data": {"booking_id": "bk-1"}},
    ],
)
async def test_malformed_events_are_ignored(payload, session_factory, fake_redis):
    assert not await consumer.process_payload(payload, session_factory=session_factory)
    assert fake_redis.data == {}


class UnreachableSession:
    async def get(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    async def rollback(self):
        pass


@asynccontextmanager
async def unreachable_factory():
    yield UnreachableSession()


class FakeMessage:
    """Mimics aio-pika's process() context: ack on success, reject on error, skip if settled."""

    def __init__(self, body: bytes):
        self.body = body
        self.processed = False
        self.outcome = None

    @asynccontextmanager
    async def process(self, requeue=False, ignore_processed=False):
        try:
            yield self
        except Exception:
            if not (ignore_processed and self.processed):
                await self.reject(requeue=requeue)
            raise
        if not (ignore_processed and self.processed):
            await self.ack()

    async def ack(self):
        self.processed = True
        self.outcome = "ack"

    async def nack(self, requeue=True):
        self.processed = True
        self.outcome = ("nack", requeue)

    async def reject(self, requeue=False):
        self.processed = True
        self.outcome = ("reject", requeue)


async def test_store_failure_leaves_event_unprocessed(fake_redis):
    with pytest.raises(QueryFailure):
        await consumer.process_payload(_event(), session_factory=unreachable_factory)
    assert fake_redis.data == {}


async def test_store_failure_requeues_the_message(monkeypatch):
    async def failing(payload):
        raise QueryFailure("store timeout")

    monkeypatch.setattr(consumer, "process_payload", failing)
    message = FakeMessage(json.dumps(_event()).encode())

    await consumer.handle_message(message)
    assert message.outcome == ("nack", True)


async def test_exhausted_conflicts_requeue_the_message(monkeypatch):
    async def conflicting(payload):
        raise Conflict("bk-1 kept changing")

    monkeypatch.setattr(consumer, "process_payload", conflicting)
    message = FakeMessage(json.dumps(_event()).encode())

    await consumer.handle_message(message)
    assert message.outcome == ("nack", True)


async def test_applied_and_undecodable_messages_are_acked(monkeypatch):
    seen = []

    async def applied(payload):
        seen.append(payload["event_id"])
        return True

    monkeypatch.setattr(consumer, "process_payload", applied)

    ok = FakeMessage(json.dumps(_event()).encode())
    await consumer.handle_message(ok)
    assert ok.outcome == "ack"
    assert seen == ["evt-1"]

    garbage = FakeMessage(b"\xff not json")
    await consumer.handle_message(garbage)
    assert garbage.outcome == "ack"
    assert seen == ["evt-1"]
