import redis.asyncio as redis

from .config import REDIS_URL

redis_client = redis.from_url(REDIS_URL, decode_responses=True)

IDEMPOTENCY_TTL = 86400


def processed_key(event_id: str) -> str:
    return f"vacation:event:{event_id}"


async def is_processed(event_id: str) -> bool:
    return bool(await redis_client.exists(processed_key(event_id)))


async def mark_processed(event_id: str):
    await redis_client.set(processed_key(event_id), "1", ex=IDEMPOTENCY_TTL)
