import uuid
from datetime import datetime

from .errors import NotFound, ValidationFailed
from .models import Booking, Message, utcnow
from .security import Principal
from .transitions import counterpart_id, is_party

MAX_MESSAGE_LENGTH = 2000


async def _party_booking(store, principal: Principal, booking_id: str) -> Booking:
    booking = await store.get(Booking, booking_id)
    if booking is None or not is_party(booking, principal):
        raise NotFound("Booking not found")
    return booking


async def send_message(store, principal: Principal, booking_id: str, content: str, now: datetime | None = None) -> Message:
    content = (content or "").strip()
    if not content:
        raise ValidationFailed("Message must not be empty")
    if len(content) > MAX_MESSAGE_LENGTH:
        raise ValidationFailed(f"Message must be at most {MAX_MESSAGE_LENGTH} characters")

    async with store.transaction():
        booking = await _party_booking(store, principal, booking_id)
        message = Message(
            id=str(uuid.uuid4()),
            booking_id=booking.id,
            sender_id=principal.id,
            receiver_id=counterpart_id(booking, principal),
            content=content,
            read=False,
            created_at=now or utcnow(),
        )
        await store.insert(message)
    return message


async def list_messages(store, principal: Principal, booking_id: str) -> list[Message]:
    """Thread for one booking, oldest first. Marks what was sent to the principal as read."""
    async with store.transaction():
        await _party_booking(store, principal, booking_id)
        await store.update_where(
            Message,
            {"booking_id": booking_id, "receiver_id": principal.id, "read": False},
            {"read": True},
        )
    return await store.query(Message, {"booking_id": booking_id}, order_by="created_at", descending=False)
