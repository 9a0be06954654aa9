import uuid

from .errors import NotFound
from .models import Notification, utcnow
from .security import Principal
from .statuses import BookingStatus, Role

_PARTY = {
    Role.DOCTOR: "The doctor",
    Role.ESTABLISHMENT: "The establishment",
}

_TRANSITION_MESSAGES = {
    BookingStatus.CONFIRMED: "{party} accepted your booking request.",
    BookingStatus.REJECTED: "{party} declined your booking request.",
    BookingStatus.CANCELLED: "{party} cancelled the booking.",
    BookingStatus.COMPLETED: "{party} marked the vacation as completed.",
}


def transition_message(target: BookingStatus, actor_role: Role, reason: str | None = None) -> str:
    party = _PARTY.get(actor_role, "The other party")
    template = _TRANSITION_MESSAGES.get(target, "The status of your booking was updated.")
    text = template.format(party=party)
    if target == BookingStatus.CANCELLED and reason:
        text = f"{text} Reason: {reason}"
    return text


async def notify(store, user_id: str, title: str, message: str, type: str = "info", booking_id: str | None = None):
    notification = Notification(
        id=str(uuid.uuid4()),
        user_id=user_id,
        title=title,
        message=message,
        type=type,
        related_booking_id=booking_id,
        read=False,
        created_at=utcnow(),
    )
    return await store.insert(notification)


async def list_notifications(store, principal: Principal, unread_only: bool = False):
    filters = {"user_id": principal.id}
    if unread_only:
        filters["read"] = False
    return await store.query(Notification, filters, order_by="created_at")


async def mark_notification_read(store, principal: Principal, notification_id: str):
    async with store.transaction():
        notification = await store.get(Notification, notification_id)
        if notification is None or notification.user_id != principal.id:
            raise NotFound("Notification not found")
        await store.update(Notification, notification_id, {"read": True})
    return await store.get(Notification, notification_id)
