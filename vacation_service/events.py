import json
import uuid
from datetime import datetime, timezone


def build_event(event_type: str, data: dict) -> dict:
    return {
        "event_id": str(uuid.uuid4()),
        "event_type": event_type,
        "occurred_at": datetime.now(timezone.utc).isoformat(),
        "data": data,
    }


def booking_event(event_type: str, booking, **extra) -> dict:
    data = {
        "booking_id": booking.id,
        "vacation_post_id": booking.vacation_post_id,
        "doctor_id": booking.doctor_id,
        "establishment_id": booking.establishment_id,
        "status": booking.status,
        "payment_status": booking.payment_status,
        "version": booking.version,
    }
    data.update(extra)
    return build_event(event_type, data)


def to_json(event: dict) -> str:
    return json.dumps(event, separators=(",", ":"), ensure_ascii=False, default=str)
