import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .models import as_utc
from .statuses import (
    BookingStatus,
    PaymentStatus,
    Unknown,
    parse_booking_status,
    parse_payment_status,
)

logger = logging.getLogger(__name__)


# ---- Payment badge ----

@dataclass(frozen=True)
class PaymentBadge:
    label: str
    severity: str  # positive/negative/warning


PAID_BADGE = PaymentBadge("Paid", "positive")
FAILED_BADGE = PaymentBadge("Payment failed", "negative")
PENDING_BADGE = PaymentBadge("Pending payment", "warning")

PAYMENT_ELIGIBLE = frozenset({BookingStatus.CONFIRMED, BookingStatus.COMPLETED})


def derive_payment_badge(payment_status, booking_status) -> PaymentBadge | None:
    """
    No badge before the booking is confirmed. Once confirmed or completed,
    paid and failed map to their own badge and anything else (None included)
    reads as pending.
    """
    if parse_booking_status(booking_status) not in PAYMENT_ELIGIBLE:
        return None

    ps = parse_payment_status(payment_status)
    if ps == PaymentStatus.PAID:
        return PAID_BADGE
    if ps == PaymentStatus.FAILED:
        return FAILED_BADGE
    return PENDING_BADGE


# ---- Date range buckets ----

class DateRange(str, Enum):
    ALL = "all"
    UPCOMING = "upcoming"
    CURRENT = "current"
    PAST = "past"


def in_date_range(date_range: DateRange, start: datetime, end: datetime, now: datetime) -> bool:
    start = as_utc(start)
    end = as_utc(end)
    if date_range == DateRange.UPCOMING:
        return start > now
    if date_range == DateRange.PAST:
        return start < now
    if date_range == DateRange.CURRENT:
        return start <= now <= end
    return True


# ---- Dashboard grouping ----

BUCKETS = ("pending", "active", "completed", "cancelled")

_BUCKET_BY_STATUS = {
    BookingStatus.PENDING: "pending",
    BookingStatus.CONFIRMED: "active",
    BookingStatus.COMPLETED: "completed",
    BookingStatus.CANCELLED: "cancelled",
    BookingStatus.REJECTED: "cancelled",
}


def bucket_for(status) -> str:
    st = parse_booking_status(status)
    if isinstance(st, Unknown):
        logger.warning("Booking with unknown status %r counted as pending", st.raw)
        return "pending"
    return _BUCKET_BY_STATUS[st]


def group_by_bucket(bookings) -> dict[str, list]:
    groups = {name: [] for name in BUCKETS}
    for booking in bookings:
        groups[bucket_for(booking.status)].append(booking)
    return groups


def bucket_counts(bookings) -> dict[str, int]:
    return {name: len(items) for name, items in group_by_bucket(bookings).items()}


# ---- Timeline ----

@dataclass(frozen=True)
class TimelineStep:
    id: str
    label: str
    state: str  # done/current/upcoming/cancelled


_TIMELINE = (
    ("requested", "Request sent", BookingStatus.PENDING),
    ("confirmed", "Booking confirmed", BookingStatus.CONFIRMED),
    ("completed", "Vacation completed", BookingStatus.COMPLETED),
)
_ORDER = [step[2] for step in _TIMELINE]


def booking_timeline(status) -> list[TimelineStep]:
    st = parse_booking_status(status)

    if st in (BookingStatus.CANCELLED, BookingStatus.REJECTED):
        return [
            TimelineStep(step_id, label, "done" if i == 0 else "cancelled")
            for i, (step_id, label, _) in enumerate(_TIMELINE)
        ]

    current = _ORDER.index(st) if st in _ORDER else 0
    steps = []
    for i, (step_id, label, _) in enumerate(_TIMELINE):
        if i < current:
            state = "done"
        elif i == current:
            # the last step is reached, nothing left in progress
            state = "done" if st == BookingStatus.COMPLETED else "current"
        else:
            state = "upcoming"
        steps.append(TimelineStep(step_id, label, state))
    return steps
