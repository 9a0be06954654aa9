"""
Closed vocabularies for booking / listing / payment statuses and roles.

Raw values coming from storage or clients are parsed with the ``parse_*``
helpers. A value that is not part of the vocabulary is returned as an
``Unknown`` instance instead of being mapped to some default, so callers
have to handle it explicitly.
"""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class Unknown:
    raw: str

    @property
    def value(self) -> str:
        return self.raw


class Role(str, Enum):
    DOCTOR = "doctor"
    ESTABLISHMENT = "establishment"
    ADMIN = "admin"


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


TERMINAL_STATUSES = frozenset(
    {BookingStatus.REJECTED, BookingStatus.CANCELLED, BookingStatus.COMPLETED}
)

# Older rows and some clients still use these names for a confirmed booking.
_BOOKING_ALIASES = {
    "booked": BookingStatus.CONFIRMED,
    "paid": BookingStatus.CONFIRMED,
}


class ListingStatus(str, Enum):
    DRAFT = "draft"
    AVAILABLE = "available"
    PENDING = "pending"
    BOOKED = "booked"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def norm(s) -> str:
    return (s or "").strip().lower()


def _parse(enum_cls, value, aliases=None):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, Unknown):
        return value
    raw = norm(value)
    if aliases and raw in aliases:
        return aliases[raw]
    try:
        return enum_cls(raw)
    except ValueError:
        return Unknown(str(value))


def parse_booking_status(value) -> BookingStatus | Unknown:
    return _parse(BookingStatus, value, _BOOKING_ALIASES)


def parse_listing_status(value) -> ListingStatus | Unknown:
    return _parse(ListingStatus, value)


def parse_payment_status(value) -> PaymentStatus | Unknown | None:
    if value is None:
        return None
    return _parse(PaymentStatus, value)


def parse_role(value) -> Role | Unknown:
    return _parse(Role, value)


def parse_status_filter(value: str | None) -> list[BookingStatus]:
    """
    "pending" -> [PENDING]; "pending, booked" -> [PENDING, CONFIRMED].
    Raises ValueError on an unknown status so the caller can reject the request.
    """
    if not value:
        return []
    statuses = []
    for part in value.split(","):
        if not part.strip():
            continue
        st = parse_booking_status(part)
        if isinstance(st, Unknown):
            raise ValueError(f"Unknown booking status: {st.raw}")
        if st not in statuses:
            statuses.append(st)
    return statuses


def stored_values(statuses) -> list[str]:
    """Every stored spelling that reads back as one of ``statuses``, aliases included."""
    values = []
    for st in statuses:
        values.append(st.value)
        values.extend(raw for raw, target in _BOOKING_ALIASES.items() if target == st)
    return values


STATUS_LABELS = {
    BookingStatus.PENDING: "Pending",
    BookingStatus.CONFIRMED: "Confirmed",
    BookingStatus.REJECTED: "Rejected",
    BookingStatus.CANCELLED: "Cancelled",
    BookingStatus.COMPLETED: "Completed",
}


def status_label(status: BookingStatus | Unknown) -> str:
    if isinstance(status, Unknown):
        return f"Unknown ({status.raw})"
    return STATUS_LABELS[status]
