"""
Booking status transition table.

    pending   -> confirmed   listing owner (doctor)
    pending   -> rejected    listing owner (doctor)
    confirmed -> completed   listing owner (doctor)
    confirmed -> cancelled   either party
    pending   -> cancelled   requester

Checks run in a fixed order: role for the target, party membership, edge,
actor rule for the edge, then policy gates. Nothing here touches storage.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from . import config
from .errors import BookingError, Forbidden, InvalidTransition
from .models import as_utc, utcnow
from .security import Principal
from .statuses import BookingStatus, Role, Unknown, parse_booking_status


class Actor(str, Enum):
    LISTING_OWNER = "listing_owner"
    EITHER_PARTY = "either_party"
    REQUESTER = "requester"


TRANSITIONS: dict[tuple[BookingStatus, BookingStatus], Actor] = {
    (BookingStatus.PENDING, BookingStatus.CONFIRMED): Actor.LISTING_OWNER,
    (BookingStatus.PENDING, BookingStatus.REJECTED): Actor.LISTING_OWNER,
    (BookingStatus.CONFIRMED, BookingStatus.COMPLETED): Actor.LISTING_OWNER,
    (BookingStatus.CONFIRMED, BookingStatus.CANCELLED): Actor.EITHER_PARTY,
    (BookingStatus.PENDING, BookingStatus.CANCELLED): Actor.REQUESTER,
}

_ACTOR_ROLES = {
    Actor.LISTING_OWNER: {Role.DOCTOR},
    Actor.EITHER_PARTY: {Role.DOCTOR, Role.ESTABLISHMENT},
    Actor.REQUESTER: {Role.DOCTOR, Role.ESTABLISHMENT},
}


def roles_for_target(target: BookingStatus) -> set[Role]:
    roles = set()
    for (_, to), actor in TRANSITIONS.items():
        if to == target:
            roles |= _ACTOR_ROLES[actor]
    return roles


@dataclass(frozen=True)
class TransitionPolicy:
    completion_requires_elapsed: bool = False
    reject_overlapping_confirmations: bool = False

    @classmethod
    def from_config(cls) -> "TransitionPolicy":
        return cls(
            completion_requires_elapsed=config.COMPLETION_REQUIRES_ELAPSED,
            reject_overlapping_confirmations=config.REJECT_OVERLAPPING_CONFIRMATIONS,
        )


def is_party(booking, principal: Principal) -> bool:
    if principal.role == Role.DOCTOR:
        return booking.doctor_id == principal.id
    if principal.role == Role.ESTABLISHMENT:
        return booking.establishment_id == principal.id
    return False


def counterpart_id(booking, principal: Principal) -> str:
    if booking.doctor_id == principal.id:
        return booking.establishment_id
    return booking.doctor_id


def _actor_matches(actor: Actor, booking, principal: Principal) -> bool:
    if actor == Actor.LISTING_OWNER:
        return principal.role == Role.DOCTOR and booking.doctor_id == principal.id
    if actor == Actor.EITHER_PARTY:
        return is_party(booking, principal)
    if actor == Actor.REQUESTER:
        return booking.requested_by == principal.id
    return False


def check_transition(
    booking,
    principal: Principal,
    target,
    *,
    now: datetime | None = None,
    policy: TransitionPolicy | None = None,
    has_overlap: bool = False,
) -> tuple[BookingStatus, BookingStatus]:
    """
    Validate moving ``booking`` to ``target`` on behalf of ``principal``.

    Returns the parsed ``(current, target)`` pair, or raises ``Forbidden`` /
    ``InvalidTransition``. ``has_overlap`` tells whether another confirmed
    booking already covers the same listing dates; it only matters when the
    overlap policy is on.
    """
    policy = policy or TransitionPolicy()

    target = parse_booking_status(target)
    if isinstance(target, Unknown):
        raise InvalidTransition(f"Unknown target status: {target.raw}")

    if principal.role not in roles_for_target(target):
        raise Forbidden(f"{principal.role.value} may not move a booking to {target.value}")

    if not is_party(booking, principal):
        raise Forbidden("Principal is not a party to this booking")

    current = parse_booking_status(booking.status)
    if isinstance(current, Unknown):
        raise InvalidTransition(f"Booking has unknown status: {current.raw}")

    actor = TRANSITIONS.get((current, target))
    if actor is None:
        raise InvalidTransition(f"Cannot move booking from {current.value} to {target.value}")

    if not _actor_matches(actor, booking, principal):
        raise Forbidden(f"{current.value} -> {target.value} requires {actor.value}")

    if target == BookingStatus.COMPLETED and policy.completion_requires_elapsed:
        now = now or utcnow()
        if as_utc(booking.end_date) > now:
            raise InvalidTransition("Vacation has not ended yet")

    if target == BookingStatus.CONFIRMED and policy.reject_overlapping_confirmations and has_overlap:
        raise InvalidTransition("Listing already has a confirmed booking for these dates")

    return current, target


def allowed_targets(booking, principal: Principal, *, now=None, policy=None) -> list[BookingStatus]:
    allowed = []
    for target in BookingStatus:
        try:
            check_transition(booking, principal, target, now=now, policy=policy)
        except BookingError:
            continue
        allowed.append(target)
    return allowed
