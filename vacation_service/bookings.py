"""
Booking engine: role-scoped listing, creation, status transitions and
payment status updates.

Every function takes the acting principal explicitly and works on a Store.
Listings and counterpart profiles are joined here, not in SQL. A booking
whose listing or counterpart cannot be resolved is still returned, with
placeholder data.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime

from .derivations import (
    PAYMENT_ELIGIBLE,
    DateRange,
    booking_timeline,
    bucket_counts,
    derive_payment_badge,
    in_date_range,
)
from .errors import Conflict, Forbidden, InvalidTransition, NotFound, ValidationFailed
from .events import booking_event
from .listings import CONFIRMABLE, can_move, move_listing
from .models import (
    Booking,
    DoctorProfile,
    EstablishmentProfile,
    Profile,
    VacationPost,
    as_utc,
    utcnow,
)
from .notifications import notify, transition_message
from .rabbitmq import publisher
from .schemas import (
    BookingSummary,
    BookingView,
    CounterpartProfile,
    CreateBookingRequest,
    ListingSummary,
    PaymentBadgeOut,
    TimelineStepOut,
)
from .security import Principal
from .statuses import (
    BookingStatus,
    ListingStatus,
    PaymentStatus,
    Role,
    norm,
    parse_booking_status,
    parse_listing_status,
    parse_status_filter,
    status_label,
    stored_values,
)
from .transitions import TransitionPolicy, allowed_targets, check_transition, counterpart_id, is_party

logger = logging.getLogger(__name__)

UNKNOWN_NAME = "Unknown"
UNSPECIFIED = "Unspecified"


@dataclass
class BookingFilters:
    statuses: list[BookingStatus] = field(default_factory=list)
    date_range: DateRange = DateRange.ALL
    location: str | None = None
    establishment_type: str | None = None

    @classmethod
    def from_query(
        cls,
        status: str | None = None,
        date_range: str | None = None,
        location: str | None = None,
        establishment_type: str | None = None,
    ) -> "BookingFilters":
        try:
            statuses = parse_status_filter(status)
        except ValueError as e:
            raise ValidationFailed(str(e))
        try:
            dr = DateRange(norm(date_range) or DateRange.ALL.value)
        except ValueError:
            raise ValidationFailed(f"Unknown date range: {date_range}")
        return cls(
            statuses=statuses,
            date_range=dr,
            location=(location or "").strip() or None,
            establishment_type=(establishment_type or "").strip() or None,
        )


def _scope_column(principal: Principal) -> str:
    if principal.role == Role.DOCTOR:
        return "doctor_id"
    if principal.role == Role.ESTABLISHMENT:
        return "establishment_id"
    raise Forbidden("Bookings are listed per doctor or establishment")


# ---- counterpart profiles ----

def _placeholder(counterpart: str, kind: str) -> CounterpartProfile:
    if kind == Role.ESTABLISHMENT.value:
        return CounterpartProfile(
            id=counterpart, kind=kind, name=UNKNOWN_NAME,
            establishment_type=UNSPECIFIED, placeholder=True,
        )
    return CounterpartProfile(
        id=counterpart, kind=kind, name=UNKNOWN_NAME,
        speciality=UNSPECIFIED, placeholder=True,
    )


def _full_name(profile: Profile | None) -> str | None:
    if profile is None:
        return None
    name = " ".join(p for p in (profile.first_name, profile.last_name) if p)
    return name or None


async def load_counterparts(store, viewer_role: Role, ids: set[str]) -> dict[str, CounterpartProfile]:
    if not ids:
        return {}

    profiles = {p.id: p for p in await store.query(Profile, {"id": list(ids)})}
    result = {}

    if viewer_role == Role.DOCTOR:
        establishments = {
            e.id: e for e in await store.query(EstablishmentProfile, {"id": list(ids)})
        }
        for cid in ids:
            est = establishments.get(cid)
            base = profiles.get(cid)
            if est is None and base is None:
                continue
            result[cid] = CounterpartProfile(
                id=cid,
                kind=Role.ESTABLISHMENT.value,
                name=(est.name if est else None) or _full_name(base) or UNKNOWN_NAME,
                establishment_type=(est.establishment_type if est else None) or UNSPECIFIED,
                city=est.city if est else None,
                phone=(est.phone if est else None) or (base.phone if base else None),
                email=est.email if est else None,
            )
    else:
        doctors = {d.id: d for d in await store.query(DoctorProfile, {"id": list(ids)})}
        for cid in ids:
            doc = doctors.get(cid)
            base = profiles.get(cid)
            if doc is None and base is None:
                continue
            name = _full_name(base)
            result[cid] = CounterpartProfile(
                id=cid,
                kind=Role.DOCTOR.value,
                name=f"Dr. {name}" if name else UNKNOWN_NAME,
                speciality=(doc.speciality if doc else None) or UNSPECIFIED,
                experience_years=doc.experience_years if doc else None,
                phone=base.phone if base else None,
            )
    return result


# ---- views ----

def _listing_summary(booking: Booking, listing: VacationPost | None) -> ListingSummary:
    if listing is None:
        return ListingSummary(
            id=booking.vacation_post_id,
            title="Unknown listing",
            start_date=as_utc(booking.start_date),
            end_date=as_utc(booking.end_date),
            missing=True,
        )
    return ListingSummary(
        id=listing.id,
        title=listing.title,
        location=listing.location,
        speciality=listing.speciality,
        hourly_rate=listing.hourly_rate,
        start_date=as_utc(listing.start_date),
        end_date=as_utc(listing.end_date),
        status=listing.status,
    )


def to_view(
    booking: Booking,
    listing: VacationPost | None,
    counterpart: CounterpartProfile,
    principal: Principal,
    now: datetime,
    policy: TransitionPolicy,
) -> BookingView:
    status = parse_booking_status(booking.status)
    badge = derive_payment_badge(booking.payment_status, status)

    return BookingView(
        id=booking.id,
        vacation_post_id=booking.vacation_post_id,
        doctor_id=booking.doctor_id,
        establishment_id=booking.establishment_id,
        requested_by=booking.requested_by,
        status=status.value,
        status_label=status_label(status),
        payment_status=booking.payment_status,
        payment_badge=PaymentBadgeOut(label=badge.label, severity=badge.severity) if badge else None,
        start_date=as_utc(booking.start_date),
        end_date=as_utc(booking.end_date),
        total_amount=booking.total_amount,
        duration_hours=booking.duration_hours,
        message=booking.message,
        contact_phone=booking.contact_phone,
        urgency=booking.urgency,
        cancellation_reason=booking.cancellation_reason,
        version=booking.version,
        created_at=as_utc(booking.created_at),
        updated_at=as_utc(booking.updated_at),
        listing=_listing_summary(booking, listing),
        counterpart=counterpart,
        timeline=[TimelineStepOut(id=s.id, label=s.label, state=s.state) for s in booking_timeline(status)],
        available_actions=[t.value for t in allowed_targets(booking, principal, now=now, policy=policy)],
    )


async def _enrich(store, principal: Principal, bookings: list[Booking], now, policy) -> list[BookingView]:
    listing_ids = {b.vacation_post_id for b in bookings}
    listings = {l.id: l for l in await store.query(VacationPost, {"id": list(listing_ids)})}

    counterpart_kind = Role.ESTABLISHMENT.value if principal.role == Role.DOCTOR else Role.DOCTOR.value
    ids = {counterpart_id(b, principal) for b in bookings}
    counterparts = await load_counterparts(store, principal.role, ids)

    views = []
    for booking in bookings:
        cid = counterpart_id(booking, principal)
        counterpart = counterparts.get(cid)
        if counterpart is None:
            logger.warning("Booking %s: %s profile %s not found, using placeholder", booking.id, counterpart_kind, cid)
            counterpart = _placeholder(cid, counterpart_kind)
        listing = listings.get(booking.vacation_post_id)
        if listing is None:
            logger.warning("Booking %s: listing %s not found", booking.id, booking.vacation_post_id)
        views.append(to_view(booking, listing, counterpart, principal, now, policy))
    return views


def _matches(view: BookingView, filters: BookingFilters, principal: Principal, now: datetime) -> bool:
    if not in_date_range(filters.date_range, view.listing.start_date, view.listing.end_date, now):
        return False

    if filters.location:
        needle = norm(filters.location)
        if needle not in norm(view.listing.location) and needle not in norm(view.counterpart.city):
            return False

    # only meaningful when the counterpart is an establishment
    if filters.establishment_type and principal.role == Role.DOCTOR:
        if norm(view.counterpart.establishment_type) != norm(filters.establishment_type):
            return False

    return True


async def list_bookings(
    store,
    principal: Principal,
    filters: BookingFilters | None = None,
    *,
    now: datetime | None = None,
    policy: TransitionPolicy | None = None,
) -> list[BookingView]:
    filters = filters or BookingFilters()
    now = now or utcnow()
    policy = policy or TransitionPolicy.from_config()

    where = {_scope_column(principal): principal.id}
    if filters.statuses:
        where["status"] = stored_values(filters.statuses)

    bookings = await store.query(Booking, where, order_by="created_at")
    if not bookings:
        return []

    views = await _enrich(store, principal, bookings, now, policy)
    return [v for v in views if _matches(v, filters, principal, now)]


async def booking_summary(store, principal: Principal) -> BookingSummary:
    bookings = await store.query(Booking, {_scope_column(principal): principal.id})
    counts = bucket_counts(bookings)
    return BookingSummary(**counts, total=len(bookings))


async def _get_party_booking(store, principal: Principal, booking_id: str) -> Booking:
    booking = await store.get(Booking, booking_id)
    if booking is None or not is_party(booking, principal):
        raise NotFound("Booking not found")
    return booking


async def get_booking(
    store,
    principal: Principal,
    booking_id: str,
    *,
    now: datetime | None = None,
    policy: TransitionPolicy | None = None,
) -> BookingView:
    booking = await _get_party_booking(store, principal, booking_id)
    views = await _enrich(store, principal, [booking], now or utcnow(), policy or TransitionPolicy.from_config())
    return views[0]


# ---- creation ----

async def create_booking(
    store,
    principal: Principal,
    data: CreateBookingRequest,
    *,
    now: datetime | None = None,
) -> BookingView:
    now = now or utcnow()

    async with store.transaction():
        listing = await store.get(VacationPost, data.vacation_post_id)
        if listing is None:
            raise NotFound("Listing not found")

        if principal.role == Role.ESTABLISHMENT:
            if data.establishment_id and data.establishment_id != principal.id:
                raise Forbidden("Establishments book on their own behalf")
            establishment_id = principal.id
        elif principal.role == Role.DOCTOR:
            if listing.doctor_id != principal.id:
                raise Forbidden("Doctors may only propose their own listings")
            if not data.establishment_id:
                raise ValidationFailed("establishment_id is required")
            establishment_id = data.establishment_id
        else:
            raise Forbidden("Only doctors and establishments create bookings")

        if parse_listing_status(listing.status) != ListingStatus.AVAILABLE:
            raise InvalidTransition("Listing is not open for booking requests")

        start = as_utc(data.start_date or listing.start_date)
        end = as_utc(data.end_date or listing.end_date)
        if end < start:
            raise ValidationFailed("end_date must not be before start_date")
        if start < as_utc(listing.start_date) or end > as_utc(listing.end_date):
            raise ValidationFailed("Requested dates must fall within the listing dates")

        duration = data.duration_hours or round((end - start).total_seconds() / 3600, 2)

        booking = Booking(
            id=str(uuid.uuid4()),
            vacation_post_id=listing.id,
            doctor_id=listing.doctor_id,
            establishment_id=establishment_id,
            requested_by=principal.id,
            status=BookingStatus.PENDING.value,
            payment_status=None,
            start_date=start,
            end_date=end,
            total_amount=round(listing.hourly_rate * duration, 2),
            duration_hours=duration,
            message=data.message,
            contact_phone=data.contact_phone,
            urgency=data.urgency.value,
            version=1,
            created_at=now,
            updated_at=now,
        )
        await store.insert(booking)
        await notify(
            store,
            counterpart_id(booking, principal),
            "New booking request",
            f"New booking request for \"{listing.title}\".",
            booking_id=booking.id,
        )

    await publisher.publish_event(booking_event("booking.requested", booking, actor_id=principal.id))
    return await get_booking(store, principal, booking.id, now=now)


# ---- transitions ----

def _overlaps(a_start, a_end, b_start, b_end) -> bool:
    return as_utc(a_start) < as_utc(b_end) and as_utc(b_start) < as_utc(a_end)


async def _other_confirmed(store, booking: Booking) -> list[Booking]:
    confirmed = await store.query(
        Booking,
        {"vacation_post_id": booking.vacation_post_id, "status": stored_values([BookingStatus.CONFIRMED])},
    )
    return [other for other in confirmed if other.id != booking.id]


async def _has_confirmed_overlap(store, booking: Booking) -> bool:
    return any(
        _overlaps(booking.start_date, booking.end_date, other.start_date, other.end_date)
        for other in await _other_confirmed(store, booking)
    )


async def _sync_listing(store, booking: Booking, current: BookingStatus, target: BookingStatus, now):
    """Keep the listing status in step with the booking, inside the same transaction."""
    listing = await store.get(VacationPost, booking.vacation_post_id)

    if target == BookingStatus.CONFIRMED:
        if listing is None or parse_listing_status(listing.status) not in CONFIRMABLE:
            raise InvalidTransition("Listing is no longer available")
        if parse_listing_status(listing.status) != ListingStatus.BOOKED:
            await move_listing(store, listing, ListingStatus.BOOKED, now)
        return

    if listing is None:
        return

    if target == BookingStatus.COMPLETED and can_move(listing, ListingStatus.COMPLETED):
        if await _other_confirmed(store, booking):
            logger.info("Listing %s stays booked, other confirmed bookings remain", listing.id)
        else:
            await move_listing(store, listing, ListingStatus.COMPLETED, now)
    elif (
        target == BookingStatus.CANCELLED
        and current == BookingStatus.CONFIRMED
        and parse_listing_status(listing.status) == ListingStatus.BOOKED
    ):
        # the slot is free again unless another confirmed booking still holds it
        if await _other_confirmed(store, booking):
            logger.info("Listing %s stays booked, other confirmed bookings remain", listing.id)
        else:
            await move_listing(store, listing, ListingStatus.AVAILABLE, now)


async def transition_booking(
    store,
    principal: Principal,
    booking_id: str,
    target,
    *,
    reason: str | None = None,
    expected_version: int | None = None,
    now: datetime | None = None,
    policy: TransitionPolicy | None = None,
) -> BookingView:
    now = now or utcnow()
    policy = policy or TransitionPolicy.from_config()

    async with store.transaction():
        booking = await store.get(Booking, booking_id)
        if booking is None:
            raise NotFound("Booking not found")

        has_overlap = False
        if policy.reject_overlapping_confirmations and parse_booking_status(target) == BookingStatus.CONFIRMED:
            has_overlap = await _has_confirmed_overlap(store, booking)

        current, target = check_transition(
            booking, principal, target, now=now, policy=policy, has_overlap=has_overlap,
        )

        if expected_version is not None and booking.version != expected_version:
            raise Conflict(f"Booking {booking_id} is at version {booking.version}, not {expected_version}")

        patch = {"status": target.value, "updated_at": now}
        if target == BookingStatus.CANCELLED:
            patch["cancellation_reason"] = reason

        if not await store.compare_and_swap(Booking, booking.id, booking.version, patch):
            raise Conflict(f"Booking {booking_id} changed while it was being updated")

        await _sync_listing(store, booking, current, target, now)
        await notify(
            store,
            counterpart_id(booking, principal),
            "Booking update",
            transition_message(target, principal.role, reason),
            type="warning" if target in (BookingStatus.CANCELLED, BookingStatus.REJECTED) else "info",
            booking_id=booking.id,
        )

    logger.info("Booking %s: %s -> %s by %s %s", booking_id, current.value, target.value, principal.role.value, principal.id)

    booking = await store.get(Booking, booking_id)
    event_type = f"booking.{target.value}"
    await publisher.publish_event(booking_event(event_type, booking, actor_id=principal.id))
    return await get_booking(store, principal, booking_id, now=now, policy=policy)


# ---- payments ----

async def _write_payment_status(store, booking: Booking, payment_status: PaymentStatus, now) -> None:
    if parse_booking_status(booking.status) not in PAYMENT_ELIGIBLE:
        raise InvalidTransition("No payment is expected before the booking is confirmed")
    patch = {"payment_status": payment_status.value, "updated_at": now}
    if not await store.compare_and_swap(Booking, booking.id, booking.version, patch):
        raise Conflict(f"Booking {booking.id} changed while it was being updated")


async def record_payment_status(
    store,
    principal: Principal,
    booking_id: str,
    payment_status: PaymentStatus,
    *,
    expected_version: int | None = None,
    now: datetime | None = None,
) -> BookingView:
    now = now or utcnow()

    async with store.transaction():
        booking = await store.get(Booking, booking_id)
        if booking is None:
            raise NotFound("Booking not found")
        if principal.role != Role.ESTABLISHMENT or booking.establishment_id != principal.id:
            raise Forbidden("Only the paying establishment records payments")
        if expected_version is not None and booking.version != expected_version:
            raise Conflict(f"Booking {booking_id} is at version {booking.version}, not {expected_version}")

        await _write_payment_status(store, booking, payment_status, now)

        if payment_status != PaymentStatus.PENDING:
            await notify(
                store,
                booking.doctor_id,
                "Payment update",
                "Payment received." if payment_status == PaymentStatus.PAID else "Payment failed.",
                type="info" if payment_status == PaymentStatus.PAID else "warning",
                booking_id=booking.id,
            )

    booking = await store.get(Booking, booking_id)
    await publisher.publish_event(booking_event("booking.payment_updated", booking, actor_id=principal.id))
    return await get_booking(store, principal, booking_id, now=now)


async def apply_payment_event(store, booking_id: str, payment_status: PaymentStatus, *, now=None, attempts: int = 3) -> bool:
    """
    Payment status reported by the payment processor. Retries on version
    conflicts; returns False when the booking is unknown or not payable.
    """
    now = now or utcnow()
    for _ in range(attempts):
        try:
            async with store.transaction():
                booking = await store.get(Booking, booking_id)
                if booking is None:
                    logger.warning("Payment event for unknown booking %s", booking_id)
                    return False
                await _write_payment_status(store, booking, payment_status, now)
            return True
        except InvalidTransition:
            logger.warning("Payment event for booking %s ignored, booking is not payable", booking_id)
            return False
        except Conflict:
            logger.info("Payment event for booking %s hit a concurrent update, retrying", booking_id)
    raise Conflict(f"Booking {booking_id} kept changing while applying payment event")
