import uuid
from dataclasses import dataclass
from datetime import datetime

from .errors import Forbidden, InvalidTransition, NotFound, ValidationFailed
from .models import VacationPost, as_utc, utcnow
from .schemas import CreateListingRequest
from .security import Principal
from .statuses import ListingStatus, Role, Unknown, norm, parse_listing_status

# draft -> available on publish, available -> booked on confirmation,
# booked -> completed when the vacation is done.
LISTING_MOVES = {
    ListingStatus.DRAFT: {ListingStatus.AVAILABLE, ListingStatus.CANCELLED},
    ListingStatus.AVAILABLE: {ListingStatus.PENDING, ListingStatus.BOOKED, ListingStatus.CANCELLED},
    ListingStatus.PENDING: {ListingStatus.AVAILABLE, ListingStatus.BOOKED, ListingStatus.CANCELLED},
    ListingStatus.BOOKED: {ListingStatus.AVAILABLE, ListingStatus.COMPLETED},
    ListingStatus.COMPLETED: set(),
    ListingStatus.CANCELLED: set(),
}

# statuses under which a pending booking may still be confirmed
CONFIRMABLE = frozenset({ListingStatus.AVAILABLE, ListingStatus.PENDING, ListingStatus.BOOKED})


def can_move(listing: VacationPost, target: ListingStatus) -> bool:
    current = parse_listing_status(listing.status)
    if isinstance(current, Unknown):
        return False
    return target in LISTING_MOVES[current]


async def move_listing(store, listing: VacationPost, target: ListingStatus, now: datetime | None = None):
    if not can_move(listing, target):
        raise InvalidTransition(f"Listing cannot move from {listing.status} to {target.value}")
    await store.update(VacationPost, listing.id, {"status": target.value, "updated_at": now or utcnow()})


async def _owned_listing(store, principal: Principal, listing_id: str) -> VacationPost:
    listing = await store.get(VacationPost, listing_id)
    if listing is None:
        raise NotFound("Listing not found")
    if principal.role != Role.DOCTOR or listing.doctor_id != principal.id:
        raise Forbidden("Only the owning doctor may change this listing")
    return listing


@dataclass(frozen=True)
class DateConflict:
    listing_id: str
    title: str
    start_date: datetime
    end_date: datetime
    overlap_type: str  # complete/partial


class OverlappingListing(ValidationFailed):
    def __init__(self, conflicts: list[DateConflict]):
        self.conflicts = conflicts
        details = ", ".join(f'"{c.title}" ({c.overlap_type} overlap)' for c in conflicts)
        super().__init__(f"Dates overlap {len(conflicts)} of your other vacations: {details}")


def find_date_conflicts(start: datetime, end: datetime, existing) -> list[DateConflict]:
    """
    Listings whose dates touch [start, end], bounds included. A listing lying
    entirely inside the new range is a complete overlap, anything else partial.
    """
    start, end = as_utc(start), as_utc(end)
    conflicts = []
    for listing in existing:
        other_start, other_end = as_utc(listing.start_date), as_utc(listing.end_date)
        if other_end < start or other_start > end:
            continue
        overlap_type = "complete" if start <= other_start and end >= other_end else "partial"
        conflicts.append(DateConflict(listing.id, listing.title, other_start, other_end, overlap_type))
    return conflicts


async def create_listing(store, principal: Principal, data: CreateListingRequest, now: datetime | None = None):
    if principal.role != Role.DOCTOR:
        raise Forbidden("Only doctors publish vacations")
    if as_utc(data.end_date) <= as_utc(data.start_date):
        raise ValidationFailed("end_date must be after start_date")

    now = now or utcnow()
    listing = VacationPost(
        id=str(uuid.uuid4()),
        doctor_id=principal.id,
        title=data.title.strip(),
        description=data.description,
        location=data.location,
        speciality=norm(data.speciality) or None,
        hourly_rate=data.hourly_rate,
        requirements=data.requirements,
        start_date=data.start_date,
        end_date=data.end_date,
        status=ListingStatus.DRAFT.value,
        created_at=now,
        updated_at=now,
    )
    async with store.transaction():
        existing = await store.query(
            VacationPost,
            {"doctor_id": principal.id, "status": [s.value for s in ListingStatus if s != ListingStatus.CANCELLED]},
        )
        conflicts = find_date_conflicts(data.start_date, data.end_date, existing)
        if conflicts:
            raise OverlappingListing(conflicts)
        await store.insert(listing)
    return listing


async def publish_listing(store, principal: Principal, listing_id: str, now: datetime | None = None):
    async with store.transaction():
        listing = await _owned_listing(store, principal, listing_id)
        if parse_listing_status(listing.status) != ListingStatus.DRAFT:
            raise InvalidTransition("Only draft listings can be published")
        await move_listing(store, listing, ListingStatus.AVAILABLE, now)
    return await store.get(VacationPost, listing_id)


async def cancel_listing(store, principal: Principal, listing_id: str, now: datetime | None = None):
    async with store.transaction():
        listing = await _owned_listing(store, principal, listing_id)
        await move_listing(store, listing, ListingStatus.CANCELLED, now)
    return await store.get(VacationPost, listing_id)


async def search_listings(
    store,
    speciality: str | None = None,
    location: str | None = None,
    now: datetime | None = None,
):
    """Open listings, soonest first. Listings that already ended are left out."""
    now = now or utcnow()
    filters = {"status": ListingStatus.AVAILABLE.value}
    if speciality:
        filters["speciality"] = norm(speciality)

    listings = await store.query(VacationPost, filters, order_by="start_date", descending=False)

    needle = norm(location)
    return [
        listing for listing in listings
        if as_utc(listing.end_date) >= now
        and (not needle or needle in norm(listing.location))
    ]
