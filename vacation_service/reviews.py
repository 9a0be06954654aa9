"""
Ratings the two parties leave each other once a vacation is completed.

One review per party and booking. The reviewed side is always the
counterpart of the reviewer on that booking.
"""

import logging
import uuid
from datetime import datetime

from .bookings import UNKNOWN_NAME, load_counterparts
from .errors import Conflict, Forbidden, InvalidTransition, NotFound, ValidationFailed
from .models import Booking, Review, utcnow
from .notifications import notify
from .schemas import ReviewList, ReviewResponse
from .security import Principal
from .statuses import BookingStatus, Role, Unknown, parse_booking_status, parse_role
from .transitions import counterpart_id, is_party

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5

_REVIEWED_ROLE = {
    Role.DOCTOR: Role.ESTABLISHMENT,
    Role.ESTABLISHMENT: Role.DOCTOR,
}


def average_rating(reviews) -> float:
    if not reviews:
        return 0.0
    return sum(r.rating for r in reviews) / len(reviews)


async def create_review(
    store,
    principal: Principal,
    booking_id: str,
    rating: int,
    comment: str | None = None,
    now: datetime | None = None,
) -> Review:
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationFailed(f"Rating must be between {MIN_RATING} and {MAX_RATING}")

    async with store.transaction():
        booking = await store.get(Booking, booking_id)
        if booking is None or not is_party(booking, principal):
            raise NotFound("Booking not found")
        if parse_booking_status(booking.status) != BookingStatus.COMPLETED:
            raise InvalidTransition("Only completed vacations can be reviewed")

        existing = await store.query(Review, {"booking_id": booking.id, "reviewer_id": principal.id})
        if existing:
            raise Conflict(
                f"{principal.id} already reviewed booking {booking.id}",
                public_detail="You already reviewed this booking",
            )

        review = Review(
            id=str(uuid.uuid4()),
            booking_id=booking.id,
            reviewer_id=principal.id,
            reviewed_id=counterpart_id(booking, principal),
            type=_REVIEWED_ROLE[principal.role].value,
            rating=rating,
            comment=(comment or "").strip() or None,
            created_at=now or utcnow(),
        )
        await store.insert(review)
        await notify(
            store,
            review.reviewed_id,
            "New review",
            f"You received a {rating}/{MAX_RATING} rating.",
            booking_id=booking.id,
        )

    logger.info("Review %s: %s rated %s %d/%d", review.id, principal.id, review.reviewed_id, rating, MAX_RATING)
    return review


async def _reviewer_names(store, reviews) -> dict[str, str]:
    names = {}
    for reviewed_role in {parse_role(r.type) for r in reviews}:
        if reviewed_role not in _REVIEWED_ROLE:
            continue
        ids = {r.reviewer_id for r in reviews if r.type == reviewed_role.value}
        # the reviewed party sees its reviewers as counterparts
        profiles = await load_counterparts(store, reviewed_role, ids)
        names.update({rid: p.name for rid, p in profiles.items()})
    return names


def _to_response(review: Review, names: dict[str, str]) -> ReviewResponse:
    return ReviewResponse(
        id=review.id,
        booking_id=review.booking_id,
        reviewer_id=review.reviewer_id,
        reviewer_name=names.get(review.reviewer_id, UNKNOWN_NAME),
        reviewed_id=review.reviewed_id,
        type=review.type,
        rating=review.rating,
        comment=review.comment,
        created_at=review.created_at,
    )


async def review_view(store, review: Review) -> ReviewResponse:
    return _to_response(review, await _reviewer_names(store, [review]))


async def list_reviews(store, user_id: str, type: str | None = None) -> ReviewList:
    """Reviews received by ``user_id``, newest first, with reviewer names joined in."""
    filters = {"reviewed_id": user_id}
    if type:
        role = parse_role(type)
        if isinstance(role, Unknown) or role not in _REVIEWED_ROLE:
            raise ValidationFailed(f"Unknown review type: {type}")
        filters["type"] = role.value

    reviews = await store.query(Review, filters, order_by="created_at")
    names = await _reviewer_names(store, reviews)

    return ReviewList(
        reviews=[_to_response(r, names) for r in reviews],
        count=len(reviews),
        average_rating=round(average_rating(reviews), 2),
    )


async def delete_review(store, principal: Principal, review_id: str) -> None:
    async with store.transaction():
        review = await store.get(Review, review_id)
        if review is None:
            raise NotFound("Review not found")
        if principal.role != Role.ADMIN and review.reviewer_id != principal.id:
            raise Forbidden("Only the author or an admin may delete a review")
        await store.delete(review)

    logger.info("Review %s deleted by %s %s", review_id, principal.role.value, principal.id)
