from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from . import bookings, listings, messaging, notifications, reviews
from .db import get_db
from .rbac import require_confirmed_email, require_role
from .schemas import (
    BookingSummary,
    BookingView,
    CreateBookingRequest,
    CreateListingRequest,
    CreateReviewRequest,
    ListingResponse,
    MessageResponse,
    NotificationResponse,
    PaymentUpdateRequest,
    ReviewList,
    ReviewResponse,
    SendMessageRequest,
    TransitionRequest,
)
from .security import Principal, get_current_principal
from .statuses import Role
from .store import Store

router = APIRouter()


async def get_store(db: AsyncSession = Depends(get_db)) -> Store:
    return Store(db)


def _listing_response(listing) -> ListingResponse:
    return ListingResponse.model_validate(listing, from_attributes=True)


# ================= LISTINGS =================

@router.get("/listings", response_model=List[ListingResponse], tags=["Listings"])
async def search_listings_endpoint(
    speciality: str | None = None,
    location: str | None = None,
    store: Store = Depends(get_store),
    principal: Principal = Depends(get_current_principal),
):
    found = await listings.search_listings(store, speciality=speciality, location=location)
    return [_listing_response(l) for l in found]


@router.post("/listings", response_model=ListingResponse, status_code=201, tags=["Listings"])
async def create_listing_endpoint(
    data: CreateListingRequest,
    store: Store = Depends(get_store),
    principal: Principal = Depends(get_current_principal),
):
    require_role(principal, [Role.DOCTOR])
    require_confirmed_email(principal)
    return _listing_response(await listings.create_listing(store, principal, data))


@router.post("/listings/{listing_id}/publish", response_model=ListingResponse, tags=["Listings"])
async def publish_listing_endpoint(
    listing_id: str,
    store: Store = Depends(get_store),
    principal: Principal = Depends(get_current_principal),
):
    require_role(principal, [Role.DOCTOR])
    require_confirmed_email(principal)
    return _listing_response(await listings.publish_listing(store, principal, listing_id))


@router.post("/listings/{listing_id}/cancel", response_model=ListingResponse, tags=["Listings"])
async def cancel_listing_endpoint(
    listing_id: str,
    store: Store = Depends(get_store),
    principal: Principal = Depends(get_current_principal),
):
    require_role(principal, [Role.DOCTOR])
    require_confirmed_email(principal)
    return _listing_response(await listings.cancel_listing(store, principal, listing_id))


# ================= BOOKINGS =================

@router.get("/bookings", response_model=List[BookingView], tags=["Bookings"])
async def list_bookings_endpoint(
    status: str | None = None,
    date_range: str | None = None,
    location: str | None = None,
    establishment_type: str | None = None,
    store: Store = Depends(get_store),
    principal: Principal = Depends(get_current_principal),
):
    require_role(principal, [Role.DOCTOR, Role.ESTABLISHMENT])
    filters = bookings.BookingFilters.from_query(
        status=status,
        date_range=date_range,
        location=location,
        establishment_type=establishment_type,
    )
    return await bookings.list_bookings(store, principal, filters)


@router.get("/bookings/summary", response_model=BookingSummary, tags=["Bookings"])
async def booking_summary_endpoint(
    store: Store = Depends(get_store),
    principal: Principal = Depends(get_current_principal),
):
    require_role(principal, [Role.DOCTOR, Role.ESTABLISHMENT])
    return await bookings.booking_summary(store, principal)


@router.post("/bookings", response_model=BookingView, status_code=201, tags=["Bookings"])
async def create_booking_endpoint(
    data: CreateBookingRequest,
    store: Store = Depends(get_store),
    principal: Principal = Depends(get_current_principal),
):
    require_role(principal, [Role.DOCTOR, Role.ESTABLISHMENT])
    require_confirmed_email(principal)
    return await bookings.create_booking(store, principal, data)


@router.get("/bookings/{booking_id}", response_model=BookingView, tags=["Bookings"])
async def get_booking_endpoint(
    booking_id: str,
    store: Store = Depends(get_store),
    principal: Principal = Depends(get_current_principal),
):
    require_role(principal, [Role.DOCTOR, Role.ESTABLISHMENT])
    return await bookings.get_booking(store, principal, booking_id)


@router.post("/bookings/{booking_id}/transition", response_model=BookingView, tags=["Bookings"])
async def transition_booking_endpoint(
    booking_id: str,
    data: TransitionRequest,
    store: Store = Depends(get_store),
    principal: Principal = Depends(get_current_principal),
):
    require_confirmed_email(principal)
    return await bookings.transition_booking(
        store,
        principal,
        booking_id,
        data.status,
        reason=data.reason,
        expected_version=data.expected_version,
    )


@router.post("/bookings/{booking_id}/payment", response_model=BookingView, tags=["Payments"])
async def record_payment_endpoint(
    booking_id: str,
    data: PaymentUpdateRequest,
    store: Store = Depends(get_store),
    principal: Principal = Depends(get_current_principal),
):
    require_confirmed_email(principal)
    return await bookings.record_payment_status(
        store,
        principal,
        booking_id,
        data.payment_status,
        expected_version=data.expected_version,
    )


# ================= MESSAGES =================

@router.get("/bookings/{booking_id}/messages", response_model=List[MessageResponse], tags=["Messages"])
async def list_messages_endpoint(
    booking_id: str,
    store: Store = Depends(get_store),
    principal: Principal = Depends(get_current_principal),
):
    found = await messaging.list_messages(store, principal, booking_id)
    return [MessageResponse.model_validate(m, from_attributes=True) for m in found]


@router.post("/bookings/{booking_id}/messages", response_model=MessageResponse, status_code=201, tags=["Messages"])
async def send_message_endpoint(
    booking_id: str,
    data: SendMessageRequest,
    store: Store = Depends(get_store),
    principal: Principal = Depends(get_current_principal),
):
    require_confirmed_email(principal)
    message = await messaging.send_message(store, principal, booking_id, data.content)
    return MessageResponse.model_validate(message, from_attributes=True)


# ================= NOTIFICATIONS =================

@router.get("/notifications", response_model=List[NotificationResponse], tags=["Notifications"])
async def list_notifications_endpoint(
    unread_only: bool = False,
    store: Store = Depends(get_store),
    principal: Principal = Depends(get_current_principal),
):
    found = await notifications.list_notifications(store, principal, unread_only=unread_only)
    return [NotificationResponse.model_validate(n, from_attributes=True) for n in found]


@router.post("/notifications/{notification_id}/read", response_model=NotificationResponse, tags=["Notifications"])
async def mark_notification_read_endpoint(
    notification_id: str,
    store: Store = Depends(get_store),
    principal: Principal = Depends(get_current_principal),
):
    notification = await notifications.mark_notification_read(store, principal, notification_id)
    return NotificationResponse.model_validate(notification, from_attributes=True)


# ================= REVIEWS =================

@router.post("/bookings/{booking_id}/reviews", response_model=ReviewResponse, status_code=201, tags=["Reviews"])
async def create_review_endpoint(
    booking_id: str,
    data: CreateReviewRequest,
    store: Store = Depends(get_store),
    principal: Principal = Depends(get_current_principal),
):
    require_role(principal, [Role.DOCTOR, Role.ESTABLISHMENT])
    require_confirmed_email(principal)
    review = await reviews.create_review(store, principal, booking_id, data.rating, data.comment)
    return await reviews.review_view(store, review)


@router.get("/users/{user_id}/reviews", response_model=ReviewList, tags=["Reviews"])
async def list_reviews_endpoint(
    user_id: str,
    type: str | None = None,
    store: Store = Depends(get_store),
    principal: Principal = Depends(get_current_principal),
):
    return await reviews.list_reviews(store, user_id, type=type)


@router.delete("/reviews/{review_id}", status_code=204, tags=["Reviews"])
async def delete_review_endpoint(
    review_id: str,
    store: Store = Depends(get_store),
    principal: Principal = Depends(get_current_principal),
):
    await reviews.delete_review(store, principal, review_id)
    return Response(status_code=204)
