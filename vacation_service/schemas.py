from datetime import datetime

from pydantic import BaseModel, Field

from .statuses import PaymentStatus, Urgency


# ---- Listings ----

class CreateListingRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    location: str | None = None
    speciality: str | None = None
    hourly_rate: float = Field(gt=0)
    requirements: str | None = None
    start_date: datetime
    end_date: datetime


class ListingResponse(BaseModel):
    id: str
    doctor_id: str
    title: str
    description: str | None = None
    location: str | None = None
    speciality: str | None = None
    hourly_rate: float
    requirements: str | None = None
    start_date: datetime
    end_date: datetime
    status: str


class ListingSummary(BaseModel):
    id: str
    title: str
    location: str | None = None
    speciality: str | None = None
    hourly_rate: float | None = None
    start_date: datetime
    end_date: datetime
    status: str | None = None
    missing: bool = False


# ---- Bookings ----

class CreateBookingRequest(BaseModel):
    vacation_post_id: str
    # required when the listing owner (doctor) invites an establishment
    establishment_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    duration_hours: float | None = Field(default=None, gt=0)
    message: str | None = Field(default=None, max_length=2000)
    contact_phone: str | None = None
    urgency: Urgency = Urgency.MEDIUM


class TransitionRequest(BaseModel):
    status: str
    reason: str | None = Field(default=None, max_length=1000)
    expected_version: int | None = None


class PaymentUpdateRequest(BaseModel):
    payment_status: PaymentStatus
    expected_version: int | None = None


class PaymentBadgeOut(BaseModel):
    label: str
    severity: str


class TimelineStepOut(BaseModel):
    id: str
    label: str
    state: str


class CounterpartProfile(BaseModel):
    id: str
    kind: str  # doctor/establishment
    name: str
    establishment_type: str | None = None
    city: str | None = None
    phone: str | None = None
    email: str | None = None
    speciality: str | None = None
    experience_years: int | None = None
    placeholder: bool = False


class BookingView(BaseModel):
    id: str
    vacation_post_id: str
    doctor_id: str
    establishment_id: str
    requested_by: str
    status: str
    status_label: str
    payment_status: str | None = None
    payment_badge: PaymentBadgeOut | None = None
    start_date: datetime
    end_date: datetime
    total_amount: float | None = None
    duration_hours: float | None = None
    message: str | None = None
    contact_phone: str | None = None
    urgency: str
    cancellation_reason: str | None = None
    version: int
    created_at: datetime
    updated_at: datetime
    listing: ListingSummary
    counterpart: CounterpartProfile
    timeline: list[TimelineStepOut]
    available_actions: list[str]


class BookingSummary(BaseModel):
    pending: int
    active: int
    completed: int
    cancelled: int
    total: int


# ---- Messages / notifications ----

class SendMessageRequest(BaseModel):
    content: str = Field(min_length=1, max_length=2000)


class MessageResponse(BaseModel):
    id: str
    booking_id: str
    sender_id: str
    receiver_id: str
    content: str
    read: bool
    created_at: datetime


class NotificationResponse(BaseModel):
    id: str
    title: str
    message: str
    type: str
    related_booking_id: str | None = None
    read: bool
    created_at: datetime


# ---- Reviews ----

class CreateReviewRequest(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: str | None = Field(default=None, max_length=2000)


class ReviewResponse(BaseModel):
    id: str
    booking_id: str
    reviewer_id: str
    reviewer_name: str
    reviewed_id: str
    type: str
    rating: int
    comment: str | None = None
    created_at: datetime


class ReviewList(BaseModel):
    reviews: list[ReviewResponse]
    count: int
    average_rating: float
