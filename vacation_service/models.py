import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Float, Boolean, Text, UniqueConstraint
from .db import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything we store is UTC.
    if dt is None or dt.tzinfo is not None:
        return dt
    return dt.replace(tzinfo=timezone.utc)


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String, primary_key=True)
    user_type = Column(String, nullable=False)  # doctor/establishment/admin
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class DoctorProfile(Base):
    __tablename__ = "doctor_profiles"

    id = Column(String, primary_key=True)
    speciality = Column(String, nullable=True)
    license_number = Column(String, nullable=True)
    experience_years = Column(Integer, nullable=True)
    bio = Column(Text, nullable=True)


class EstablishmentProfile(Base):
    __tablename__ = "establishment_profiles"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=True)
    establishment_type = Column(String, nullable=True)
    city = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)


class VacationPost(Base):
    __tablename__ = "vacation_posts"

    id = Column(String, primary_key=True, default=_uuid)
    doctor_id = Column(String, nullable=False, index=True)

    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String, nullable=True)
    speciality = Column(String, nullable=True, index=True)
    hourly_rate = Column(Float, nullable=False)
    requirements = Column(Text, nullable=True)

    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)

    status = Column(String, nullable=False, index=True)  # draft/available/pending/booked/completed/cancelled

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Booking(Base):
    __tablename__ = "vacation_bookings"

    id = Column(String, primary_key=True, default=_uuid)
    vacation_post_id = Column(String, nullable=False, index=True)
    doctor_id = Column(String, nullable=False, index=True)
    establishment_id = Column(String, nullable=False, index=True)
    requested_by = Column(String, nullable=False)

    status = Column(String, nullable=False, index=True)  # pending/confirmed/rejected/cancelled/completed
    payment_status = Column(String, nullable=True)  # pending/paid/failed

    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    total_amount = Column(Float, nullable=True)
    duration_hours = Column(Float, nullable=True)

    message = Column(Text, nullable=True)
    contact_phone = Column(String, nullable=True)
    urgency = Column(String, nullable=False, default="medium")
    cancellation_reason = Column(Text, nullable=True)

    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Message(Base):
    __tablename__ = "messages"

    id = Column(String, primary_key=True, default=_uuid)
    booking_id = Column(String, nullable=False, index=True)
    sender_id = Column(String, nullable=False)
    receiver_id = Column(String, nullable=False, index=True)
    content = Column(Text, nullable=False)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String, nullable=False, default="info")  # info/warning
    related_booking_id = Column(String, nullable=True)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("booking_id", "reviewer_id", name="uq_reviews_booking_reviewer"),
    )

    id = Column(String, primary_key=True, default=_uuid)
    booking_id = Column(String, nullable=False, index=True)
    reviewer_id = Column(String, nullable=False)
    reviewed_id = Column(String, nullable=False, index=True)
    type = Column(String, nullable=False)  # role of the reviewed party: doctor/establishment
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
