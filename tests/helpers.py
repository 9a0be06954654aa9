from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from vacation_service.models import (
    Booking,
    DoctorProfile,
    EstablishmentProfile,
    Profile,
    VacationPost,
)
from vacation_service.security import Principal
from vacation_service.statuses import Role

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)

DOCTOR = Principal(id="doc-1", role=Role.DOCTOR, email_confirmed=True)
OTHER_DOCTOR = Principal(id="doc-2", role=Role.DOCTOR, email_confirmed=True)
ESTABLISHMENT = Principal(id="est-1", role=Role.ESTABLISHMENT, email_confirmed=True)
OTHER_ESTABLISHMENT = Principal(id="est-2", role=Role.ESTABLISHMENT, email_confirmed=True)
ADMIN = Principal(id="admin-1", role=Role.ADMIN, email_confirmed=True)


def fake_booking(status="pending", doctor_id="doc-1", establishment_id="est-1", requested_by="est-1", end_date=None):
    return SimpleNamespace(
        status=status,
        doctor_id=doctor_id,
        establishment_id=establishment_id,
        requested_by=requested_by,
        start_date=NOW - timedelta(days=1),
        end_date=end_date or NOW + timedelta(days=1),
    )


async def add_listing(store, id="post-1", doctor_id="doc-1", status="available", start=None, end=None, **kw):
    listing = VacationPost(
        id=id,
        doctor_id=doctor_id,
        title=kw.pop("title", "Cardiology cover"),
        location=kw.pop("location", "Lyon"),
        speciality=kw.pop("speciality", "cardiology"),
        hourly_rate=kw.pop("hourly_rate", 100.0),
        start_date=start or NOW + timedelta(days=1),
        end_date=end or NOW + timedelta(days=3),
        status=status,
        created_at=NOW,
        updated_at=NOW,
        **kw,
    )
    await store.insert(listing)
    await store.commit()
    return listing


async def add_booking(store, listing, id="bk-1", establishment_id="est-1", status="pending", created_at=None, **kw):
    booking = Booking(
        id=id,
        vacation_post_id=listing.id,
        doctor_id=listing.doctor_id,
        establishment_id=establishment_id,
        requested_by=kw.pop("requested_by", establishment_id),
        status=status,
        payment_status=kw.pop("payment_status", None),
        start_date=listing.start_date,
        end_date=listing.end_date,
        total_amount=kw.pop("total_amount", 4800.0),
        duration_hours=kw.pop("duration_hours", 48.0),
        version=kw.pop("version", 1),
        created_at=created_at or NOW,
        updated_at=created_at or NOW,
        **kw,
    )
    await store.insert(booking)
    await store.commit()
    return booking


async def add_establishment(store, id="est-1", name="Clinique du Parc", establishment_type="clinic", city="Lyon"):
    await store.insert(Profile(id=id, user_type="establishment", phone="+33 4 00 00 00 00", created_at=NOW))
    await store.insert(EstablishmentProfile(
        id=id, name=name, establishment_type=establishment_type, city=city, email=f"{id}@example.org",
    ))
    await store.commit()


async def add_doctor(store, id="doc-1", first_name="Marie", last_name="Curie", speciality="cardiology"):
    await store.insert(Profile(id=id, user_type="doctor", first_name=first_name, last_name=last_name, created_at=NOW))
    await store.insert(DoctorProfile(id=id, speciality=speciality, experience_years=12))
    await store.commit()
