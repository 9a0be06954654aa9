from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt

from vacation_service import config
from vacation_service.db import get_db
from vacation_service.main import app

NOT_ALLOWED = {"detail": "Action not allowed for this booking"}


def _token(sub, role, email_confirmed=True):
    claims = {"sub": sub, "role": role, "email_confirmed": email_confirmed}
    return jwt.encode(claims, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def _auth(sub, role, email_confirmed=True):
    return {"Authorization": f"Bearer {_token(sub, role, email_confirmed)}"}


DOCTOR = _auth("doc-1", "doctor")
ESTABLISHMENT = _auth("est-1", "establishment")
OTHER_ESTABLISHMENT = _auth("est-2", "establishment")
ADMIN = _auth("admin-1", "admin")


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


async def _open_listing(client):
    start = datetime.now(timezone.utc) + timedelta(days=2)
    res = await client.post("/listings", headers=DOCTOR, json={
        "title": "Summer cover",
        "location": "Lyon",
        "speciality": "cardiology",
        "hourly_rate": 80,
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(days=1)).isoformat(),
    })
    assert res.status_code == 201
    listing_id = res.json()["id"]

    res = await client.post(f"/listings/{listing_id}/publish", headers=DOCTOR)
    assert res.status_code == 200
    assert res.json()["status"] == "available"
    return listing_id


async def test_booking_lifecycle(client):
    listing_id = await _open_listing(client)

    res = await client.post("/bookings", headers=ESTABLISHMENT, json={"vacation_post_id": listing_id})
    assert res.status_code == 201
    booking = res.json()
    assert booking["status"] == "pending"
    assert booking["version"] == 1
    assert booking["total_amount"] == 80 * 24
    assert booking["available_actions"] == ["cancelled"]
    assert booking["counterpart"]["placeholder"] is True
    booking_id = booking["id"]

    res = await client.get(f"/bookings/{booking_id}", headers=DOCTOR)
    assert res.json()["available_actions"] == ["confirmed", "rejected"]

    res = await client.post(
        f"/bookings/{booking_id}/transition",
        headers=DOCTOR,
        json={"status": "confirmed", "expected_version": 1},
    )
    assert res.status_code == 200
    booking = res.json()
    assert booking["status"] == "confirmed"
    assert booking["version"] == 2
    assert booking["payment_badge"] == {"label": "Pending payment", "severity": "warning"}

    res = await client.post(f"/bookings/{booking_id}/payment", headers=ESTABLISHMENT, json={"payment_status": "paid"})
    assert res.status_code == 200
    assert res.json()["payment_badge"] == {"label": "Paid", "severity": "positive"}

    res = await client.get("/bookings", headers=ESTABLISHMENT, params={"status": "confirmed"})
    assert [b["id"] for b in res.json()] == [booking_id]

    res = await client.get("/bookings/summary", headers=DOCTOR)
    assert res.json() == {"pending": 0, "active": 1, "completed": 0, "cancelled": 0, "total": 1}

    res = await client.get("/notifications", headers=ESTABLISHMENT)
    assert any("accepted" in n["message"] for n in res.json())


async def test_forbidden_and_illegal_look_the_same(client):
    listing_id = await _open_listing(client)
    res = await client.post("/bookings", headers=ESTABLISHMENT, json={"vacation_post_id": listing_id})
    booking_id = res.json()["id"]

    # the requester may not accept its own request
    forbidden = await client.post(f"/bookings/{booking_id}/transition", headers=ESTABLISHMENT, json={"status": "confirmed"})
    # a pending booking cannot be completed
    illegal = await client.post(f"/bookings/{booking_id}/transition", headers=DOCTOR, json={"status": "completed"})

    assert forbidden.status_code == illegal.status_code == 409
    assert forbidden.json() == illegal.json() == NOT_ALLOWED

    res = await client.get(f"/bookings/{booking_id}", headers=DOCTOR)
    assert res.json()["status"] == "pending"
    assert res.json()["version"] == 1


async def test_stale_version_is_a_conflict(client):
    listing_id = await _open_listing(client)
    res = await client.post("/bookings", headers=ESTABLISHMENT, json={"vacation_post_id": listing_id})
    booking_id = res.json()["id"]

    await client.post(f"/bookings/{booking_id}/transition", headers=DOCTOR, json={"status": "confirmed"})
    res = await client.post(
        f"/bookings/{booking_id}/transition",
        headers=ESTABLISHMENT,
        json={"status": "cancelled", "expected_version": 1},
    )
    assert res.status_code == 409
    assert res.json() != NOT_ALLOWED


async def test_outsider_sees_not_found(client):
    listing_id = await _open_listing(client)
    res = await client.post("/bookings", headers=ESTABLISHMENT, json={"vacation_post_id": listing_id})
    booking_id = res.json()["id"]

    res = await client.get(f"/bookings/{booking_id}", headers=OTHER_ESTABLISHMENT)
    assert res.status_code == 404


async def test_auth_failures(client):
    assert (await client.get("/bookings")).status_code == 401
    assert (await client.get("/bookings", headers={"Authorization": "Bearer garbage"})).status_code == 401
    assert (await client.get("/bookings", headers=ADMIN)).status_code == 403

    res = await client.post("/listings", headers=_auth("doc-1", "doctor", email_confirmed=False), json={
        "title": "x",
        "hourly_rate": 10,
        "start_date": "2026-11-01T00:00:00Z",
        "end_date": "2026-11-02T00:00:00Z",
    })
    assert res.status_code == 403


@pytest.mark.parametrize("query", [{"status": "archived"}, {"date_range": "yesterday"}])
async def test_bad_filters_are_rejected(client, query):
    res = await client.get("/bookings", headers=DOCTOR, params=query)
    assert res.status_code == 422


async def test_health(client):
    res = await client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"
    assert res.json()["events_enabled"] is False


async def test_admin_is_refused_on_single_booking(client):
    listing_id = await _open_listing(client)
    res = await client.post("/bookings", headers=ESTABLISHMENT, json={"vacation_post_id": listing_id})
    booking_id = res.json()["id"]

    res = await client.get(f"/bookings/{booking_id}", headers=ADMIN)
    assert res.status_code == 403


async def test_reviews_after_completion(client):
    listing_id = await _open_listing(client)
    res = await client.post("/bookings", headers=ESTABLISHMENT, json={"vacation_post_id": listing_id})
    booking_id = res.json()["id"]

    res = await client.post(f"/bookings/{booking_id}/reviews", headers=ESTABLISHMENT, json={"rating": 5})
    assert res.status_code == 409

    await client.post(f"/bookings/{booking_id}/transition", headers=DOCTOR, json={"status": "confirmed"})
    await client.post(f"/bookings/{booking_id}/transition", headers=DOCTOR, json={"status": "completed"})

    res = await client.post(f"/bookings/{booking_id}/reviews", headers=ESTABLISHMENT, json={"rating": 6})
    assert res.status_code == 422

    res = await client.post(
        f"/bookings/{booking_id}/reviews", headers=ESTABLISHMENT, json={"rating": 4, "comment": "On time"},
    )
    assert res.status_code == 201
    review = res.json()
    assert (review["reviewed_id"], review["type"], review["reviewer_name"]) == ("doc-1", "doctor", "Unknown")

    res = await client.get("/users/doc-1/reviews", headers=OTHER_ESTABLISHMENT, params={"type": "doctor"})
    assert res.json()["count"] == 1
    assert res.json()["average_rating"] == 4.0

    res = await client.delete(f"/reviews/{review['id']}", headers=ESTABLISHMENT)
    assert res.status_code == 204
    res = await client.get("/users/doc-1/reviews", headers=OTHER_ESTABLISHMENT)
    assert res.json() == {"reviews": [], "count": 0, "average_rating": 0.0}
