"""
Tests for booking endpoints: creation, capacity, cancellation window,
editing and counter accounting.
"""

from datetime import datetime, timezone, timedelta

import pytest
from httpx import AsyncClient
from prometheus_client import REGISTRY
from sqlalchemy import func, select, update
from sqlalchemy.exc import InvalidRequestError, OperationalError

from tests.conftest import booking_body, make_event
from venue_booking.core.exceptions import ConflictError
from venue_booking.core.security import Actor
from venue_booking.domain.enums import BookingStatus, UserRole
from venue_booking.models.booking import Booking
from venue_booking.models.event import Event
from venue_booking.schemas.booking import BookingStatusUpdate
from venue_booking.services import booking_service, event_service


async def count_bookings(db_session) -> int:
    return (await db_session.execute(select(func.count(Booking.id)))).scalar()


async def create_booking(client: AsyncClient, headers: dict, event, **fields) -> dict:
    response = await client.post("/api/v1/bookings", json=booking_body(event, **fields), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def confirm(client: AsyncClient, admin_headers: dict, booking_id: str):
    return await client.put(
        f"/api/v1/admin/bookings/{booking_id}/status",
        json={"status": "confirmed", "admin_notes": "Payment received"},
        headers=admin_headers,
    )


@pytest.mark.asyncio
async def test_create_booking(client: AsyncClient, db_session, test_user, auth_headers, test_event):
    """A new booking is pending, snapshots the event and leaves the counter alone."""
    response = await client.post(
        "/api/v1/bookings",
        json=booking_body(
            test_event,
            special_requirements="Wheelchair access",
            additional_services=[{"name": "Programme", "price": "5.00"}],
        ),
        headers=auth_headers,
    )
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert data["status"] == "pending"
    assert data["user_id"] == test_user.id
    assert data["event_name"] == test_event.name
    assert data["event_location"] == test_event.venue_name
    assert data["fee_amount"] == 50.0
    assert data["total_amount"] == 55.0
    assert data["payment"]["status"] == "pending"
    assert data["source"] == "website"
    assert data["cancellation"] is None
    assert data["admin_notes"] is None

    created = datetime.fromisoformat(data["created_at"])
    assert data["reference_number"] == f"SM-{created.year}{created.month:02d}-{data['id'][-6:].upper()}"

    await db_session.refresh(test_event)
    assert test_event.current_bookings == 0


@pytest.mark.asyncio
async def test_create_booking_unauthenticated(client: AsyncClient, test_event):
    response = await client.post("/api/v1/bookings", json=booking_body(test_event))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_booking_unknown_event(client: AsyncClient, auth_headers):
    response = await client.post(
        "/api/v1/bookings",
        json={"event_id": "missing", "email": "a@example.com", "requested_date": datetime.now(timezone.utc).isoformat()},
        headers=auth_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_create_booking_full_event(client: AsyncClient, db_session, auth_headers, full_event):
    """Booking a full event is a conflict and changes nothing."""
    response = await client.post("/api/v1/bookings", json=booking_body(full_event), headers=auth_headers)
    assert response.status_code == 409
    assert response.json()["message"] == "Event is fully booked"

    await db_session.refresh(full_event)
    assert full_event.current_bookings == 2
    assert await count_bookings(db_session) == 0


@pytest.mark.asyncio
async def test_create_booking_after_deadline(client: AsyncClient, db_session, admin_user, auth_headers):
    event = await make_event(db_session, admin_user, booking_deadline=datetime.now(timezone.utc) - timedelta(hours=1))
    response = await client.post("/api/v1/bookings", json=booking_body(event), headers=auth_headers)
    assert response.status_code == 409
    assert response.json()["message"] == "Booking deadline has passed"


@pytest.mark.asyncio
async def test_create_booking_negative_fee(client: AsyncClient, auth_headers, test_event):
    response = await client.post(
        "/api/v1/bookings", json=booking_body(test_event, fee_amount="-1"), headers=auth_headers
    )
    assert response.status_code == 422
    assert response.json()["errors"][0]["field"] == "fee_amount"


@pytest.mark.asyncio
async def test_confirm_takes_a_seat(client: AsyncClient, db_session, auth_headers, admin_headers, test_event):
    booking = await create_booking(client, auth_headers, test_event)
    response = await confirm(client, admin_headers, booking["id"])
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "confirmed"

    await db_session.refresh(test_event)
    assert test_event.current_bookings == 1


@pytest.mark.asyncio
async def test_confirm_beyond_capacity_is_refused(client: AsyncClient, db_session, auth_headers, other_headers, admin_headers, small_event):
    first = await create_booking(client, auth_headers, small_event)
    second = await create_booking(client, other_headers, small_event)

    assert (await confirm(client, admin_headers, first["id"])).status_code == 200
    response = await confirm(client, admin_headers, second["id"])
    assert response.status_code == 409
    assert response.json()["message"] == "Event is fully booked"

    await db_session.refresh(small_event)
    assert small_event.current_bookings == 1
    response = await client.get(f"/api/v1/bookings/{second['id']}", headers=other_headers)
    assert response.json()["data"]["status"] == "pending"


@pytest.mark.asyncio
async def test_cancel_pending_booking_48h_before(client: AsyncClient, db_session, admin_user, test_user, auth_headers):
    event = await make_event(db_session, admin_user, start_at=datetime.now(timezone.utc) + timedelta(hours=48))
    booking = await create_booking(client, auth_headers, event)

    response = await client.request(
        "DELETE", f"/api/v1/bookings/{booking['id']}", json={"reason": "Schedule clash"}, headers=auth_headers
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "cancelled"
    assert data["cancellation"]["refund_status"] == "pending"
    assert data["cancellation"]["reason"] == "Schedule clash"
    assert data["cancellation"]["cancelled_by"] == test_user.id
    assert data["cancellation"]["cancelled_at"] is not None


@pytest.mark.asyncio
async def test_cancel_within_window_is_refused(client: AsyncClient, db_session, admin_user, auth_headers):
    event = await make_event(db_session, admin_user, start_at=datetime.now(timezone.utc) + timedelta(hours=12))
    booking = await create_booking(client, auth_headers, event)

    response = await client.delete(f"/api/v1/bookings/{booking['id']}", headers=auth_headers)
    assert response.status_code == 409

    response = await client.get(f"/api/v1/bookings/{booking['id']}", headers=auth_headers)
    assert response.json()["data"]["status"] == "pending"
    assert response.json()["data"]["cancellation"] is None


@pytest.mark.asyncio
async def test_cancel_confirmed_booking_releases_seat(client: AsyncClient, db_session, auth_headers, admin_headers, test_event):
    booking = await create_booking(client, auth_headers, test_event)
    await confirm(client, admin_headers, booking["id"])

    response = await client.delete(f"/api/v1/bookings/{booking['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["data"]["cancellation"]["reason"] == "Cancelled by user"

    await db_session.refresh(test_event)
    assert test_event.current_bookings == 0


@pytest.mark.asyncio
async def test_cancel_twice(client: AsyncClient, auth_headers, test_event):
    booking = await create_booking(client, auth_headers, test_event)
    assert (await client.delete(f"/api/v1/bookings/{booking['id']}", headers=auth_headers)).status_code == 200

    response = await client.delete(f"/api/v1/bookings/{booking['id']}", headers=auth_headers)
    assert response.status_code == 409
    assert response.json()["message"] == "Booking is already cancelled"


@pytest.mark.asyncio
async def test_release_failure_keeps_cancellation(
    client: AsyncClient, db_session, auth_headers, admin_headers, test_event, monkeypatch
):
    """A failed counter release is logged and counted; the cancellation stands."""
    booking = await create_booking(client, auth_headers, test_event)
    await confirm(client, admin_headers, booking["id"])

    async def failing_release(db, event_id):
        raise OperationalError("UPDATE events", {}, Exception("database is locked"))

    monkeypatch.setattr(event_service, "_apply_release", failing_release)
    labels = {"operation": "release"}
    before = REGISTRY.get_sample_value("event_counter_sync_failures_total", labels) or 0

    response = await client.delete(f"/api/v1/bookings/{booking['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "cancelled"

    assert REGISTRY.get_sample_value("event_counter_sync_failures_total", labels) == before + 1
    await db_session.refresh(test_event)
    assert test_event.current_bookings == 1


@pytest.mark.asyncio
async def test_get_booking_of_other_user(client: AsyncClient, auth_headers, other_headers, admin_headers, test_event):
    booking = await create_booking(client, auth_headers, test_event)

    assert (await client.get(f"/api/v1/bookings/{booking['id']}", headers=other_headers)).status_code == 403
    assert (await client.get(f"/api/v1/bookings/{booking['id']}", headers=admin_headers)).status_code == 200


@pytest.mark.asyncio
async def test_list_own_bookings(client: AsyncClient, auth_headers, other_headers, test_event):
    await create_booking(client, auth_headers, test_event)
    await create_booking(client, auth_headers, test_event)
    await create_booking(client, other_headers, test_event)

    response = await client.get("/api/v1/bookings", headers=auth_headers)
    data = response.json()["data"]
    assert len(data["bookings"]) == 2
    assert data["pagination"]["total"] == 2

    response = await client.get("/api/v1/bookings", params={"status": "confirmed"}, headers=auth_headers)
    assert response.json()["data"]["bookings"] == []


@pytest.mark.asyncio
async def test_update_booking(client: AsyncClient, auth_headers, test_event):
    booking = await create_booking(client, auth_headers, test_event)
    response = await client.put(
        f"/api/v1/bookings/{booking['id']}",
        json={"description": "Two guests", "equipment_needs": ["music stand"]},
        headers=auth_headers,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["description"] == "Two guests"
    assert data["equipment_needs"] == ["music stand"]


@pytest.mark.asyncio
async def test_update_booking_cannot_clear_required_field(client: AsyncClient, auth_headers, test_event):
    booking = await create_booking(client, auth_headers, test_event)
    response = await client.put(f"/api/v1/bookings/{booking['id']}", json={"email": None}, headers=auth_headers)
    assert response.status_code == 422
    assert response.json()["errors"] == [{"field": "email", "message": "email cannot be cleared"}]


@pytest.mark.asyncio
async def test_update_cancelled_booking_is_refused(client: AsyncClient, auth_headers, test_event):
    booking = await create_booking(client, auth_headers, test_event)
    await client.delete(f"/api/v1/bookings/{booking['id']}", headers=auth_headers)

    response = await client.put(
        f"/api/v1/bookings/{booking['id']}", json={"description": "Too late"}, headers=auth_headers
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_update_booking_of_other_user(client: AsyncClient, auth_headers, other_headers, test_event):
    booking = await create_booking(client, auth_headers, test_event)
    response = await client.put(
        f"/api/v1/bookings/{booking['id']}", json={"description": "Mine now"}, headers=other_headers
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_booking_overview(client: AsyncClient, auth_headers, admin_headers, test_event):
    empty = await client.get("/api/v1/bookings/stats/overview", headers=auth_headers)
    assert empty.status_code == 200
    assert empty.json()["data"] == {
        "total": 0, "pending": 0, "confirmed": 0, "cancelled": 0,
        "completed": 0, "rejected": 0, "total_revenue": 0,
    }

    first = await create_booking(client, auth_headers, test_event)
    await create_booking(client, auth_headers, test_event)
    await confirm(client, admin_headers, first["id"])

    data = (await client.get("/api/v1/bookings/stats/overview", headers=auth_headers)).json()["data"]
    assert data["total"] == 2
    assert data["pending"] == 1
    assert data["confirmed"] == 1
    assert data["total_revenue"] == 50.0


@pytest.mark.asyncio
async def test_lost_confirm_race_takes_no_second_seat(client: AsyncClient, db_session, admin_user, auth_headers, test_event):
    booking = await create_booking(client, auth_headers, test_event)
    admin = Actor(id=admin_user.id, role=UserRole.ADMIN)
    stale = await booking_service.get_booking(db_session, admin, booking["id"])
    assert stale.status == BookingStatus.PENDING

    # Another request confirms the booking after this one read it
    await db_session.execute(
        update(Booking).where(Booking.id == booking["id"]).values(status=BookingStatus.CONFIRMED)
        .execution_options(synchronize_session=False)
    )
    await db_session.execute(
        update(Event).where(Event.id == test_event.id).values(current_bookings=1)
        .execution_options(synchronize_session=False)
    )

    with pytest.raises(ConflictError):
        await booking_service.set_booking_status(
            db_session,
            admin,
            booking["id"],
            BookingStatusUpdate(status=BookingStatus.CONFIRMED, admin_notes="Payment received"),
        )
    current = await db_session.scalar(select(Event.current_bookings).where(Event.id == test_event.id))
    assert current == 1


@pytest.mark.asyncio
async def test_lost_cancel_race_releases_no_second_seat(client: AsyncClient, db_session, admin_headers, test_user, auth_headers, test_event):
    first = await create_booking(client, auth_headers, test_event)
    second = await create_booking(client, auth_headers, test_event)
    for booking in (first, second):
        assert (await confirm(client, admin_headers, booking["id"])).status_code == 200

    owner = Actor(id=test_user.id, role=UserRole.USER)
    stale = await booking_service.get_booking(db_session, owner, first["id"])
    assert stale.status == BookingStatus.CONFIRMED

    # Another request cancels the booking and gives its seat back
    await db_session.execute(
        update(Booking).where(Booking.id == first["id"])
        .values(status=BookingStatus.CANCELLED, cancelled_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    await db_session.execute(
        update(Event).where(Event.id == test_event.id).values(current_bookings=1)
        .execution_options(synchronize_session=False)
    )

    with pytest.raises(ConflictError):
        await booking_service.cancel_booking(db_session, owner, first["id"])
    current = await db_session.scalar(select(Event.current_bookings).where(Event.id == test_event.id))
    assert current == 1


@pytest.mark.asyncio
async def test_unloaded_event_relationship_raises(client: AsyncClient, db_session, auth_headers, test_event):
    booking = await create_booking(client, auth_headers, test_event)
    db_session.expunge_all()

    loaded = await db_session.scalar(select(Booking).where(Booking.id == booking["id"]))
    with pytest.raises(InvalidRequestError):
        loaded.event

    owner = Actor(id=loaded.user_id, role=UserRole.USER)
    db_session.expunge_all()
    with_event = await booking_service.get_booking(db_session, owner, booking["id"])
    assert with_event.event.id == test_event.id
