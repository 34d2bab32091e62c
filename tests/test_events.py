"""
Tests for event endpoints: creation, visibility, listing and updates.
"""

from datetime import datetime, timezone, timedelta

import pytest
from httpx import AsyncClient

from tests.conftest import make_event
from venue_booking.domain.enums import EventStatus
from venue_booking.services import event_service


def event_payload(**fields) -> dict:
    start = datetime.now(timezone.utc) + timedelta(days=30)
    payload = {
        "name": "Spring Gala",
        "description": "Orchestra and choir",
        "category": "concert",
        "venue_name": "Main Hall",
        "venue_capacity": 250,
        "start_at": start.isoformat(),
        "end_at": (start + timedelta(hours=3)).isoformat(),
        "base_price": "40.00",
        "faculty": ["City Orchestra"],
    }
    payload.update(fields)
    return payload


@pytest.mark.asyncio
async def test_create_event(client: AsyncClient, admin_headers, admin_user):
    """Admin creates an event; it starts as a draft with an empty counter."""
    response = await client.post("/api/v1/events", json=event_payload(), headers=admin_headers)
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["name"] == "Spring Gala"
    assert data["status"] == "draft"
    assert data["organizer_id"] == admin_user.id
    assert data["current_bookings"] == 0
    assert data["effective_capacity"] == 250
    assert data["duration_minutes"] == 180
    assert data["is_available"] is False  # drafts are not bookable


@pytest.mark.asyncio
async def test_create_event_requires_admin(client: AsyncClient, auth_headers):
    response = await client.post("/api/v1/events", json=event_payload(), headers=auth_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_event_unauthenticated(client: AsyncClient, db_session):
    response = await client.post("/api/v1/events", json=event_payload())
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_event_in_past(client: AsyncClient, admin_headers):
    start = datetime.now(timezone.utc) - timedelta(days=1)
    response = await client.post(
        "/api/v1/events",
        json=event_payload(start_at=start.isoformat(), end_at=(start + timedelta(hours=1)).isoformat()),
        headers=admin_headers,
    )
    assert response.status_code == 422
    assert response.json()["errors"][0]["field"] == "start_at"


@pytest.mark.asyncio
async def test_create_event_end_before_start(client: AsyncClient, admin_headers):
    payload = event_payload()
    payload["end_at"] = (datetime.fromisoformat(payload["start_at"]) - timedelta(hours=1)).isoformat()
    response = await client.post("/api/v1/events", json=payload, headers=admin_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_events_public_only(client: AsyncClient, db_session, admin_user, test_event):
    """Drafts, private and past events stay out of the public listing."""
    await make_event(db_session, admin_user, name="Draft", status=EventStatus.DRAFT)
    await make_event(db_session, admin_user, name="Private", is_public=False)
    past = datetime.now(timezone.utc) - timedelta(days=2)
    await make_event(db_session, admin_user, name="Past", start_at=past)

    response = await client.get("/api/v1/events")
    assert response.status_code == 200
    data = response.json()["data"]
    assert [event["name"] for event in data["events"]] == [test_event.name]
    assert data["pagination"] == {"page": 1, "limit": 10, "total": 1, "pages": 1}


@pytest.mark.asyncio
async def test_list_events_pagination_and_search(client: AsyncClient, db_session, admin_user):
    for index in range(5):
        await make_event(
            db_session,
            admin_user,
            name=f"Recital {index}",
            start_at=datetime.now(timezone.utc) + timedelta(days=index + 1),
        )
    await make_event(db_session, admin_user, name="Jazz Night")

    response = await client.get("/api/v1/events", params={"page": 2, "limit": 2, "search": "recital"})
    data = response.json()["data"]
    assert [event["name"] for event in data["events"]] == ["Recital 2", "Recital 3"]
    assert data["pagination"]["total"] == 5
    assert data["pagination"]["pages"] == 3


@pytest.mark.asyncio
async def test_featured_and_upcoming(client: AsyncClient, db_session, admin_user, test_event):
    featured = await make_event(db_session, admin_user, name="Featured Gala", is_featured=True)

    response = await client.get("/api/v1/events/featured")
    assert response.status_code == 200
    assert [event["id"] for event in response.json()["data"]] == [featured.id]

    response = await client.get("/api/v1/events/upcoming")
    assert response.status_code == 200
    assert {event["id"] for event in response.json()["data"]} == {featured.id, test_event.id}


@pytest.mark.asyncio
async def test_get_event_availability(client: AsyncClient, test_event):
    response = await client.get(f"/api/v1/events/{test_event.id}")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["is_available"] is True
    assert data["can_book"] is True
    assert data["seats_remaining"] == 100


@pytest.mark.asyncio
async def test_draft_event_hidden_from_public(client: AsyncClient, db_session, admin_user, admin_headers, auth_headers):
    draft = await make_event(db_session, admin_user, status=EventStatus.DRAFT)

    assert (await client.get(f"/api/v1/events/{draft.id}")).status_code == 404
    assert (await client.get(f"/api/v1/events/{draft.id}", headers=auth_headers)).status_code == 404
    assert (await client.get(f"/api/v1/events/{draft.id}", headers=admin_headers)).status_code == 200


@pytest.mark.asyncio
async def test_get_event_not_found(client: AsyncClient, db_session):
    response = await client.get("/api/v1/events/doesnotexist")
    assert response.status_code == 404
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_update_event(client: AsyncClient, admin_headers, test_event):
    response = await client.put(
        f"/api/v1/events/{test_event.id}",
        json={"name": "Renamed Evening", "max_bookings": 50, "tags": ["strings"]},
        headers=admin_headers,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["name"] == "Renamed Evening"
    assert data["effective_capacity"] == 50
    assert data["tags"] == ["strings"]


@pytest.mark.asyncio
async def test_update_event_requires_organizer_or_admin(client: AsyncClient, auth_headers, test_event):
    response = await client.put(f"/api/v1/events/{test_event.id}", json={"name": "Hijacked"}, headers=auth_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_update_event_capacity_below_bookings(client: AsyncClient, db_session, admin_user, admin_headers):
    event = await make_event(db_session, admin_user, venue_capacity=10, current_bookings=5)
    response = await client.put(f"/api/v1/events/{event.id}", json={"max_bookings": 4}, headers=admin_headers)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_update_event_illegal_status_transition(client: AsyncClient, db_session, admin_user, admin_headers):
    event = await make_event(db_session, admin_user, status=EventStatus.CANCELLED)
    response = await client.put(f"/api/v1/events/{event.id}", json={"status": "published"}, headers=admin_headers)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_update_event_end_before_start(client: AsyncClient, admin_headers, test_event):
    end = test_event.start_at - timedelta(hours=1)
    response = await client.put(
        f"/api/v1/events/{test_event.id}", json={"end_at": end.isoformat()}, headers=admin_headers
    )
    assert response.status_code == 422
    assert response.json()["errors"][0]["field"] == "end_at"


@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["name", "start_at", "end_at", "venue_capacity", "status", "tags"])
async def test_update_event_rejects_null_required_field(client: AsyncClient, db_session, admin_headers, test_event, field):
    response = await client.put(f"/api/v1/events/{test_event.id}", json={field: None}, headers=admin_headers)
    assert response.status_code == 422
    assert response.json()["errors"] == [{"field": field, "message": f"{field} cannot be cleared"}]

    await db_session.refresh(test_event)
    assert test_event.name == "Chamber Music Evening"
    assert test_event.venue_capacity == 100


@pytest.mark.asyncio
async def test_update_event_clears_optional_field(client: AsyncClient, admin_headers, db_session, admin_user):
    event = await make_event(db_session, admin_user, max_bookings=50)
    response = await client.put(f"/api/v1/events/{event.id}", json={"max_bookings": None}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"]["max_bookings"] is None
    assert response.json()["data"]["effective_capacity"] == 100


@pytest.mark.asyncio
async def test_listing_excludes_event_starting_now(db_session, admin_user):
    start = datetime.now(timezone.utc) + timedelta(days=3)
    event = await make_event(db_session, admin_user, start_at=start)

    listed, total = await event_service.list_events(db_session, now=start)
    assert event.id not in {e.id for e in listed}
    assert total == 0

    listed, _ = await event_service.list_events(db_session, now=start - timedelta(seconds=1))
    assert [e.id for e in listed] == [event.id]


@pytest.mark.asyncio
async def test_search_suggestions_match_name_tags_and_faculty(client: AsyncClient, db_session, admin_user):
    by_name = await make_event(db_session, admin_user, name="Late Night Jazz")
    by_tag = await make_event(db_session, admin_user, name="Big Band Hour", tags=["swing", "jazz"])
    by_faculty = await make_event(db_session, admin_user, name="Brass Quintet", faculty=["Jazz Department"])
    await make_event(db_session, admin_user, name="Jazz Rehearsal", status=EventStatus.DRAFT)
    await make_event(db_session, admin_user, name="Private Jazz Session", is_public=False)
    await make_event(
        db_session, admin_user, name="Jazz Retrospective", start_at=datetime.now(timezone.utc) - timedelta(days=2)
    )
    await make_event(db_session, admin_user, name="String Quartet", tags=["classical"])

    response = await client.get("/api/v1/events/search/suggestions", params={"q": "JAZZ"})
    assert response.status_code == 200
    suggestions = response.json()["data"]
    assert {s["id"] for s in suggestions} == {by_name.id, by_tag.id, by_faculty.id}
    assert set(suggestions[0]) == {"id", "name", "category", "tags", "faculty"}


@pytest.mark.asyncio
@pytest.mark.parametrize("q", ["", "j", " j "])
async def test_search_suggestions_need_two_characters(client: AsyncClient, test_event, q):
    response = await client.get("/api/v1/events/search/suggestions", params={"q": q})
    assert response.status_code == 200
    assert response.json()["data"] == []


@pytest.mark.asyncio
async def test_search_suggestions_limited_to_ten(client: AsyncClient, db_session, admin_user):
    start = datetime.now(timezone.utc) + timedelta(days=1)
    for i in range(12):
        await make_event(db_session, admin_user, name=f"Organ Recital {i}", start_at=start + timedelta(hours=i))

    response = await client.get("/api/v1/events/search/suggestions", params={"q": "organ"})
    names = [s["name"] for s in response.json()["data"]]
    assert names == [f"Organ Recital {i}" for i in range(10)]
