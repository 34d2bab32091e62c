"""
Event endpoints. Availability is computed per request from the stored
counter; event data is never served from a cache.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from venue_booking.core.config import get_settings
from venue_booking.core.security import Actor, get_current_actor, get_optional_actor
from venue_booking.db.session import get_db
from venue_booking.domain.enums import EventCategory
from venue_booking.schemas.common import ApiResponse, Pagination
from venue_booking.schemas.event import (
    EventCreate,
    EventListResponse,
    EventResponse,
    EventSuggestion,
    EventUpdate,
)
from venue_booking.services import event_service

settings = get_settings()
router = APIRouter(prefix="/events", tags=["Events"])


@router.get("", response_model=ApiResponse[EventListResponse])
async def list_events(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    category: Optional[EventCategory] = None,
    featured: Optional[bool] = None,
    search: Optional[str] = Query(None, max_length=100),
    sort_by: str = Query("start_at", pattern="^(start_at|created_at|name|base_price)$"),
    sort_order: str = Query("asc", pattern="^(asc|desc)$"),
    db: AsyncSession = Depends(get_db),
):
    """Published, public, upcoming events."""
    now = datetime.now(timezone.utc)
    events, total = await event_service.list_events(
        db,
        page=page,
        limit=limit,
        category=category,
        featured=featured,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        now=now,
    )
    return ApiResponse(
        message="Events retrieved successfully",
        data=EventListResponse(
            events=[EventResponse.from_event(event, now) for event in events],
            pagination=Pagination.build(page, limit, total),
        ),
    )


@router.get("/featured", response_model=ApiResponse[list[EventResponse]])
async def list_featured_events(
    limit: int = Query(6, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
):
    now = datetime.now(timezone.utc)
    events = await event_service.list_featured_events(db, limit=limit, now=now)
    return ApiResponse(
        message="Featured events retrieved successfully",
        data=[EventResponse.from_event(event, now) for event in events],
    )


@router.get("/upcoming", response_model=ApiResponse[list[EventResponse]])
async def list_upcoming_events(
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
):
    now = datetime.now(timezone.utc)
    events = await event_service.list_upcoming_events(db, limit=limit, now=now)
    return ApiResponse(
        message="Upcoming events retrieved successfully",
        data=[EventResponse.from_event(event, now) for event in events],
    )


@router.get("/search/suggestions", response_model=ApiResponse[list[EventSuggestion]])
async def search_suggestions(
    q: str = Query("", max_length=100),
    db: AsyncSession = Depends(get_db),
):
    """Typeahead over upcoming public events; needs at least two characters."""
    events = await event_service.search_suggestions(db, q, now=datetime.now(timezone.utc))
    return ApiResponse(
        message="Suggestions retrieved successfully",
        data=[EventSuggestion.model_validate(event) for event in events],
    )


@router.get("/{event_id}", response_model=ApiResponse[EventResponse])
async def get_event(
    event_id: str,
    actor: Optional[Actor] = Depends(get_optional_actor),
    db: AsyncSession = Depends(get_db),
):
    event = await event_service.get_event(db, actor, event_id)
    return ApiResponse(
        message="Event retrieved successfully",
        data=EventResponse.from_event(event, datetime.now(timezone.utc)),
    )


@router.post("", response_model=ApiResponse[EventResponse], status_code=status.HTTP_201_CREATED)
async def create_event(
    event_data: EventCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Create an event. Admin only."""
    now = datetime.now(timezone.utc)
    event = await event_service.create_event(db, actor, event_data, now)
    return ApiResponse(message="Event created successfully", data=EventResponse.from_event(event, now))


@router.put("/{event_id}", response_model=ApiResponse[EventResponse])
async def update_event(
    event_id: str,
    event_data: EventUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    now = datetime.now(timezone.utc)
    event = await event_service.update_event(db, actor, event_id, event_data, now)
    return ApiResponse(message="Event updated successfully", data=EventResponse.from_event(event, now))


@router.delete("/{event_id}", response_model=ApiResponse[None])
async def delete_event(
    event_id: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Delete an event that has no pending or confirmed bookings."""
    await event_service.delete_event(db, actor, event_id)
    return ApiResponse(message="Event deleted successfully")
