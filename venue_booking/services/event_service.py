"""
Event service: CRUD, visibility and capacity accounting.

CAPACITY ACCOUNTING
===================

`current_bookings` is only changed by the two functions below, each a single
conditional UPDATE, so concurrent requests cannot overbook:

  reserve_seat:
    UPDATE events SET current_bookings = current_bookings + 1, version = version + 1
    WHERE id = :id AND current_bookings < COALESCE(max_bookings, venue_capacity)

    rows_affected == 0 means the event is full -> ConflictError. The booking
    service calls this *before* writing the booking, so a refusal leaves
    nothing behind.

  release_seat:
    UPDATE events SET current_bookings = CASE WHEN current_bookings > 0
                                         THEN current_bookings - 1 ELSE 0 END
    Runs *after* the booking write inside a SAVEPOINT. A storage failure here
    is logged and counted (event_counter_sync_failures_total) but does not
    undo the booking write; the counter then needs reconciling.

The CHECK constraints on the events table are the final safety net.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, case, cast, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from venue_booking.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from venue_booking.core.logging import get_logger
from venue_booking.core.metrics import capacity_rejections, record_counter_sync_failure
from venue_booking.core.security import Actor
from venue_booking.domain import lifecycle
from venue_booking.domain.enums import EventCategory, EventStatus
from venue_booking.models.booking import Booking
from venue_booking.models.event import Event
from venue_booking.schemas.common import column_values
from venue_booking.schemas.event import EventCreate, EventUpdate

logger = get_logger(__name__)

DOCUMENT_FIELDS = frozenset({"venue_address", "discounts"})

# Fields that may be changed but never set to null
REQUIRED_FIELDS = frozenset(
    {
        "name", "description", "category", "venue_name", "venue_capacity", "venue_facilities",
        "start_at", "end_at", "base_price", "currency", "discounts", "faculty", "genres", "tags",
        "features", "status", "is_public", "is_featured",
    }
)

SUGGESTION_MIN_LENGTH = 2
SUGGESTION_LIMIT = 10

SORT_FIELDS = {
    "start_at": Event.start_at,
    "created_at": Event.created_at,
    "name": Event.name,
    "base_price": Event.base_price,
}


# ---------------------------------------------------------------------------
# Capacity accounting
# ---------------------------------------------------------------------------

async def reserve_seat(db: AsyncSession, event: Event) -> None:
    """Atomically take one seat, or raise ConflictError if the event is full."""
    result = await db.execute(
        update(Event)
        .where(
            Event.id == event.id,
            Event.current_bookings < func.coalesce(Event.max_bookings, Event.venue_capacity),
        )
        .values(
            current_bookings=Event.current_bookings + 1,
            version=Event.version + 1,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        capacity_rejections.inc()
        logger.warning(
            "seat_reservation_refused",
            event_id=event.id,
            current=event.current_bookings,
            capacity=event.effective_capacity,
        )
        raise ConflictError("Event is fully booked")

    await db.refresh(event, ["current_bookings", "version"])
    logger.info("seat_reserved", event_id=event.id, current=event.current_bookings)


async def _apply_release(db: AsyncSession, event_id: str) -> None:
    await db.execute(
        update(Event)
        .where(Event.id == event_id)
        .values(
            current_bookings=case(
                (Event.current_bookings > 0, Event.current_bookings - 1),
                else_=0,
            ),
            version=Event.version + 1,
        )
        .execution_options(synchronize_session=False)
    )


async def release_seat(db: AsyncSession, event: Event) -> bool:
    """Give one seat back (floored at zero). Returns False if the update failed."""
    try:
        async with db.begin_nested():
            await _apply_release(db, event.id)
    except SQLAlchemyError as e:
        record_counter_sync_failure("release")
        logger.error("event_counter_release_failed", event_id=event.id, error=str(e))
        return False

    await db.refresh(event, ["current_bookings", "version"])
    logger.info("seat_released", event_id=event.id, current=event.current_bookings)
    return True


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

def _can_manage(actor: Optional[Actor], event: Event) -> bool:
    return actor is not None and (actor.is_admin or event.organizer_id == actor.id)


def _ensure_can_manage(actor: Actor, event: Event) -> None:
    if not _can_manage(actor, event):
        raise AuthorizationError("Not authorized to modify this event")


def is_visible(actor: Optional[Actor], event: Event) -> bool:
    if event.status == EventStatus.PUBLISHED and event.is_public:
        return True
    return _can_manage(actor, event)


async def create_event(
    db: AsyncSession,
    actor: Actor,
    event_data: EventCreate,
    now: Optional[datetime] = None,
) -> Event:
    """Create an event organized by the acting admin."""
    now = now or datetime.now(timezone.utc)
    if not actor.is_admin:
        raise AuthorizationError("Admin access required")
    if event_data.start_at <= now:
        raise ValidationError.for_field("start_at", "Event start date must be in the future")
    if event_data.status not in (EventStatus.DRAFT, EventStatus.PUBLISHED):
        raise ValidationError.for_field("status", "New events must be draft or published")

    event = Event(
        **column_values(event_data, DOCUMENT_FIELDS),
        organizer_id=actor.id,
        current_bookings=0,
    )
    db.add(event)
    await db.flush()

    logger.info("event_created", event_id=event.id, name=event.name, capacity=event.effective_capacity)
    return event


async def get_event_record(db: AsyncSession, event_id: str) -> Event:
    event = await db.get(Event, event_id)
    if not event:
        raise NotFoundError(f"Event {event_id} not found")
    return event


async def get_event(db: AsyncSession, actor: Optional[Actor], event_id: str) -> Event:
    """Published public events are visible to everyone, others to organizer/admin."""
    event = await get_event_record(db, event_id)
    if not is_visible(actor, event):
        raise NotFoundError(f"Event {event_id} not found")
    return event


async def list_events(
    db: AsyncSession,
    page: int = 1,
    limit: int = 10,
    category: Optional[EventCategory] = None,
    featured: Optional[bool] = None,
    search: Optional[str] = None,
    sort_by: str = "start_at",
    sort_order: str = "asc",
    now: Optional[datetime] = None,
    include_all: bool = False,
    status: Optional[EventStatus] = None,
) -> tuple[list[Event], int]:
    """
    List events with pagination.

    The public listing (include_all=False) only returns published, public,
    upcoming events and uses the ix_events_listing index. The admin listing
    returns every event, optionally filtered by status.
    """
    now = now or datetime.now(timezone.utc)
    query = select(Event)

    if include_all:
        if status is not None:
            query = query.where(Event.status == status)
    else:
        query = query.where(
            Event.status == EventStatus.PUBLISHED,
            Event.is_public.is_(True),
            Event.start_at > now,
        )

    if category is not None:
        query = query.where(Event.category == category)
    if featured is not None:
        query = query.where(Event.is_featured.is_(featured))
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(Event.name.ilike(pattern), Event.description.ilike(pattern)))

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    column = SORT_FIELDS.get(sort_by, Event.start_at)
    ordering = column.desc() if sort_order == "desc" else column.asc()
    result = await db.execute(
        query.order_by(ordering, Event.id).offset((page - 1) * limit).limit(limit)
    )
    return list(result.scalars().all()), total


async def list_featured_events(db: AsyncSession, limit: int = 6, now: Optional[datetime] = None) -> list[Event]:
    events, _ = await list_events(db, page=1, limit=limit, featured=True, now=now)
    return events


async def list_upcoming_events(db: AsyncSession, limit: int = 10, now: Optional[datetime] = None) -> list[Event]:
    events, _ = await list_events(db, page=1, limit=limit, now=now)
    return events


async def search_suggestions(
    db: AsyncSession, q: str, limit: int = SUGGESTION_LIMIT, now: Optional[datetime] = None
) -> list[Event]:
    """
    Published, public, upcoming events whose name, tags or faculty contain `q`.
    Queries shorter than two characters return nothing.
    """
    q = q.strip()
    if len(q) < SUGGESTION_MIN_LENGTH:
        return []
    now = now or datetime.now(timezone.utc)

    pattern = f"%{q}%"
    result = await db.execute(
        select(Event)
        .where(
            Event.status == EventStatus.PUBLISHED,
            Event.is_public.is_(True),
            Event.start_at > now,
            # tags and faculty are JSON arrays; match against their text form
            or_(
                Event.name.ilike(pattern),
                cast(Event.tags, String).ilike(pattern),
                cast(Event.faculty, String).ilike(pattern),
            ),
        )
        .order_by(Event.start_at.asc(), Event.id)
        .limit(limit)
    )
    return list(result.scalars().all())


async def update_event(
    db: AsyncSession,
    actor: Actor,
    event_id: str,
    event_data: EventUpdate,
    now: Optional[datetime] = None,
) -> Event:
    """
    Update an event as its organizer or an admin.
    Status follows draft -> published -> cancelled/completed.
    """
    now = now or datetime.now(timezone.utc)
    event = await get_event_record(db, event_id)
    _ensure_can_manage(actor, event)

    changes = column_values(event_data, DOCUMENT_FIELDS, exclude_unset=True)
    for field, value in changes.items():
        if value is None and field in REQUIRED_FIELDS:
            raise ValidationError.for_field(field, f"{field} cannot be cleared")

    new_status = changes.get("status")
    if new_status is not None and not lifecycle.can_transition_event(event.status, new_status):
        raise ConflictError(f"Cannot change event status from {event.status.value} to {new_status.value}")

    start_at = changes.get("start_at", event.start_at)
    end_at = changes.get("end_at", event.end_at)
    if end_at <= start_at:
        raise ValidationError.for_field("end_at", "End date must be after start date")
    if "start_at" in changes and start_at <= now:
        raise ValidationError.for_field("start_at", "Event start date must be in the future")

    max_bookings = changes.get("max_bookings", event.max_bookings)
    venue_capacity = changes.get("venue_capacity", event.venue_capacity)
    capacity = max_bookings if max_bookings is not None else venue_capacity
    if capacity < event.current_bookings:
        raise ConflictError(
            f"Capacity {capacity} is below the {event.current_bookings} seats already booked"
        )

    for field, value in changes.items():
        setattr(event, field, value)
    await db.flush()

    logger.info("event_updated", event_id=event.id, fields=sorted(changes))
    return event


async def delete_event(db: AsyncSession, actor: Actor, event_id: str) -> None:
    """
    Delete an event with no pending or confirmed bookings. Remaining
    (inactive) bookings keep their snapshot and lose the event reference.
    """
    event = await get_event_record(db, event_id)
    _ensure_can_manage(actor, event)

    active = (
        await db.execute(
            select(func.count(Booking.id)).where(
                Booking.event_id == event.id,
                Booking.status.in_(lifecycle.ACTIVE_STATUSES),
            )
        )
    ).scalar()
    if active:
        raise ConflictError("Cannot delete event with active bookings")

    await db.execute(
        update(Booking)
        .where(Booking.event_id == event.id)
        .values(event_id=None)
        .execution_options(synchronize_session=False)
    )
    await db.delete(event)
    await db.flush()

    logger.info("event_deleted", event_id=event_id)

