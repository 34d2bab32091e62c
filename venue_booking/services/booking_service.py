"""
Booking service: creation, edits and the status lifecycle.

Every mutating operation runs the same named steps in order:

  1. validate input and load records        (ValidationError / NotFoundError)
  2. check ownership or role                (AuthorizationError)
  3. check the state machine and capacity   (ConflictError)
       entering `confirmed` reserves a seat here, before anything is written
  4. write the booking
  5. leaving `confirmed` releases the seat  (best effort, see event_service)

Steps 1-3 raise before any write, so a refused request leaves the booking
and the event counter untouched. Notifications are scheduled by the route
once the request has committed.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.attributes import set_committed_value

from venue_booking.core.config import get_settings
from venue_booking.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from venue_booking.core.logging import get_logger
from venue_booking.core.metrics import record_booking_attempt, record_transition
from venue_booking.core.security import Actor
from venue_booking.domain import availability, lifecycle, pricing
from venue_booking.domain.enums import BookingSource, BookingStatus, PaymentStatus, RefundStatus
from venue_booking.models.booking import Booking
from venue_booking.models.event import Event
from venue_booking.models.user import User
from venue_booking.schemas.booking import (
    AdminBookingCreate,
    BookingCreate,
    BookingStatusUpdate,
    BookingUpdate,
    PaymentUpdate,
)
from venue_booking.schemas.common import column_values
from venue_booking.services import event_service

logger = get_logger(__name__)
settings = get_settings()

DOCUMENT_FIELDS = frozenset({"address", "additional_services", "contact_info"})

# Content fields that may be changed but never set to null
REQUIRED_FIELDS = frozenset(
    {
        "event_name", "event_location", "email", "event_time", "fee_amount", "fee_currency",
        "requested_date", "faculty", "equipment_needs", "additional_services",
    }
)

SORT_FIELDS = {
    "created_at": Booking.created_at,
    "requested_date": Booking.requested_date,
    "status": Booking.status,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _ensure_owner_or_admin(actor: Actor, booking: Booking) -> None:
    if not (actor.is_admin or booking.user_id == actor.id):
        raise AuthorizationError("Not authorized to access this booking")


def _event_start(booking: Booking) -> datetime:
    if booking.event is not None:
        return booking.event.start_at
    return booking.event_time


async def _load_booking(db: AsyncSession, booking_id: str) -> Booking:
    result = await db.execute(
        select(Booking).options(selectinload(Booking.event)).where(Booking.id == booking_id)
    )
    booking = result.scalar_one_or_none()
    if not booking:
        raise NotFoundError("Booking not found")
    return booking


def _new_booking(
    user_id: str,
    event: Event,
    booking_data: BookingCreate,
    now: datetime,
    status: BookingStatus,
    source: BookingSource,
) -> Booking:
    values = column_values(
        booking_data,
        DOCUMENT_FIELDS,
        exclude={"event_id", "user_id", "status", "source", "admin_notes", "internal_notes"},
    )
    # Snapshot the event unless the request overrides it
    values["event_name"] = values.get("event_name") or event.name
    values["event_location"] = values.get("event_location") or event.venue_name
    values["event_time"] = values.get("event_time") or event.start_at
    if values.get("fee_amount") is None:
        values["fee_amount"] = pricing.quoted_price(event, now)
    values["fee_currency"] = values.get("fee_currency") or event.currency

    return Booking(
        **values,
        event=event,
        user_id=user_id,
        faculty=list(event.faculty or []),
        status=status,
        payment_status=PaymentStatus.PENDING,
        source=source,
    )


async def create_booking(
    db: AsyncSession,
    actor: Actor,
    booking_data: BookingCreate,
    now: Optional[datetime] = None,
) -> Booking:
    """
    Create a pending booking for the acting user.
    The event must currently be bookable; the seat is taken on confirmation.
    """
    now = now or _utcnow()
    event = await db.get(Event, booking_data.event_id)
    if event is None or not event_service.is_visible(actor, event):
        record_booking_attempt("error")
        raise NotFoundError(f"Event {booking_data.event_id} not found")

    reason = availability.unavailable_reason(event, now)
    if reason is not None:
        record_booking_attempt("conflict")
        logger.warning(
            "booking_refused",
            event_id=event.id,
            user_id=actor.id,
            reason=reason,
            current=event.current_bookings,
            capacity=event.effective_capacity,
        )
        raise ConflictError(reason)

    booking = _new_booking(actor.id, event, booking_data, now, BookingStatus.PENDING, BookingSource.WEBSITE)
    db.add(booking)
    await db.flush()

    record_booking_attempt("success")
    record_transition("new", BookingStatus.PENDING.value)
    logger.info(
        "booking_created",
        booking_id=booking.id,
        reference=booking.reference_number,
        user_id=actor.id,
        event_id=event.id,
        status=booking.status.value,
    )
    return booking


async def create_booking_as_admin(
    db: AsyncSession,
    actor: Actor,
    booking_data: AdminBookingCreate,
    now: Optional[datetime] = None,
) -> Booking:
    """
    Create a booking on behalf of any user, optionally already confirmed.
    A confirmed booking still needs a free seat.
    """
    now = now or _utcnow()
    if not actor.is_admin:
        raise AuthorizationError("Admin access required")
    if booking_data.status not in (BookingStatus.PENDING, BookingStatus.CONFIRMED):
        raise ValidationError.for_field("status", "Bookings start as pending or confirmed")
    if await db.get(User, booking_data.user_id) is None:
        raise NotFoundError(f"User {booking_data.user_id} not found")
    event = await event_service.get_event_record(db, booking_data.event_id)

    if booking_data.status == BookingStatus.CONFIRMED:
        try:
            await event_service.reserve_seat(db, event)
        except ConflictError:
            record_booking_attempt("conflict")
            raise

    booking = _new_booking(booking_data.user_id, event, booking_data, now, booking_data.status, booking_data.source)
    booking.admin_notes = booking_data.admin_notes
    booking.internal_notes = booking_data.internal_notes
    db.add(booking)
    await db.flush()

    record_booking_attempt("success")
    record_transition("new", booking.status.value)
    logger.info(
        "booking_created",
        booking_id=booking.id,
        reference=booking.reference_number,
        user_id=booking.user_id,
        event_id=event.id,
        status=booking.status.value,
        created_by=actor.id,
    )
    return booking


async def get_booking(db: AsyncSession, actor: Actor, booking_id: str) -> Booking:
    booking = await _load_booking(db, booking_id)
    _ensure_owner_or_admin(actor, booking)
    return booking


async def list_bookings(
    db: AsyncSession,
    actor: Actor,
    page: int = 1,
    limit: int = 10,
    status: Optional[BookingStatus] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    all_users: bool = False,
    user_id: Optional[str] = None,
    event_id: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    search: Optional[str] = None,
) -> tuple[list[Booking], int]:
    """
    Paginated bookings. Users only ever see their own; admins may pass
    all_users=True and filter by user, event, requested-date range and text.
    """
    if all_users and not actor.is_admin:
        raise AuthorizationError("Admin access required")

    query = select(Booking)
    if not all_users:
        query = query.where(Booking.user_id == actor.id)
    elif user_id:
        query = query.where(Booking.user_id == user_id)

    if status is not None:
        query = query.where(Booking.status == status)
    if event_id:
        query = query.where(Booking.event_id == event_id)
    if date_from is not None:
        query = query.where(Booking.requested_date >= date_from)
    if date_to is not None:
        query = query.where(Booking.requested_date <= date_to)
    if search:
        pattern = f"%{search}%"
        query = query.where(
            or_(
                Booking.event_name.ilike(pattern),
                Booking.email.ilike(pattern),
                Booking.event_location.ilike(pattern),
            )
        )

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    column = SORT_FIELDS.get(sort_by, Booking.created_at)
    ordering = column.asc() if sort_order == "asc" else column.desc()
    result = await db.execute(
        query.options(selectinload(Booking.event))
        .order_by(ordering, Booking.id)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def update_booking(
    db: AsyncSession,
    actor: Actor,
    booking_id: str,
    booking_data: BookingUpdate,
) -> Booking:
    """Edit booking content while it is still pending or confirmed."""
    booking = await _load_booking(db, booking_id)
    _ensure_owner_or_admin(actor, booking)

    if not lifecycle.is_editable(booking.status):
        raise ConflictError(f"Cannot update a {booking.status.value} booking")

    changes = column_values(booking_data, DOCUMENT_FIELDS, exclude_unset=True)
    for field, value in changes.items():
        if value is None and field in REQUIRED_FIELDS:
            raise ValidationError.for_field(field, f"{field} cannot be cleared")
        setattr(booking, field, value)
    await db.flush()

    logger.info("booking_updated", booking_id=booking.id, fields=sorted(changes))
    return booking


async def _claim_status(db: AsyncSession, booking: Booking, previous: BookingStatus, values: dict) -> None:
    """Write `values` only if the booking still has the status this request read."""
    result = await db.execute(
        update(Booking)
        .where(Booking.id == booking.id, Booking.status == previous)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.warning("booking_status_race_lost", booking_id=booking.id, expected_status=previous.value)
        raise ConflictError("Booking was changed by another request; reload and try again")
    for field, value in values.items():
        set_committed_value(booking, field, value)


async def _apply_status(
    db: AsyncSession,
    actor: Actor,
    booking: Booking,
    target: BookingStatus,
    reason: Optional[str],
    now: datetime,
) -> BookingStatus:
    """
    Move `booking` to `target` with its cancellation and counter side effects.

    The status is claimed with a conditional UPDATE on the status this
    request read, so when two requests race on the same booking only one
    of them moves the event counter; the other gets a ConflictError.
    """
    previous = BookingStatus(booking.status)
    delta = lifecycle.counter_delta(previous, target)

    values = {"status": target}
    if target == BookingStatus.CANCELLED and previous != BookingStatus.CANCELLED:
        default_reason = "Cancelled by admin" if actor.is_admin else "Cancelled by user"
        values.update(
            cancellation_reason=reason or default_reason,
            cancelled_by=actor.id,
            cancelled_at=now,
            refund_status=RefundStatus.PENDING,
        )
    elif target != BookingStatus.CANCELLED:
        values.update(cancellation_reason=None, cancelled_by=None, cancelled_at=None, refund_status=None)

    await _claim_status(db, booking, previous, values)
    if delta > 0:
        if booking.event is None:
            raise ConflictError("The event for this booking no longer exists")
        await event_service.reserve_seat(db, booking.event)
    await db.flush()

    if delta < 0 and booking.event is not None:
        await event_service.release_seat(db, booking.event)

    record_transition(previous.value, target.value)
    logger.info(
        "booking_status_changed",
        booking_id=booking.id,
        event_id=booking.event_id,
        from_status=previous.value,
        to_status=target.value,
        actor_id=actor.id,
    )
    return previous


async def cancel_booking(
    db: AsyncSession,
    actor: Actor,
    booking_id: str,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Booking:
    """
    Owner-initiated cancellation. Allowed from pending or confirmed while
    more than CANCELLATION_WINDOW_HOURS remain before the event starts.
    """
    now = now or _utcnow()
    booking = await _load_booking(db, booking_id)
    _ensure_owner_or_admin(actor, booking)

    if booking.status == BookingStatus.CANCELLED:
        raise ConflictError("Booking is already cancelled")
    if not lifecycle.can_user_cancel(
        booking.status, _event_start(booking), now, settings.CANCELLATION_WINDOW_HOURS
    ):
        raise ConflictError("Booking cannot be cancelled at this time")

    await _apply_status(db, actor, booking, BookingStatus.CANCELLED, reason, now)
    return booking


async def set_booking_status(
    db: AsyncSession,
    actor: Actor,
    booking_id: str,
    status_data: BookingStatusUpdate,
    now: Optional[datetime] = None,
) -> tuple[Booking, BookingStatus]:
    """
    Admin override: any status may be set regardless of the state machine.
    Capacity still applies when entering confirmed, and cancelling needs a
    reason. Returns the booking and its previous status.
    """
    now = now or _utcnow()
    if not actor.is_admin:
        raise AuthorizationError("Admin access required")
    booking = await _load_booking(db, booking_id)

    previous = BookingStatus(booking.status)
    entering_cancelled = status_data.status == BookingStatus.CANCELLED and previous != BookingStatus.CANCELLED
    if entering_cancelled and not status_data.reason:
        raise ValidationError.for_field("reason", "A reason is required to cancel a booking")

    booking.admin_notes = status_data.admin_notes
    if status_data.internal_notes is not None:
        booking.internal_notes = status_data.internal_notes
    if status_data.status != previous:
        await _apply_status(db, actor, booking, status_data.status, status_data.reason, now)
    else:
        await db.flush()
    return booking, previous


async def record_payment(
    db: AsyncSession,
    actor: Actor,
    booking_id: str,
    payment_data: PaymentUpdate,
    now: Optional[datetime] = None,
) -> Booking:
    """Admin update of the payment sub-record."""
    now = now or _utcnow()
    if not actor.is_admin:
        raise AuthorizationError("Admin access required")
    booking = await _load_booking(db, booking_id)

    paid = booking.paid_amount if booking.paid_amount is not None else booking.total_amount
    refund = payment_data.refund_amount if payment_data.refund_amount is not None else paid
    if payment_data.payment_status == PaymentStatus.REFUNDED and refund > paid:
        raise ValidationError.for_field("refund_amount", "Refund cannot exceed the amount paid")

    booking.payment_status = payment_data.payment_status
    if payment_data.payment_method is not None:
        booking.payment_method = payment_data.payment_method
    if payment_data.transaction_id is not None:
        booking.transaction_id = payment_data.transaction_id

    if payment_data.payment_status == PaymentStatus.PAID:
        booking.paid_amount = (
            payment_data.paid_amount if payment_data.paid_amount is not None else booking.total_amount
        )
        booking.paid_at = now
    elif payment_data.payment_status == PaymentStatus.REFUNDED:
        booking.refund_amount = refund
        booking.refunded_at = now
        if booking.status == BookingStatus.CANCELLED:
            booking.refund_status = RefundStatus.FULL if refund == paid else RefundStatus.PARTIAL
    await db.flush()

    logger.info(
        "booking_payment_recorded",
        booking_id=booking.id,
        payment_status=booking.payment_status.value,
        actor_id=actor.id,
    )
    return booking
