"""
Booking lifecycle: legal status transitions, their effect on the event's
booking counter, the cancellation window and the reference number.

    pending   -> confirmed | cancelled | rejected
    confirmed -> cancelled | completed
    cancelled, completed, rejected are terminal

Admins may override the machine (see booking_service.set_booking_status);
users only ever cancel.
"""

from datetime import datetime, timedelta

from venue_booking.domain.enums import BookingStatus, EventStatus

ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset(
        {BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingStatus.REJECTED}
    ),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.REJECTED: frozenset(),
}

EDITABLE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})
ACTIVE_STATUSES = EDITABLE_STATUSES
USER_CANCELLABLE_STATUSES = EDITABLE_STATUSES

# Leaving confirmed for any of these gives the seat back; completed keeps it
SEAT_RELEASING_STATUSES = frozenset(
    {BookingStatus.CANCELLED, BookingStatus.PENDING, BookingStatus.REJECTED}
)

EVENT_TRANSITIONS: dict[EventStatus, frozenset[EventStatus]] = {
    EventStatus.DRAFT: frozenset({EventStatus.PUBLISHED, EventStatus.CANCELLED}),
    EventStatus.PUBLISHED: frozenset({EventStatus.CANCELLED, EventStatus.COMPLETED}),
    EventStatus.CANCELLED: frozenset(),
    EventStatus.COMPLETED: frozenset(),
}


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return BookingStatus(target) in ALLOWED_TRANSITIONS[BookingStatus(current)]


def is_terminal(status: BookingStatus) -> bool:
    return not ALLOWED_TRANSITIONS[BookingStatus(status)]


def is_editable(status: BookingStatus) -> bool:
    return BookingStatus(status) in EDITABLE_STATUSES


def can_transition_event(current: EventStatus, target: EventStatus) -> bool:
    if EventStatus(current) == EventStatus(target):
        return True
    return EventStatus(target) in EVENT_TRANSITIONS[EventStatus(current)]


def counter_delta(previous, target: BookingStatus) -> int:
    """
    Change to the event's current_bookings caused by moving a booking from
    `previous` (None for a new booking) to `target`.
    """
    target = BookingStatus(target)
    previous = BookingStatus(previous) if previous is not None else None
    if target == BookingStatus.CONFIRMED and previous != BookingStatus.CONFIRMED:
        return 1
    if previous == BookingStatus.CONFIRMED and target in SEAT_RELEASING_STATUSES:
        return -1
    return 0


def _outside_window(event_start: datetime, now: datetime, window_hours: int) -> bool:
    return event_start - now > timedelta(hours=window_hours)


def is_cancellable(status, event_start: datetime, now: datetime, window_hours: int = 24) -> bool:
    """Confirmed and more than `window_hours` before the event starts."""
    return BookingStatus(status) == BookingStatus.CONFIRMED and _outside_window(
        event_start, now, window_hours
    )


def can_user_cancel(status, event_start: datetime, now: datetime, window_hours: int = 24) -> bool:
    """Gate for owner-initiated cancellation: pending or confirmed, outside the window."""
    return BookingStatus(status) in USER_CANCELLABLE_STATUSES and _outside_window(
        event_start, now, window_hours
    )


def reference_number(created_at: datetime, booking_id: str, prefix: str = "SM") -> str:
    """SM-YYYYMM-XXXXXX from the creation month and the last six id characters."""
    return f"{prefix}-{created_at.year}{created_at.month:02d}-{str(booking_id)[-6:].upper()}"
