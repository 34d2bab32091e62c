"""
Availability policy for events.

Availability is always computed from the current row and `now`; it is
never written back to storage, so it cannot go stale relative to the
booking counter.
"""

from datetime import datetime
from typing import Optional

from venue_booking.domain.enums import EventStatus


def effective_capacity(event) -> int:
    """max_bookings when configured, otherwise the venue capacity."""
    if event.max_bookings is not None:
        return event.max_bookings
    return event.venue_capacity


def seats_remaining(event) -> int:
    return max(0, effective_capacity(event) - event.current_bookings)


def is_available(event, now: datetime) -> bool:
    return (
        event.status == EventStatus.PUBLISHED
        and event.start_at > now
        and event.current_bookings < effective_capacity(event)
    )


def can_book(event, now: datetime) -> bool:
    if not is_available(event, now):
        return False
    return event.booking_deadline is None or now <= event.booking_deadline


def unavailable_reason(event, now: datetime) -> Optional[str]:
    """Human-readable reason `can_book` is false, or None when bookable."""
    if event.status != EventStatus.PUBLISHED:
        return "Event is not open for booking"
    if event.start_at <= now:
        return "Event has already started"
    if event.current_bookings >= effective_capacity(event):
        return "Event is fully booked"
    if event.booking_deadline is not None and now > event.booking_deadline:
        return "Booking deadline has passed"
    return None


def duration_minutes(event) -> int:
    return round((event.end_at - event.start_at).total_seconds() / 60)
