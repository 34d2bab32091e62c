"""
Event model: venue, schedule, pricing and booking settings.

Key design decisions:
- `current_bookings` is the only stored capacity state; availability is
  always derived (see domain/availability.py) so it never goes stale
- `current_bookings` is only ever changed through conditional UPDATEs in
  event_service (reserve_seat / release_seat), guarded by CHECK constraints
- `version` increments on every counter change
- Index on `start_at` for upcoming-event listings
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from venue_booking.core.config import get_settings
from venue_booking.db.base import Base, JSONDocument, StringEnum, TimestampMixin, UTCDateTime, new_id
from venue_booking.domain import availability
from venue_booking.domain.enums import EventCategory, EventStatus


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(StringEnum(EventCategory), nullable=False, index=True)

    # Venue
    venue_name = Column(String(255), nullable=False)
    venue_address = Column(JSONDocument, nullable=True)
    venue_capacity = Column(Integer, nullable=False)
    venue_facilities = Column(JSONDocument, nullable=False, default=list)

    # Schedule
    start_at = Column(UTCDateTime(), nullable=False)
    end_at = Column(UTCDateTime(), nullable=False)

    # Pricing
    base_price = Column(Numeric(10, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default=lambda: get_settings().DEFAULT_CURRENCY)
    discounts = Column(JSONDocument, nullable=False, default=list)

    organizer_id = Column(String(32), ForeignKey("users.id"), nullable=False, index=True)

    faculty = Column(JSONDocument, nullable=False, default=list)
    genres = Column(JSONDocument, nullable=False, default=list)
    tags = Column(JSONDocument, nullable=False, default=list)
    features = Column(JSONDocument, nullable=False, default=list)

    status = Column(StringEnum(EventStatus), nullable=False, default=EventStatus.DRAFT, index=True)
    is_public = Column(Boolean, nullable=False, default=True)
    is_featured = Column(Boolean, nullable=False, default=False)

    # Booking settings
    max_bookings = Column(Integer, nullable=True)
    current_bookings = Column(Integer, nullable=False, default=0)
    booking_deadline = Column(UTCDateTime(), nullable=True)
    cancellation_policy = Column(Text, nullable=True)
    refund_policy = Column(Text, nullable=True)

    version = Column(Integer, nullable=False, default=1)

    organizer = relationship("User", back_populates="events", lazy="raise")
    bookings = relationship("Booking", back_populates="event", lazy="raise", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("venue_capacity > 0", name="check_venue_capacity_positive"),
        CheckConstraint("base_price >= 0", name="check_base_price_non_negative"),
        CheckConstraint("end_at > start_at", name="check_event_end_after_start"),
        CheckConstraint("current_bookings >= 0", name="check_current_bookings_non_negative"),
        CheckConstraint(
            "current_bookings <= COALESCE(max_bookings, venue_capacity)",
            name="check_current_bookings_within_capacity",
        ),
        CheckConstraint("max_bookings IS NULL OR max_bookings > 0", name="check_max_bookings_positive"),
        # Public listing: published + public, upcoming first
        Index("ix_events_listing", "status", "is_public", "start_at"),
        Index("ix_events_start_at", "start_at"),
    )

    @property
    def effective_capacity(self) -> int:
        return availability.effective_capacity(self)

    @property
    def seats_remaining(self) -> int:
        return availability.seats_remaining(self)

    @property
    def duration_minutes(self) -> int:
        return availability.duration_minutes(self)

    def __repr__(self) -> str:
        return (
            f"<Event(id={self.id}, name={self.name}, "
            f"booked={self.current_bookings}/{self.effective_capacity})>"
        )
