"""
Booking model representing one user's reservation against an event.

Key design decisions:
- Event name/location/faculty/time are snapshotted at creation, not joined
- Payment and cancellation sub-records are flattened into typed columns so
  they can be filtered and constrained
- Cancellation columns are populated exactly when status is cancelled
- Reference number and totals are derived, never stored
"""

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import relationship

from venue_booking.core.config import get_settings
from venue_booking.db.base import Base, JSONDocument, StringEnum, TimestampMixin, UTCDateTime, new_id
from venue_booking.domain import lifecycle, pricing
from venue_booking.domain.enums import BookingSource, BookingStatus, PaymentStatus, RefundStatus


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(String(32), primary_key=True, default=new_id)
    # Nulled when an event without active bookings is deleted; the snapshot remains
    event_id = Column(String(32), ForeignKey("events.id", ondelete="SET NULL"), nullable=True, index=True)
    user_id = Column(String(32), ForeignKey("users.id"), nullable=False, index=True)

    # Snapshot of the event at booking time
    event_name = Column(String(255), nullable=False)
    event_location = Column(String(255), nullable=False)
    faculty = Column(JSONDocument, nullable=False, default=list)
    event_time = Column(UTCDateTime(), nullable=False)

    email = Column(String(255), nullable=False, index=True)
    requested_date = Column(UTCDateTime(), nullable=False, index=True)
    fee_amount = Column(Numeric(10, 2), nullable=False)
    fee_currency = Column(String(3), nullable=False, default="USD")
    description = Column(Text, nullable=True)
    address = Column(JSONDocument, nullable=True)
    special_requirements = Column(Text, nullable=True)
    equipment_needs = Column(JSONDocument, nullable=False, default=list)
    additional_services = Column(JSONDocument, nullable=False, default=list)
    contact_info = Column(JSONDocument, nullable=True)

    status = Column(StringEnum(BookingStatus), nullable=False, default=BookingStatus.PENDING, index=True)

    # Payment
    payment_status = Column(StringEnum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING, index=True)
    payment_method = Column(String(50), nullable=True)
    transaction_id = Column(String(255), nullable=True)
    paid_amount = Column(Numeric(10, 2), nullable=True)
    paid_at = Column(UTCDateTime(), nullable=True)
    refund_amount = Column(Numeric(10, 2), nullable=True)
    refunded_at = Column(UTCDateTime(), nullable=True)

    # Cancellation
    cancellation_reason = Column(Text, nullable=True)
    cancelled_by = Column(String(32), ForeignKey("users.id"), nullable=True)
    cancelled_at = Column(UTCDateTime(), nullable=True)
    refund_status = Column(StringEnum(RefundStatus), nullable=True)

    admin_notes = Column(Text, nullable=True)
    internal_notes = Column(Text, nullable=True)

    # Notifications
    email_sent = Column(Boolean, nullable=False, default=False)
    reminder_sent = Column(Boolean, nullable=False, default=False)
    confirmation_sent = Column(Boolean, nullable=False, default=False)

    source = Column(StringEnum(BookingSource), nullable=False, default=BookingSource.WEBSITE)

    user = relationship("User", back_populates="bookings", foreign_keys=[user_id], lazy="raise")
    event = relationship("Event", back_populates="bookings", lazy="raise")

    __table_args__ = (
        CheckConstraint("fee_amount >= 0", name="check_booking_fee_non_negative"),
        CheckConstraint(
            "(status = 'cancelled') = (cancelled_at IS NOT NULL)",
            name="check_cancellation_iff_cancelled",
        ),
        Index("ix_bookings_user_created", "user_id", "created_at"),
        Index("ix_bookings_event_status", "event_id", "status"),
    )

    @property
    def total_amount(self):
        return pricing.total_amount(self.fee_amount, self.additional_services)

    @property
    def reference_number(self) -> str:
        return lifecycle.reference_number(self.created_at, self.id, get_settings().REFERENCE_PREFIX)

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, user={self.user_id}, event={self.event_id}, status={self.status})>"
