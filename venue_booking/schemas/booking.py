"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from venue_booking.core.config import get_settings
from venue_booking.domain import lifecycle
from venue_booking.domain.enums import BookingSource, BookingStatus, PaymentStatus, RefundStatus
from venue_booking.schemas.common import Pagination, UTCDatetime


class Address(BaseModel):
    line1: Optional[str] = None
    line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None


class AdditionalService(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    price: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)


class EmergencyContact(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    relationship: Optional[str] = None


class ContactInfo(BaseModel):
    phone: Optional[str] = None
    alternate_email: Optional[EmailStr] = None
    emergency_contact: Optional[EmergencyContact] = None


class BookingCreate(BaseModel):
    event_id: str
    email: EmailStr
    requested_date: UTCDatetime
    # Defaults to the event's quoted price / snapshot when omitted
    fee_amount: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    fee_currency: Optional[str] = Field(None, min_length=3, max_length=3)
    event_name: Optional[str] = Field(None, min_length=1, max_length=255)
    event_location: Optional[str] = Field(None, min_length=1, max_length=255)
    event_time: Optional[UTCDatetime] = None
    description: Optional[str] = None
    address: Optional[Address] = None
    special_requirements: Optional[str] = None
    equipment_needs: list[str] = []
    additional_services: list[AdditionalService] = []
    contact_info: Optional[ContactInfo] = None


class AdminBookingCreate(BookingCreate):
    user_id: str
    status: BookingStatus = BookingStatus.CONFIRMED
    source: BookingSource = BookingSource.ADMIN
    admin_notes: Optional[str] = None
    internal_notes: Optional[str] = None


class BookingUpdate(BaseModel):
    event_name: Optional[str] = Field(None, min_length=1, max_length=255)
    event_location: Optional[str] = Field(None, min_length=1, max_length=255)
    faculty: Optional[list[str]] = None
    email: Optional[EmailStr] = None
    event_time: Optional[UTCDatetime] = None
    fee_amount: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    fee_currency: Optional[str] = Field(None, min_length=3, max_length=3)
    description: Optional[str] = None
    address: Optional[Address] = None
    requested_date: Optional[UTCDatetime] = None
    special_requirements: Optional[str] = None
    equipment_needs: Optional[list[str]] = None
    contact_info: Optional[ContactInfo] = None
    additional_services: Optional[list[AdditionalService]] = None


class BookingCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class BookingStatusUpdate(BaseModel):
    status: BookingStatus
    admin_notes: str = Field(..., min_length=1)
    internal_notes: Optional[str] = None
    reason: Optional[str] = Field(None, max_length=1000)


class PaymentUpdate(BaseModel):
    payment_status: PaymentStatus
    payment_method: Optional[str] = Field(None, max_length=50)
    transaction_id: Optional[str] = Field(None, max_length=255)
    paid_amount: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    refund_amount: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)


class PaymentResponse(BaseModel):
    status: PaymentStatus
    method: Optional[str]
    transaction_id: Optional[str]
    paid_amount: Optional[float]
    paid_at: Optional[datetime]
    refund_amount: Optional[float]
    refunded_at: Optional[datetime]


class CancellationResponse(BaseModel):
    reason: Optional[str]
    cancelled_by: Optional[str]
    cancelled_at: Optional[datetime]
    refund_status: Optional[RefundStatus]


class BookingResponse(BaseModel):
    id: str
    reference_number: str
    event_id: Optional[str]
    user_id: str
    event_name: str
    event_location: str
    faculty: list[str]
    event_time: datetime
    email: str
    requested_date: datetime
    fee_amount: float
    fee_currency: str
    total_amount: float
    description: Optional[str]
    address: Optional[Address]
    special_requirements: Optional[str]
    equipment_needs: list[str]
    additional_services: list[AdditionalService]
    contact_info: Optional[ContactInfo]
    status: BookingStatus
    payment: PaymentResponse
    cancellation: Optional[CancellationResponse]
    admin_notes: Optional[str]
    internal_notes: Optional[str]
    email_sent: bool
    reminder_sent: bool
    confirmation_sent: bool
    source: BookingSource
    is_cancellable: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_booking(cls, booking, now: datetime, include_internal: bool = False) -> "BookingResponse":
        event_start = booking.event.start_at if booking.event is not None else booking.event_time
        cancellation = None
        if booking.status == BookingStatus.CANCELLED:
            cancellation = CancellationResponse(
                reason=booking.cancellation_reason,
                cancelled_by=booking.cancelled_by,
                cancelled_at=booking.cancelled_at,
                refund_status=booking.refund_status,
            )
        return cls(
            id=booking.id,
            reference_number=booking.reference_number,
            event_id=booking.event_id,
            user_id=booking.user_id,
            event_name=booking.event_name,
            event_location=booking.event_location,
            faculty=booking.faculty or [],
            event_time=booking.event_time,
            email=booking.email,
            requested_date=booking.requested_date,
            fee_amount=booking.fee_amount,
            fee_currency=booking.fee_currency,
            total_amount=booking.total_amount,
            description=booking.description,
            address=booking.address,
            special_requirements=booking.special_requirements,
            equipment_needs=booking.equipment_needs or [],
            additional_services=booking.additional_services or [],
            contact_info=booking.contact_info,
            status=booking.status,
            payment=PaymentResponse(
                status=booking.payment_status,
                method=booking.payment_method,
                transaction_id=booking.transaction_id,
                paid_amount=booking.paid_amount,
                paid_at=booking.paid_at,
                refund_amount=booking.refund_amount,
                refunded_at=booking.refunded_at,
            ),
            cancellation=cancellation,
            admin_notes=booking.admin_notes if include_internal else None,
            internal_notes=booking.internal_notes if include_internal else None,
            email_sent=booking.email_sent,
            reminder_sent=booking.reminder_sent,
            confirmation_sent=booking.confirmation_sent,
            source=booking.source,
            is_cancellable=lifecycle.is_cancellable(
                booking.status, event_start, now, get_settings().CANCELLATION_WINDOW_HOURS
            ),
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )


class BookingListResponse(BaseModel):
    bookings: list[BookingResponse]
    pagination: Pagination
