"""
Pydantic schemas for event-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from venue_booking.core.config import get_settings
from venue_booking.domain import availability
from venue_booking.domain.enums import DiscountType, EventCategory, EventStatus
from venue_booking.schemas.common import Pagination, UTCDatetime


class VenueAddress(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None


class Discount(BaseModel):
    type: DiscountType
    percentage: float = Field(..., gt=0, le=100)
    valid_until: Optional[UTCDatetime] = None
    min_quantity: Optional[int] = Field(None, ge=1)


class EventBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    category: EventCategory
    venue_name: str = Field(..., min_length=1, max_length=255)
    venue_address: Optional[VenueAddress] = None
    venue_capacity: int = Field(..., gt=0, le=100000)
    venue_facilities: list[str] = []
    start_at: UTCDatetime
    end_at: UTCDatetime
    base_price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    currency: str = Field(get_settings().DEFAULT_CURRENCY, min_length=3, max_length=3)
    discounts: list[Discount] = []
    faculty: list[str] = []
    genres: list[str] = []
    tags: list[str] = []
    features: list[str] = []
    is_public: bool = True
    is_featured: bool = False
    max_bookings: Optional[int] = Field(None, gt=0)
    booking_deadline: Optional[UTCDatetime] = None
    cancellation_policy: Optional[str] = None
    refund_policy: Optional[str] = None


class EventCreate(EventBase):
    status: EventStatus = EventStatus.DRAFT

    @model_validator(mode="after")
    def check_schedule(self):
        if self.end_at <= self.start_at:
            raise ValueError("end_at must be after start_at")
        return self


class EventUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    category: Optional[EventCategory] = None
    venue_name: Optional[str] = Field(None, min_length=1, max_length=255)
    venue_address: Optional[VenueAddress] = None
    venue_capacity: Optional[int] = Field(None, gt=0, le=100000)
    venue_facilities: Optional[list[str]] = None
    start_at: Optional[UTCDatetime] = None
    end_at: Optional[UTCDatetime] = None
    base_price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    discounts: Optional[list[Discount]] = None
    faculty: Optional[list[str]] = None
    genres: Optional[list[str]] = None
    tags: Optional[list[str]] = None
    features: Optional[list[str]] = None
    status: Optional[EventStatus] = None
    is_public: Optional[bool] = None
    is_featured: Optional[bool] = None
    max_bookings: Optional[int] = Field(None, gt=0)
    booking_deadline: Optional[UTCDatetime] = None
    cancellation_policy: Optional[str] = None
    refund_policy: Optional[str] = None


class EventResponse(BaseModel):
    id: str
    name: str
    description: str
    category: EventCategory
    venue_name: str
    venue_address: Optional[VenueAddress]
    venue_capacity: int
    venue_facilities: list[str]
    start_at: datetime
    end_at: datetime
    base_price: float
    currency: str
    discounts: list[Discount]
    faculty: list[str]
    genres: list[str]
    tags: list[str]
    features: list[str]
    organizer_id: str
    status: EventStatus
    is_public: bool
    is_featured: bool
    max_bookings: Optional[int]
    current_bookings: int
    booking_deadline: Optional[datetime]
    cancellation_policy: Optional[str]
    refund_policy: Optional[str]
    effective_capacity: int
    seats_remaining: int
    duration_minutes: int
    is_available: bool = False
    can_book: bool = False
    created_at: datetime

    model_config = {"from_attributes": True}

    @classmethod
    def from_event(cls, event, now: datetime) -> "EventResponse":
        response = cls.model_validate(event)
        response.is_available = availability.is_available(event, now)
        response.can_book = availability.can_book(event, now)
        return response


class EventListResponse(BaseModel):
    events: list[EventResponse]
    pagination: Pagination


class EventSuggestion(BaseModel):
    id: str
    name: str
    category: EventCategory
    tags: list[str]
    faculty: list[str]

    model_config = {"from_attributes": True}
