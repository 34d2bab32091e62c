from venue_booking.schemas.common import ApiResponse, ErrorResponse, FieldError, Pagination
from venue_booking.schemas.user import UserCreate, UserResponse, UserLogin, Token
from venue_booking.schemas.event import EventCreate, EventUpdate, EventResponse, EventListResponse
from venue_booking.schemas.booking import (
    BookingCreate, BookingUpdate, BookingResponse, BookingListResponse, BookingStatusUpdate,
)
from venue_booking.schemas.report import BookingOverview, Dashboard, RevenueReport

__all__ = [
    "ApiResponse", "ErrorResponse", "FieldError", "Pagination",
    "UserCreate", "UserResponse", "UserLogin", "Token",
    "EventCreate", "EventUpdate", "EventResponse", "EventListResponse",
    "BookingCreate", "BookingUpdate", "BookingResponse", "BookingListResponse", "BookingStatusUpdate",
    "BookingOverview", "Dashboard", "RevenueReport",
]
