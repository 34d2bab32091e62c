"""
Pydantic schemas for aggregate reporting.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from venue_booking.domain.enums import ReportPeriod
from venue_booking.schemas.booking import BookingResponse
from venue_booking.schemas.user import UserResponse


class BookingOverview(BaseModel):
    total: int = 0
    pending: int = 0
    confirmed: int = 0
    cancelled: int = 0
    completed: int = 0
    rejected: int = 0
    total_revenue: float = 0


class RevenuePoint(BaseModel):
    period: str
    revenue: float
    bookings: int


class RevenueReport(BaseModel):
    period: ReportPeriod
    start_date: datetime
    end_date: datetime
    total_revenue: float
    total_bookings: int
    series: list[RevenuePoint]


class EventStats(BaseModel):
    total: int = 0
    draft: int = 0
    published: int = 0
    cancelled: int = 0
    completed: int = 0


class UserStats(BaseModel):
    total_users: int = 0
    active_users: int = 0
    admin_users: int = 0


class Dashboard(BaseModel):
    user_stats: UserStats
    event_stats: EventStats
    booking_stats: BookingOverview
    monthly_revenue: list[RevenuePoint]
    recent_bookings: list[BookingResponse]
    generated_at: Optional[datetime] = None


class UserDashboard(BaseModel):
    user: UserResponse
    booking_stats: BookingOverview
    recent_bookings: list[BookingResponse]
    upcoming_bookings: list[BookingResponse]
    generated_at: Optional[datetime] = None
