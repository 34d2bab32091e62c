"""
Administrative endpoints. Every route requires the admin role.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from venue_booking.core.config import get_settings
from venue_booking.core.metrics import booking_latency
from venue_booking.core.security import Actor, require_admin
from venue_booking.db.session import get_db
from venue_booking.domain.enums import BookingStatus, EventCategory, EventStatus, ReportPeriod, UserRole
from venue_booking.schemas.booking import (
    AdminBookingCreate,
    BookingListResponse,
    BookingResponse,
    BookingStatusUpdate,
    PaymentUpdate,
)
from venue_booking.schemas.common import ApiResponse, Pagination
from venue_booking.schemas.event import EventListResponse, EventResponse
from venue_booking.schemas.report import Dashboard, RevenueReport
from venue_booking.schemas.user import AdminUserUpdate, UserListResponse, UserResponse
from venue_booking.services import booking_service, event_service, report_service, user_service
from venue_booking.services.notification_service import (
    BOOKING_CANCELLED,
    BOOKING_CONFIRMED,
    BOOKING_CREATED,
    booking_payload,
    notify,
)

settings = get_settings()
router = APIRouter(prefix="/admin", tags=["Admin"])

STATUS_NOTIFICATIONS = {
    BookingStatus.CONFIRMED: BOOKING_CONFIRMED,
    BookingStatus.CANCELLED: BOOKING_CANCELLED,
}


@router.get("/dashboard", response_model=ApiResponse[Dashboard])
async def dashboard(
    admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    now = datetime.now(timezone.utc)
    stats = await report_service.dashboard(db, admin, now)
    stats["recent_bookings"] = [
        BookingResponse.from_booking(booking, now, include_internal=True) for booking in stats["recent_bookings"]
    ]
    return ApiResponse(message="Dashboard data retrieved successfully", data=Dashboard(**stats))


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------


@router.get("/bookings", response_model=ApiResponse[BookingListResponse])
async def list_all_bookings(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    user_id: Optional[str] = None,
    event_id: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    search: Optional[str] = Query(None, max_length=100),
    sort_by: str = Query("created_at", pattern="^(created_at|requested_date|status)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    bookings, total = await booking_service.list_bookings(
        db,
        admin,
        page=page,
        limit=limit,
        status=status_filter,
        sort_by=sort_by,
        sort_order=sort_order,
        all_users=True,
        user_id=user_id,
        event_id=event_id,
        date_from=date_from,
        date_to=date_to,
        search=search,
    )
    now = datetime.now(timezone.utc)
    return ApiResponse(
        message="Bookings retrieved successfully",
        data=BookingListResponse(
            bookings=[BookingResponse.from_booking(booking, now, include_internal=True) for booking in bookings],
            pagination=Pagination.build(page, limit, total),
        ),
    )


@router.post("/bookings", response_model=ApiResponse[BookingResponse], status_code=status.HTTP_201_CREATED)
async def create_booking_for_user(
    booking_data: AdminBookingCreate,
    background_tasks: BackgroundTasks,
    admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Book on behalf of a user (phone, walk-in, ...), optionally pre-confirmed."""
    now = datetime.now(timezone.utc)
    with booking_latency.labels(operation="admin_create").time():
        booking = await booking_service.create_booking_as_admin(db, admin, booking_data, now)
    kind = BOOKING_CONFIRMED if booking.status == BookingStatus.CONFIRMED else BOOKING_CREATED
    background_tasks.add_task(notify, kind, booking_payload(booking))
    return ApiResponse(
        message="Booking created successfully",
        data=BookingResponse.from_booking(booking, now, include_internal=True),
    )


@router.put("/bookings/{booking_id}/status", response_model=ApiResponse[BookingResponse])
async def set_booking_status(
    booking_id: str,
    status_data: BookingStatusUpdate,
    background_tasks: BackgroundTasks,
    admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Override a booking's status; capacity still applies when confirming."""
    now = datetime.now(timezone.utc)
    with booking_latency.labels(operation="set_status").time():
        booking, previous = await booking_service.set_booking_status(db, admin, booking_id, status_data, now)
    kind = STATUS_NOTIFICATIONS.get(booking.status)
    if kind is not None and previous != booking.status:
        background_tasks.add_task(notify, kind, booking_payload(booking))
    return ApiResponse(
        message=f"Booking {booking.status.value} successfully",
        data=BookingResponse.from_booking(booking, now, include_internal=True),
    )


@router.put("/bookings/{booking_id}/payment", response_model=ApiResponse[BookingResponse])
async def record_payment(
    booking_id: str,
    payment_data: PaymentUpdate,
    admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    now = datetime.now(timezone.utc)
    booking = await booking_service.record_payment(db, admin, booking_id, payment_data, now)
    return ApiResponse(
        message="Payment updated successfully",
        data=BookingResponse.from_booking(booking, now, include_internal=True),
    )


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@router.get("/events", response_model=ApiResponse[EventListResponse])
async def list_all_events(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    status_filter: Optional[EventStatus] = Query(None, alias="status"),
    category: Optional[EventCategory] = None,
    search: Optional[str] = Query(None, max_length=100),
    sort_by: str = Query("created_at", pattern="^(start_at|created_at|name|base_price)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Every event regardless of status or visibility."""
    now = datetime.now(timezone.utc)
    events, total = await event_service.list_events(
        db,
        page=page,
        limit=limit,
        category=category,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        now=now,
        include_all=True,
        status=status_filter,
    )
    return ApiResponse(
        message="Events retrieved successfully",
        data=EventListResponse(
            events=[EventResponse.from_event(event, now) for event in events],
            pagination=Pagination.build(page, limit, total),
        ),
    )


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@router.get("/users", response_model=ApiResponse[UserListResponse])
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=settings.MAX_PAGE_SIZE),
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = Query(None, max_length=100),
    admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    users, total = await user_service.list_users(
        db, admin, page=page, limit=limit, role=role, is_active=is_active, search=search
    )
    return ApiResponse(
        message="Users retrieved successfully",
        data=UserListResponse(
            users=[UserResponse.model_validate(user) for user in users],
            pagination=Pagination.build(page, limit, total),
        ),
    )


@router.get("/users/{user_id}", response_model=ApiResponse[UserResponse])
async def get_user(
    user_id: str,
    admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.get_user(db, user_id)
    return ApiResponse(message="User retrieved successfully", data=UserResponse.model_validate(user))


@router.put("/users/{user_id}", response_model=ApiResponse[UserResponse])
async def update_user(
    user_id: str,
    user_data: AdminUserUpdate,
    admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Change a user's role or activation."""
    user = await user_service.admin_update_user(db, admin, user_id, user_data)
    return ApiResponse(message="User updated successfully", data=UserResponse.model_validate(user))


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


@router.get("/reports/revenue", response_model=ApiResponse[RevenueReport])
async def revenue_report(
    period: ReportPeriod = ReportPeriod.MONTH,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    report = await report_service.revenue_report(db, admin, period, start_date, end_date)
    return ApiResponse(message="Revenue report generated successfully", data=RevenueReport(**report))
