"""
Booking endpoints for the authenticated user.

Notifications are scheduled as background tasks so they run after the
response; a broker failure never affects the booking itself.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from venue_booking.core.config import get_settings
from venue_booking.core.metrics import booking_latency
from venue_booking.core.security import Actor, get_current_actor
from venue_booking.db.session import get_db
from venue_booking.domain.enums import BookingStatus
from venue_booking.schemas.booking import (
    BookingCancel,
    BookingCreate,
    BookingListResponse,
    BookingResponse,
    BookingUpdate,
)
from venue_booking.schemas.common import ApiResponse, Pagination
from venue_booking.schemas.report import BookingOverview
from venue_booking.services import booking_service, report_service
from venue_booking.services.notification_service import (
    BOOKING_CANCELLED,
    BOOKING_CREATED,
    booking_payload,
    notify,
)

settings = get_settings()
router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("", response_model=ApiResponse[BookingResponse], status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """
    Request a booking for a bookable event. The booking starts as pending;
    the seat is taken when it is confirmed.
    """
    now = datetime.now(timezone.utc)
    with booking_latency.labels(operation="create").time():
        booking = await booking_service.create_booking(db, actor, booking_data, now)
    background_tasks.add_task(notify, BOOKING_CREATED, booking_payload(booking))
    return ApiResponse(message="Booking created successfully", data=BookingResponse.from_booking(booking, now))


@router.get("", response_model=ApiResponse[BookingListResponse])
async def list_bookings(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    sort_by: str = Query("created_at", pattern="^(created_at|requested_date|status)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """The authenticated user's own bookings."""
    bookings, total = await booking_service.list_bookings(
        db, actor, page=page, limit=limit, status=status_filter, sort_by=sort_by, sort_order=sort_order
    )
    now = datetime.now(timezone.utc)
    return ApiResponse(
        message="Bookings retrieved successfully",
        data=BookingListResponse(
            bookings=[BookingResponse.from_booking(booking, now) for booking in bookings],
            pagination=Pagination.build(page, limit, total),
        ),
    )


@router.get("/stats/overview", response_model=ApiResponse[BookingOverview])
async def booking_overview(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    summary = await report_service.booking_overview(db, actor)
    return ApiResponse(message="Booking statistics retrieved successfully", data=BookingOverview(**summary))


@router.get("/{booking_id}", response_model=ApiResponse[BookingResponse])
async def get_booking(
    booking_id: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    booking = await booking_service.get_booking(db, actor, booking_id)
    return ApiResponse(
        message="Booking retrieved successfully",
        data=BookingResponse.from_booking(booking, datetime.now(timezone.utc), include_internal=actor.is_admin),
    )


@router.put("/{booking_id}", response_model=ApiResponse[BookingResponse])
async def update_booking(
    booking_id: str,
    booking_data: BookingUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Edit a pending or confirmed booking."""
    with booking_latency.labels(operation="update").time():
        booking = await booking_service.update_booking(db, actor, booking_id, booking_data)
    return ApiResponse(
        message="Booking updated successfully",
        data=BookingResponse.from_booking(booking, datetime.now(timezone.utc), include_internal=actor.is_admin),
    )


@router.delete("/{booking_id}", response_model=ApiResponse[BookingResponse])
async def cancel_booking(
    booking_id: str,
    background_tasks: BackgroundTasks,
    cancel_data: Optional[BookingCancel] = None,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """
    Cancel a pending or confirmed booking more than the cancellation window
    before the event. A confirmed booking gives its seat back.
    """
    now = datetime.now(timezone.utc)
    reason = cancel_data.reason if cancel_data else None
    with booking_latency.labels(operation="cancel").time():
        booking = await booking_service.cancel_booking(db, actor, booking_id, reason, now)
    background_tasks.add_task(notify, BOOKING_CANCELLED, booking_payload(booking))
    return ApiResponse(
        message="Booking cancelled successfully",
        data=BookingResponse.from_booking(booking, now, include_internal=actor.is_admin),
    )
