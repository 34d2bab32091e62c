"""
Profile endpoints for the authenticated user.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from venue_booking.core.security import Actor, get_current_actor
from venue_booking.db.session import get_db
from venue_booking.schemas.booking import BookingResponse
from venue_booking.schemas.common import ApiResponse
from venue_booking.schemas.report import UserDashboard
from venue_booking.schemas.user import AccountDelete, PasswordChange, ProfileUpdate, UserResponse
from venue_booking.services import report_service, user_service

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=ApiResponse[UserResponse])
async def read_profile(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.get_user(db, actor.id)
    return ApiResponse(message="Profile retrieved successfully", data=UserResponse.model_validate(user))


@router.put("/me", response_model=ApiResponse[UserResponse])
async def update_profile(
    profile_data: ProfileUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.update_profile(db, actor, profile_data)
    return ApiResponse(message="Profile updated successfully", data=UserResponse.model_validate(user))


@router.put("/change-password", response_model=ApiResponse[None])
async def change_password(
    password_data: PasswordChange,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    await user_service.change_password(db, actor, password_data)
    return ApiResponse(message="Password changed successfully")


@router.delete("/account", response_model=ApiResponse[None])
async def delete_account(
    delete_data: AccountDelete,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Deactivate the account. Requires the password and the word DELETE."""
    await user_service.delete_account(db, actor, delete_data)
    return ApiResponse(message="Account deleted successfully")


@router.get("/dashboard", response_model=ApiResponse[UserDashboard])
async def dashboard(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    now = datetime.now(timezone.utc)
    stats = await report_service.user_dashboard(db, actor, now)
    return ApiResponse(
        message="Dashboard data retrieved successfully",
        data=UserDashboard(
            user=UserResponse.model_validate(stats["user"]),
            booking_stats=stats["booking_stats"],
            recent_bookings=[BookingResponse.from_booking(booking, now) for booking in stats["recent_bookings"]],
            upcoming_bookings=[BookingResponse.from_booking(booking, now) for booking in stats["upcoming_bookings"]],
            generated_at=now,
        ),
    )
