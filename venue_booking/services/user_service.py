"""
User profile and user administration.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from venue_booking.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from venue_booking.core.logging import get_logger
from venue_booking.core.security import Actor, hash_password, verify_password
from venue_booking.domain.enums import BookingStatus, UserRole
from venue_booking.models.booking import Booking
from venue_booking.models.user import User
from venue_booking.schemas.user import AccountDelete, AdminUserUpdate, PasswordChange, ProfileUpdate

logger = get_logger(__name__)

DELETE_CONFIRMATION = "DELETE"


async def get_user(db: AsyncSession, user_id: str) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


async def update_profile(db: AsyncSession, actor: Actor, profile_data: ProfileUpdate) -> User:
    user = await get_user(db, actor.id)
    changes = profile_data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        if value is None and field != "phone":
            raise ValidationError.for_field(field, f"{field} cannot be cleared")
        setattr(user, field, value)
    await db.flush()

    logger.info("profile_updated", user_id=user.id, fields=sorted(changes))
    return user


async def change_password(db: AsyncSession, actor: Actor, password_data: PasswordChange) -> User:
    user = await get_user(db, actor.id)
    if password_data.confirm_password != password_data.new_password:
        raise ValidationError.for_field("confirm_password", "Password confirmation does not match")
    if not verify_password(password_data.current_password, user.hashed_password):
        logger.warning("password_change_refused", user_id=user.id, reason="wrong_password")
        raise ValidationError.for_field("current_password", "Current password is incorrect")
    if password_data.new_password == password_data.current_password:
        raise ValidationError.for_field("new_password", "New password must differ from the current password")

    user.hashed_password = hash_password(password_data.new_password)
    await db.flush()

    logger.info("password_changed", user_id=user.id)
    return user


async def delete_account(
    db: AsyncSession,
    actor: Actor,
    delete_data: AccountDelete,
    now: Optional[datetime] = None,
) -> User:
    """
    Deactivate the acting user's account.

    The row is kept so past bookings still resolve; the email is rewritten
    to free the address for a new registration. Refused while the user has
    pending or confirmed bookings.
    """
    now = now or datetime.now(timezone.utc)
    if delete_data.confirmation != DELETE_CONFIRMATION:
        raise ValidationError.for_field("confirmation", "Type DELETE to confirm account deletion")

    user = await get_user(db, actor.id)
    if not verify_password(delete_data.password, user.hashed_password):
        logger.warning("account_delete_refused", user_id=user.id, reason="wrong_password")
        raise ValidationError.for_field("password", "Password is incorrect")

    active = (
        await db.execute(
            select(func.count(Booking.id)).where(
                Booking.user_id == user.id,
                Booking.status.in_((BookingStatus.PENDING, BookingStatus.CONFIRMED)),
            )
        )
    ).scalar()
    if active:
        logger.warning("account_delete_refused", user_id=user.id, reason="active_bookings", active_bookings=active)
        raise ConflictError("Cannot delete account with active bookings; cancel them first")

    user.is_active = False
    user.email = f"deleted_{int(now.timestamp())}_{user.email}"[:255]
    await db.flush()

    logger.info("account_deleted", user_id=user.id)
    return user


async def list_users(
    db: AsyncSession,
    actor: Actor,
    page: int = 1,
    limit: int = 20,
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
) -> tuple[list[User], int]:
    if not actor.is_admin:
        raise AuthorizationError("Admin access required")

    query = select(User)
    if role is not None:
        query = query.where(User.role == role)
    if is_active is not None:
        query = query.where(User.is_active.is_(is_active))
    if search:
        pattern = f"%{search}%"
        query = query.where(
            or_(User.first_name.ilike(pattern), User.last_name.ilike(pattern), User.email.ilike(pattern))
        )

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()
    result = await db.execute(
        query.order_by(User.created_at.desc(), User.id).offset((page - 1) * limit).limit(limit)
    )
    return list(result.scalars().all()), total


async def admin_update_user(db: AsyncSession, actor: Actor, user_id: str, user_data: AdminUserUpdate) -> User:
    if not actor.is_admin:
        raise AuthorizationError("Admin access required")
    user = await get_user(db, user_id)

    if user.id == actor.id and user_data.is_active is False:
        raise ValidationError.for_field("is_active", "Cannot deactivate your own account")

    changes = user_data.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(user, field, value)
    await db.flush()

    logger.info("user_updated_by_admin", user_id=user.id, admin_id=actor.id, fields=sorted(changes))
    return user
