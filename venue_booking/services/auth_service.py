"""
Account registration and password login.

Emails are stored lowercased, so lookups are case-insensitive. Registration
always creates a plain user; roles are granted by an admin afterwards.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from venue_booking.core.config import get_settings
from venue_booking.core.exceptions import AuthorizationError, ConflictError
from venue_booking.core.logging import get_logger
from venue_booking.core.security import create_access_token, hash_password, unauthorized, verify_password
from venue_booking.domain.enums import UserRole
from venue_booking.models.user import User
from venue_booking.schemas.user import Token, UserCreate, UserLogin, UserResponse

logger = get_logger(__name__)
settings = get_settings()


async def find_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def register_user(db: AsyncSession, user_data: UserCreate) -> User:
    if await find_user_by_email(db, user_data.email):
        logger.warning("registration_refused", reason="email_exists")
        raise ConflictError(
            "Email already registered",
            errors=[{"field": "email", "message": "Email already registered"}],
        )

    user = User(
        **user_data.model_dump(exclude={"email", "password"}),
        email=user_data.email.lower(),
        hashed_password=hash_password(user_data.password),
        role=UserRole.USER,
        is_active=True,
    )
    db.add(user)
    await db.flush()

    logger.info("user_registered", user_id=user.id)
    return user


async def authenticate_user(db: AsyncSession, login_data: UserLogin) -> Token:
    """
    Exchange credentials for a bearer token.

    Unknown email and wrong password get the same 401 so the response does
    not reveal which accounts exist. A deactivated account with the right
    password gets 403.
    """
    user = await find_user_by_email(db, login_data.email)
    if user is None or not verify_password(login_data.password, user.hashed_password):
        logger.warning("login_failed", known_email=user is not None)
        raise unauthorized("Invalid email or password")

    if not user.is_active:
        logger.warning("login_refused", user_id=user.id, reason="deactivated")
        raise AuthorizationError("Account is deactivated")

    logger.info("user_logged_in", user_id=user.id, role=user.role.value)
    return Token(
        access_token=create_access_token({"sub": user.id, "role": user.role.value}),
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=UserResponse.model_validate(user),
    )
