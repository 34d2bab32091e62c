"""
Password hashing, JWT issuance and the authenticated-actor dependency.

Every lifecycle operation receives an `Actor` (id + role); routes obtain it
from the bearer token via `get_current_actor`.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from venue_booking.core.config import get_settings
from venue_booking.core.exceptions import AuthorizationError
from venue_booking.db.session import get_db
from venue_booking.domain.enums import UserRole
from venue_booking.models.user import User

settings = get_settings()
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Actor:
    id: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    payload = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    payload["exp"] = expire
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_access_token(token: str) -> str:
    """Return the user id (`sub`) from a valid token."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.PyJWTError:
        raise unauthorized("Invalid or expired token")
    user_id = payload.get("sub")
    if not user_id:
        raise unauthorized("Invalid token payload")
    return user_id


async def _load_actor(db: AsyncSession, user_id: str) -> Actor:
    user = await db.get(User, user_id)
    if user is None:
        raise unauthorized("User no longer exists")
    if not user.is_active:
        raise AuthorizationError("Account is deactivated")
    return Actor(id=user.id, role=UserRole(user.role))


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Actor:
    if credentials is None:
        raise unauthorized("Not authenticated")
    return await _load_actor(db, decode_access_token(credentials.credentials))


async def get_optional_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[Actor]:
    """Actor when a valid token is sent, None for anonymous requests."""
    if credentials is None:
        return None
    return await _load_actor(db, decode_access_token(credentials.credentials))


async def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_admin:
        raise AuthorizationError("Admin access required")
    return actor
