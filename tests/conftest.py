"""
Pytest fixtures for test database, client, and authentication.

Every test gets a fresh in-memory SQLite schema. Requests run in their own
session (commit on success, rollback on error) exactly like `get_db`, while
fixtures seed and inspect data through `db_session`.
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["REDIS_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"

from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import AsyncGenerator

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from venue_booking.main import app
from venue_booking.db.base import Base
from venue_booking.db.session import get_db
from venue_booking.core.security import create_access_token, hash_password
from venue_booking.domain.enums import EventCategory, EventStatus, UserRole
from venue_booking.models.user import User
from venue_booking.models.event import Event

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

PASSWORD = "testpassword123"


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield session, then drop tables for isolation."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests use the test database."""

    async def override_get_db():
        async with TestSessionLocal() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def make_user(db: AsyncSession, email: str, role: UserRole = UserRole.USER, **fields) -> User:
    user = User(
        email=email,
        first_name=fields.pop("first_name", "Test"),
        last_name=fields.pop("last_name", "User"),
        hashed_password=hash_password(PASSWORD),
        role=role,
        **fields,
    )
    db.add(user)
    await db.commit()
    return user


async def make_event(db: AsyncSession, organizer: User, **fields) -> Event:
    start_at = fields.pop("start_at", datetime.now(timezone.utc) + timedelta(days=7))
    values = {
        "name": "Chamber Music Evening",
        "description": "Works by Haydn and Brahms",
        "category": EventCategory.CONCERT,
        "venue_name": "Main Hall",
        "venue_capacity": 100,
        "start_at": start_at,
        "end_at": start_at + timedelta(hours=2),
        "base_price": Decimal("50.00"),
        "status": EventStatus.PUBLISHED,
    }
    values.update(fields)
    event = Event(**values, organizer_id=organizer.id)
    db.add(event)
    await db.commit()
    return event


def headers_for(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(data={'sub': user.id})}"}


def booking_body(event: Event, **fields) -> dict:
    body = {
        "event_id": event.id,
        "email": "guest@example.com",
        "requested_date": event.start_at.isoformat(),
    }
    body.update(fields)
    return body


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "test@example.com")


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "other@example.com")


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "admin@example.com", role=UserRole.ADMIN)


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict:
    """Authorization headers with Bearer token."""
    return headers_for(test_user)


@pytest_asyncio.fixture
async def other_headers(other_user: User) -> dict:
    return headers_for(other_user)


@pytest_asyncio.fixture
async def admin_headers(admin_user: User) -> dict:
    return headers_for(admin_user)


@pytest_asyncio.fixture
async def test_event(db_session: AsyncSession, admin_user: User) -> Event:
    """Published event a week out with 100 seats."""
    return await make_event(db_session, admin_user)


@pytest_asyncio.fixture
async def small_event(db_session: AsyncSession, admin_user: User) -> Event:
    """Published event with a single bookable seat."""
    return await make_event(db_session, admin_user, name="Masterclass", venue_capacity=30, max_bookings=1)


@pytest_asyncio.fixture
async def full_event(db_session: AsyncSession, admin_user: User) -> Event:
    """Published event whose counter already sits at capacity."""
    return await make_event(db_session, admin_user, name="Sold Out Show", venue_capacity=2, current_bookings=2)
