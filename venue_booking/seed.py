"""
Database seed script.

Creates an admin, two regular users and a few published events so a fresh
database is usable. Existing rows (matched by email / event name) are left
alone, so the script can be run repeatedly.

    python -m venue_booking.seed
"""

import asyncio
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from venue_booking.core.logging import get_logger, setup_logging
from venue_booking.core.security import hash_password
from venue_booking.db.session import SessionLocal, engine
from venue_booking.domain.enums import EventCategory, EventStatus, UserRole
from venue_booking.models import Event, User

logger = get_logger(__name__)

DEFAULT_PASSWORD = os.getenv("SEED_PASSWORD", "ChangeMe123!")


@dataclass
class UserSeed:
    email: str
    first_name: str
    last_name: str
    role: UserRole


SEED_USERS = [
    UserSeed(email="admin@venue.example", first_name="Admin", last_name="User", role=UserRole.ADMIN),
    UserSeed(email="john.doe@example.com", first_name="John", last_name="Doe", role=UserRole.USER),
    UserSeed(email="jane.smith@example.com", first_name="Jane", last_name="Smith", role=UserRole.USER),
]


def _seed_events(now: datetime) -> list[dict]:
    return [
        {
            "name": "Autumn Piano Recital",
            "description": "An evening of Chopin and Debussy.",
            "category": EventCategory.RECITAL,
            "venue_name": "Main Hall",
            "venue_capacity": 120,
            "start_at": now + timedelta(days=14, hours=19),
            "end_at": now + timedelta(days=14, hours=21),
            "base_price": Decimal("25.00"),
            "faculty": ["Maria Lopez"],
            "genres": ["classical"],
            "is_featured": True,
        },
        {
            "name": "Jazz Improvisation Workshop",
            "description": "Hands-on improvisation for intermediate players.",
            "category": EventCategory.WORKSHOP,
            "venue_name": "Studio B",
            "venue_capacity": 20,
            "max_bookings": 15,
            "start_at": now + timedelta(days=30, hours=10),
            "end_at": now + timedelta(days=30, hours=13),
            "base_price": Decimal("60.00"),
            "discounts": [{"type": "early_bird", "percentage": 15, "valid_until": (now + timedelta(days=7)).isoformat()}],
            "faculty": ["Sam Carter"],
            "genres": ["jazz"],
        },
        {
            "name": "Strings Masterclass",
            "description": "Public masterclass for violin and cello students.",
            "category": EventCategory.MASTERCLASS,
            "venue_name": "Recital Room",
            "venue_capacity": 40,
            "start_at": now + timedelta(days=45, hours=15),
            "end_at": now + timedelta(days=45, hours=18),
            "base_price": Decimal("0.00"),
            "faculty": ["Elena Petrova"],
            "genres": ["classical"],
        },
    ]


async def seed_users(db: AsyncSession) -> User:
    admin = None
    for seed in SEED_USERS:
        user = (await db.execute(select(User).where(User.email == seed.email))).scalar_one_or_none()
        if user is None:
            user = User(
                email=seed.email,
                first_name=seed.first_name,
                last_name=seed.last_name,
                role=seed.role,
                hashed_password=hash_password(DEFAULT_PASSWORD),
            )
            db.add(user)
            await db.flush()
            logger.info("seed_user_created", email=seed.email, role=seed.role.value)
        if seed.role == UserRole.ADMIN:
            admin = user
    return admin


async def seed_events(db: AsyncSession, organizer: User) -> None:
    now = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    for data in _seed_events(now):
        exists = (await db.execute(select(Event.id).where(Event.name == data["name"]))).scalar_one_or_none()
        if exists:
            continue
        db.add(Event(**data, organizer_id=organizer.id, status=EventStatus.PUBLISHED))
        logger.info("seed_event_created", name=data["name"])
    await db.flush()


async def main() -> None:
    setup_logging()
    async with SessionLocal() as db:
        admin = await seed_users(db)
        await seed_events(db, admin)
        await db.commit()
    await engine.dispose()
    logger.info("seed_completed")


if __name__ == "__main__":
    asyncio.run(main())
