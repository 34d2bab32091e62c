"""
Aggregate reporting over committed bookings.

Status counts are grouped in the database; time series are folded in
Python (domain/reporting.py) so the period bucketing is identical on every
backend.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from venue_booking.core.exceptions import AuthorizationError, ValidationError
from venue_booking.core.logging import get_logger
from venue_booking.core.security import Actor
from venue_booking.domain import reporting
from venue_booking.domain.enums import BookingStatus, EventStatus, ReportPeriod, UserRole
from venue_booking.models.booking import Booking
from venue_booking.models.event import Event
from venue_booking.models.user import User
from venue_booking.schemas.common import as_utc

logger = get_logger(__name__)

DEFAULT_WINDOWS = {
    ReportPeriod.DAY: timedelta(days=30),
    ReportPeriod.MONTH: timedelta(days=365),
    ReportPeriod.YEAR: timedelta(days=5 * 365),
}


def _require_admin(actor: Actor) -> None:
    if not actor.is_admin:
        raise AuthorizationError("Admin access required")


async def _status_summary(db: AsyncSession, user_id: Optional[str] = None) -> dict:
    query = select(Booking.status, func.count(Booking.id), func.sum(Booking.fee_amount)).group_by(Booking.status)
    if user_id is not None:
        query = query.where(Booking.user_id == user_id)
    rows = (await db.execute(query)).all()
    return reporting.fold_status_rows(rows)


async def _revenue_rows(db: AsyncSession, start: datetime, end: datetime):
    result = await db.execute(
        select(Booking.status, Booking.fee_amount, Booking.created_at).where(
            Booking.created_at >= start,
            Booking.created_at <= end,
            Booking.status.in_(reporting.REVENUE_STATUSES),
        )
    )
    return result.all()


async def booking_overview(db: AsyncSession, actor: Actor) -> dict:
    """Status counts and spend for the acting user's own bookings."""
    return await _status_summary(db, user_id=actor.id)


async def revenue_report(
    db: AsyncSession,
    actor: Actor,
    period: ReportPeriod = ReportPeriod.MONTH,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> dict:
    _require_admin(actor)
    now = now or datetime.now(timezone.utc)
    end_date = as_utc(end_date) or now
    start_date = as_utc(start_date) or end_date - DEFAULT_WINDOWS[period]
    if start_date > end_date:
        raise ValidationError.for_field("start_date", "start_date must not be after end_date")

    series = reporting.revenue_series(await _revenue_rows(db, start_date, end_date), period)
    report = {
        "period": period,
        "start_date": start_date,
        "end_date": end_date,
        "total_revenue": sum((point["revenue"] for point in series), 0),
        "total_bookings": sum(point["bookings"] for point in series),
        "series": series,
    }
    logger.info("revenue_report_generated", period=period.value, points=len(series))
    return report


async def dashboard(db: AsyncSession, actor: Actor, now: Optional[datetime] = None) -> dict:
    """Admin overview: users, events, bookings, monthly revenue, recent activity."""
    _require_admin(actor)
    now = now or datetime.now(timezone.utc)

    user_row = (
        await db.execute(
            select(
                func.count(User.id),
                func.sum(case((User.is_active.is_(True), 1), else_=0)),
                func.sum(case((User.role == UserRole.ADMIN, 1), else_=0)),
            )
        )
    ).one()
    user_stats = {
        "total_users": user_row[0] or 0,
        "active_users": user_row[1] or 0,
        "admin_users": user_row[2] or 0,
    }

    event_stats = {"total": 0, **{status.value: 0 for status in EventStatus}}
    for status, count in (await db.execute(select(Event.status, func.count(Event.id)).group_by(Event.status))).all():
        event_stats["total"] += count
        event_stats[EventStatus(status).value] = count

    monthly = reporting.revenue_series(
        await _revenue_rows(db, now - DEFAULT_WINDOWS[ReportPeriod.MONTH], now), ReportPeriod.MONTH
    )

    recent = await db.execute(
        select(Booking).options(selectinload(Booking.event)).order_by(Booking.created_at.desc()).limit(10)
    )

    return {
        "user_stats": user_stats,
        "event_stats": event_stats,
        "booking_stats": await _status_summary(db),
        "monthly_revenue": monthly,
        "recent_bookings": list(recent.scalars().all()),
        "generated_at": now,
    }


async def user_dashboard(db: AsyncSession, actor: Actor, now: Optional[datetime] = None) -> dict:
    """
    The acting user's own view: booking counts and spend, the latest
    bookings, and pending or confirmed bookings still ahead.
    """
    now = now or datetime.now(timezone.utc)
    user = await db.get(User, actor.id)

    recent = await db.execute(
        select(Booking)
        .options(selectinload(Booking.event))
        .where(Booking.user_id == actor.id)
        .order_by(Booking.created_at.desc())
        .limit(5)
    )
    upcoming = await db.execute(
        select(Booking)
        .options(selectinload(Booking.event))
        .where(
            Booking.user_id == actor.id,
            Booking.status.in_((BookingStatus.PENDING, BookingStatus.CONFIRMED)),
            Booking.requested_date > now,
        )
        .order_by(Booking.requested_date.asc())
        .limit(5)
    )

    return {
        "user": user,
        "booking_stats": await _status_summary(db, user_id=actor.id),
        "recent_bookings": list(recent.scalars().all()),
        "upcoming_bookings": list(upcoming.scalars().all()),
        "generated_at": now,
    }
