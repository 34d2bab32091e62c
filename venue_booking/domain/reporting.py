"""
Folding bookings into status counts and revenue series.

Revenue counts the booking fee only (not additional services) and only for
bookings that are confirmed or completed.
"""

from decimal import Decimal
from typing import Iterable

from venue_booking.domain.enums import BookingStatus, ReportPeriod

REVENUE_STATUSES = frozenset({BookingStatus.CONFIRMED, BookingStatus.COMPLETED})


def empty_summary() -> dict:
    summary = {"total": 0}
    for status in BookingStatus:
        summary[status.value] = 0
    summary["total_revenue"] = Decimal("0")
    return summary


def summarize(bookings: Iterable) -> dict:
    summary = empty_summary()
    for booking in bookings:
        status = BookingStatus(booking.status)
        summary["total"] += 1
        summary[status.value] += 1
        if status in REVENUE_STATUSES:
            summary["total_revenue"] += Decimal(str(booking.fee_amount or 0))
    return summary


def fold_status_rows(rows: Iterable[tuple]) -> dict:
    """Same shape as `summarize`, from pre-grouped (status, count, fee_sum) rows."""
    summary = empty_summary()
    for status, count, fee_sum in rows:
        status = BookingStatus(status)
        summary["total"] += count
        summary[status.value] += count
        if status in REVENUE_STATUSES:
            summary["total_revenue"] += Decimal(str(fee_sum or 0))
    return summary


def period_key(instant, period: ReportPeriod) -> str:
    period = ReportPeriod(period)
    if period == ReportPeriod.DAY:
        return f"{instant.year:04d}-{instant.month:02d}-{instant.day:02d}"
    if period == ReportPeriod.MONTH:
        return f"{instant.year:04d}-{instant.month:02d}"
    return f"{instant.year:04d}"


def revenue_series(bookings: Iterable, period: ReportPeriod) -> list[dict]:
    """
    Revenue and booking count per calendar period of `created_at`, ascending.
    Bookings outside the revenue statuses are ignored.
    """
    buckets: dict[str, dict] = {}
    for booking in bookings:
        if BookingStatus(booking.status) not in REVENUE_STATUSES:
            continue
        key = period_key(booking.created_at, period)
        bucket = buckets.setdefault(key, {"period": key, "revenue": Decimal("0"), "bookings": 0})
        bucket["revenue"] += Decimal(str(booking.fee_amount or 0))
        bucket["bookings"] += 1
    return [buckets[key] for key in sorted(buckets)]
