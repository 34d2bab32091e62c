"""
Price quoting and booking totals.
"""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from venue_booking.domain.enums import DiscountType

# Student/senior discounts need an identity check at the desk
AUTO_APPLIED_DISCOUNTS = {DiscountType.EARLY_BIRD.value, DiscountType.GROUP.value}

CENTS = Decimal("0.01")


def _parse_instant(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def applicable_discount(discounts: Optional[list[dict]], now: datetime, quantity: int = 1) -> Decimal:
    """Largest auto-applied discount percentage currently in effect."""
    best = Decimal("0")
    for discount in discounts or []:
        if discount.get("type") not in AUTO_APPLIED_DISCOUNTS:
            continue
        valid_until = _parse_instant(discount.get("valid_until"))
        if valid_until is not None and now > valid_until:
            continue
        min_quantity = discount.get("min_quantity")
        if min_quantity is not None and quantity < min_quantity:
            continue
        best = max(best, Decimal(str(discount.get("percentage") or 0)))
    return min(best, Decimal("100"))


def quoted_price(event, now: datetime, quantity: int = 1) -> Decimal:
    base = Decimal(str(event.base_price))
    percentage = applicable_discount(event.discounts, now, quantity)
    price = base * (Decimal("100") - percentage) / Decimal("100")
    return price.quantize(CENTS, rounding=ROUND_HALF_UP)


def total_amount(fee_amount, additional_services: Optional[Iterable[dict]]) -> Decimal:
    """Fee plus every additional service price; a missing price counts as zero."""
    total = Decimal(str(fee_amount or 0))
    for service in additional_services or []:
        total += Decimal(str(service.get("price") or 0))
    return total
