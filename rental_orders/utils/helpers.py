"""
Helper utilities
"""

import random
import string
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from rental_orders.core.config import settings

def round_currency(amount: Decimal, unit: Optional[Decimal] = None) -> Decimal:
    """
    Round to the smallest currency unit, half-up

    Args:
        amount: Amount to round
        unit: Smallest unit, defaults to CURRENCY_MINOR_UNIT

    Returns:
        Rounded amount
    """
    unit = unit if unit is not None else settings.CURRENCY_MINOR_UNIT
    return Decimal(amount).quantize(unit, rounding=ROUND_HALF_UP)

def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC"""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def as_day(value) -> date:
    """Day granularity: drop the time-of-day component"""
    if isinstance(value, datetime):
        return value.date()
    return value

def week_end(today: date) -> date:
    """Last day (Sunday) of the week containing today"""
    return today + timedelta(days=6 - today.weekday())

def generate_order_number() -> str:
    """Generate unique order number"""
    timestamp = utcnow().strftime('%Y%m%d%H%M%S')
    random_suffix = ''.join(random.choices(string.ascii_uppercase + string.digits, k=4))
    return f"ORD{timestamp}{random_suffix}"
