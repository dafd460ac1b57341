"""
Helper utilities
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

CENT = Decimal("0.01")

def utcnow() -> datetime:
    """Current UTC time, timezone-aware"""
    return datetime.now(timezone.utc)

def generate_id(prefix: str) -> str:
    """
    Generate a prefixed unique identifier
    
    Args:
        prefix: Resource prefix, e.g. "saved_cart"
        
    Returns:
        Identifier such as "saved_cart_3f2a..."
    """
    return f"{prefix}_{uuid.uuid4().hex}"

def round_money(amount: Decimal) -> Decimal:
    """Round to whole cents, half up"""
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)

def apply_percentage_discount(amount: Decimal, percent: int) -> Decimal:
    """
    Apply a percentage discount
    
    Args:
        amount: Base price
        percent: Percent off, 0-100
        
    Returns:
        Discounted price rounded to cents
    """
    return round_money(Decimal(amount) * (Decimal(100) - Decimal(percent)) / Decimal(100))

def safe_mean(values: Iterable, default: float = 0.0) -> float:
    """Arithmetic mean, or default for an empty sequence"""
    values = list(values)
    if not values:
        return default
    return float(sum(values)) / len(values)

def safe_rate(part: int, whole: int) -> float:
    """part / whole, 0 when whole is 0"""
    return part / whole if whole > 0 else 0.0

def as_utc(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC"""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment

def within_range(
    moment: datetime,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None
) -> bool:
    """Inclusive datetime range check with open ends; naive bounds are UTC"""
    moment = as_utc(moment)
    if start and moment < as_utc(start):
        return False
    if end and moment > as_utc(end):
        return False
    return True
