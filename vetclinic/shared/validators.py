"""Shared validation utilities"""

import secrets
from datetime import datetime, timezone
from typing import Optional

MONEY_TOLERANCE = 0.01


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how DateTime columns are stored"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def round_money(value: float) -> float:
    return round(float(value), 2)


def amounts_match(a: float, b: float, tolerance: float = MONEY_TOLERANCE) -> bool:
    """Compare two money amounts within a cent"""
    return abs(float(a) - float(b)) < tolerance + 1e-9


def generate_reference(prefix: str, now: Optional[datetime] = None) -> str:
    """
    Generate a human-readable, unique-enough document number.

    Format: PREFIX-YYMMDD-HHMMSS-XXXXXX where the suffix is random hex, so
    numbers sort roughly by creation time and collisions are negligible.
    """
    now = now or utcnow()
    return f"{prefix}-{now:%y%m%d}-{now:%H%M%S}-{secrets.token_hex(3).upper()}"


def to_cents(value: float) -> int:
    """Money as whole cents, so comparisons are exact"""
    return int(round(float(value or 0) * 100))


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an offset-aware timestamp to naive UTC; naive values are taken as UTC already"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
