"""
Domain time utilities (pure).

Every timestamp the checkout stores or compares (purchase_datetime, cart and
product audit fields, ticket listing bounds) is an aware UTC datetime.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from .errors import ValidationError


def require_utc_timestamp(name: str, value: datetime) -> None:
    """
    Reject naive datetimes and non-zero offsets.

    Raises:
        ValidationError: naming the offending field
    """

    if not isinstance(value, datetime):
        raise ValidationError(f"{name} must be a datetime")
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValidationError(f"{name} must be timezone-aware (UTC)")
    if value.utcoffset() != timedelta(0):
        raise ValidationError(f"{name} must be a UTC timestamp (offset 0)")


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Read naive values as UTC and convert aware ones; None passes through."""

    if value is None:
        return None
    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
