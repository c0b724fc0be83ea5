"""
utils/time_utils.py

Purpose: Time and expiry helpers

- Timezone-aware UTC timestamps for stored records
- Calendar-day comparison for failed purchase tracking
- Code expiry checks
"""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """
    Current time as an aware UTC datetime.
    """
    return datetime.now(timezone.utc)


def utc_day(dt: Optional[datetime]) -> Optional[str]:
    """
    Returns the UTC calendar date (YYYY-MM-DD) of a timestamp.
    Naive datetimes are treated as UTC.
    """
    if not dt:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).date().isoformat()


def is_same_utc_day(first: Optional[datetime], second: Optional[datetime]) -> bool:
    """
    Checks whether two timestamps fall on the same UTC calendar day.
    """
    if not first or not second:
        return False
    return utc_day(first) == utc_day(second)


def is_expired(issued_at: datetime, validity_minutes: int, now: Optional[datetime] = None) -> bool:
    """
    Checks if something issued at `issued_at` has outlived its validity.
    """
    now = now or utcnow()
    return now > issued_at + timedelta(minutes=validity_minutes)


def format_timestamp(dt: Optional[datetime], format_str: str = "%B %d, %Y %H:%M") -> str:
    """
    Formats a datetime object to string.
    """
    if not dt:
        return "N/A"
    return dt.strftime(format_str)
