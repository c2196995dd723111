"""Time Utilities for UTC management"""

from datetime import datetime, timezone


def get_utc_now() -> datetime:
    """
    Returns a naive UTC datetime.
    Matches the DB schema (TIMESTAMP WITHOUT TIME ZONE).
    Avoids 'datetime.utcnow()' deprecation warnings.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_utc_now_aware() -> datetime:
    """Timezone-aware UTC now, for converting into agency-local time"""
    return datetime.now(timezone.utc)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize an aware or naive-UTC datetime to naive UTC for storage"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def hours_between(earlier: datetime, later: datetime) -> float:
    """Hours elapsed between two datetimes (both aware or both naive UTC)"""
    return (to_naive_utc(later) - to_naive_utc(earlier)).total_seconds() / 3600
