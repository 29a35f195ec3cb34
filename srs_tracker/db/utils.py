"""
Database Utility Functions.

SQLite hands timestamps back without tzinfo even for DateTime(timezone=True)
columns; everything this package writes is UTC, so naive values are UTC.
"""

from __future__ import annotations

from datetime import date, datetime, timezone


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive timestamps and normalise aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_date(value: datetime) -> date:
    """Calendar day (UTC) a timestamp falls on."""
    return as_utc(value).date()
