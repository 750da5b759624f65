"""Datetime helpers.

Audit timestamps (registration, attendance) are timezone-aware UTC.
Event schedules are wall-clock dates and "HH:MM" times, so comparisons
against them use a naive local ``datetime``.
"""

from datetime import date, datetime, time, timezone
from typing import Optional


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def local_now() -> datetime:
    return datetime.now()


def parse_clock(value: Optional[str]) -> time:
    """Parse an "HH:MM" string; missing values mean midnight."""
    if not value:
        return time(0, 0)
    return time.fromisoformat(value)


def combine(day: date, clock: Optional[str]) -> datetime:
    return datetime.combine(day, parse_clock(clock))


def isoformat_or_none(value) -> Optional[str]:
    return value.isoformat() if value else None
