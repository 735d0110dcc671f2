"""
Clock and day-boundary helpers.

All task due dates are stored as UTC. "Today" is evaluated in the timezone
of the reference timestamp, so callers pass a ``now`` localized to the
business timezone.
"""
from datetime import datetime, time, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from config.settings import settings

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def business_now() -> datetime:
    """Current time in the configured business timezone."""
    return datetime.now(ZoneInfo(settings.business_timezone))


def ensure_aware(value: Optional[datetime], tz=timezone.utc) -> Optional[datetime]:
    """
    Attach a timezone to naive datetimes.

    SQLite drops tzinfo on round-trip, so naive values read back from the
    store are treated as UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value


def start_of_day(now: datetime) -> datetime:
    return datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)


def end_of_day(now: datetime) -> datetime:
    return datetime.combine(now.date(), time.max, tzinfo=now.tzinfo)
