"""
Timezone utilities for the FinSage platform.

Session dates and times are entered without a zone; they are interpreted
in the business timezone. Everything stored by the application itself is
UTC.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

import pytz

from .config import settings


def get_business_timezone() -> pytz.BaseTzInfo:
    return pytz.timezone(settings.business_timezone)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.

    Naive values come back from SQLite for ``DateTime(timezone=True)`` columns;
    the application only ever writes UTC, so naive is treated as UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def session_start_utc(
    session_date: date,
    session_time: time,
    tz: Optional[pytz.BaseTzInfo] = None,
) -> datetime:
    """Combine a naive session date/time in the business timezone into aware UTC."""
    zone = tz or get_business_timezone()
    local = zone.localize(datetime.combine(session_date, session_time))
    return local.astimezone(timezone.utc)


def session_end_utc(
    session_date: date,
    session_time: time,
    duration_minutes: int,
    tz: Optional[pytz.BaseTzInfo] = None,
) -> datetime:
    return session_start_utc(session_date, session_time, tz) + timedelta(minutes=duration_minutes)


def hours_between(earlier: datetime, later: datetime) -> float:
    return (ensure_utc(later) - ensure_utc(earlier)).total_seconds() / 3600
