# finsage/services/session_sweeper_service.py
"""
Auto-expiry sweeper.

Moves sessions whose scheduled time has passed to ``completed``. Holds no
state between runs; every update re-checks the expected current status, so
overlapping or repeated runs are harmless.
"""

from datetime import datetime
import logging
import re
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..core.constants import DEFAULT_SESSION_DURATION_MINUTES
from ..core.timezone_utils import ensure_utc, get_business_timezone, session_end_utc, utc_now
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

_DURATION_PART = re.compile(
    r"(?P<value>\d+(?:\.\d+)?)\s*(?P<unit>hours?|hrs?|h|minutes?|mins?|m)\b",
    re.IGNORECASE,
)
_FIRST_NUMBER = re.compile(r"\d+(?:\.\d+)?")


def parse_duration_minutes(raw: Optional[str], default: int = DEFAULT_SESSION_DURATION_MINUTES) -> int:
    """
    Minutes in a free-text duration.

    Understands "60 min", "1 hour", "1.5 hours", "1 hr 30 min" and bare
    numbers (minutes). Anything else falls back to ``default``.
    """
    if not raw or not raw.strip():
        return default

    total = 0.0
    matched = False
    for part in _DURATION_PART.finditer(raw):
        matched = True
        value = float(part.group("value"))
        total += value * 60 if part.group("unit").lower().startswith("h") else value
    if matched:
        return int(round(total)) if total > 0 else default

    number = _FIRST_NUMBER.search(raw)
    if number:
        minutes = int(float(number.group()))
        return minutes if minutes > 0 else default
    return default


class SessionSweeperService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.session_booking_repository = RepositoryFactory.create_session_booking_repository(db)

    @BaseService.measure_operation("auto_end_sessions")
    def run(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = ensure_utc(now or utc_now())
        tz = get_business_timezone()
        local_today = now.astimezone(tz).date()

        expired_bookings = [
            booking.id
            for booking in self.booking_repository.find_scheduled_with_session_time(local_today)
            if session_end_utc(booking.session_date, booking.session_time, booking.duration_minutes or 0, tz)
            < now
        ]

        expired_session_bookings = [
            booking.id
            for booking, session in self.session_booking_repository.find_booked_with_sessions(local_today)
            if session_end_utc(
                session.session_date, session.session_time, parse_duration_minutes(session.duration), tz
            )
            < now
        ]

        with self.transaction():
            bookings_updated = self.booking_repository.complete_scheduled(expired_bookings)
            session_bookings_updated = self.session_booking_repository.complete_booked(
                expired_session_bookings
            )

        if bookings_updated:
            prometheus_metrics.inc_sessions_auto_completed("booking", bookings_updated)
        if session_bookings_updated:
            prometheus_metrics.inc_sessions_auto_completed("session_booking", session_bookings_updated)

        self.logger.info(
            f"Auto-end sweep completed {bookings_updated} bookings and "
            f"{session_bookings_updated} session bookings"
        )
        return {
            "success": True,
            "message": f"Successfully processed {bookings_updated + session_bookings_updated} expired sessions",
            "individual_bookings_updated": bookings_updated,
            "session_bookings_updated": session_bookings_updated,
            "timestamp": now.isoformat(),
        }
