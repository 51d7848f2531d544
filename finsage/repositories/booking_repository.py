# finsage/repositories/booking_repository.py
"""
Booking Repository.

Status changes go through ``transition_status``: a conditional UPDATE whose
WHERE clause carries the expected current status. A row count of zero means
another writer got there first.
"""

from datetime import date, datetime, timezone
import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..core.enums import BookingStatus, SessionBookingStatus
from ..models.booking import Booking, CoachingSession, SessionBooking
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def get_for_user(self, booking_id: str, user_id: str) -> Optional[Booking]:
        return self.find_one_by(id=booking_id, user_id=user_id)

    def transition_status(
        self,
        booking_id: str,
        from_statuses: Sequence[str],
        to_status: str,
        **extra_values: object,
    ) -> int:
        values = {Booking.status: to_status, Booking.updated_at: datetime.now(timezone.utc)}
        for key, value in extra_values.items():
            values[getattr(Booking, key)] = value
        query = self._build_query().filter(
            Booking.id == booking_id,
            Booking.status.in_(list(from_statuses)),
        )
        return self._execute_update(query, values)

    def find_scheduled_with_session_time(self, on_or_before: date) -> List[Booking]:
        """Scheduled bookings with a concrete date/time no later than ``on_or_before``."""
        query = self._build_query().filter(
            Booking.status == BookingStatus.SCHEDULED.value,
            Booking.session_date.isnot(None),
            Booking.session_time.isnot(None),
            Booking.session_date <= on_or_before,
        )
        return self._execute_query(query)

    def complete_scheduled(self, booking_ids: Iterable[str]) -> int:
        ids = list(booking_ids)
        if not ids:
            return 0
        query = self._build_query().filter(
            Booking.id.in_(ids),
            Booking.status == BookingStatus.SCHEDULED.value,
        )
        return self._execute_update(
            query,
            {
                Booking.status: BookingStatus.COMPLETED.value,
                Booking.updated_at: datetime.now(timezone.utc),
            },
        )


class SessionBookingRepository(BaseRepository[SessionBooking]):
    def __init__(self, db: Session):
        super().__init__(db, SessionBooking)

    def get_session(self, session_id: str) -> Optional[CoachingSession]:
        return self.db.query(CoachingSession).filter(CoachingSession.id == session_id).first()

    def has_active_booking(self, user_id: str, session_id: str) -> bool:
        return self.exists(
            user_id=user_id,
            session_id=session_id,
            status=SessionBookingStatus.BOOKED.value,
        )

    def find_booked_with_sessions(
        self, on_or_before: date
    ) -> List[Tuple[SessionBooking, CoachingSession]]:
        rows = (
            self.db.query(SessionBooking, CoachingSession)
            .join(CoachingSession, SessionBooking.session_id == CoachingSession.id)
            .filter(
                SessionBooking.status == SessionBookingStatus.BOOKED.value,
                CoachingSession.session_date <= on_or_before,
            )
            .all()
        )
        return [(booking, session) for booking, session in rows]

    def complete_booked(self, booking_ids: Iterable[str]) -> int:
        ids = list(booking_ids)
        if not ids:
            return 0
        query = self._build_query().filter(
            SessionBooking.id.in_(ids),
            SessionBooking.status == SessionBookingStatus.BOOKED.value,
        )
        return self._execute_update(
            query,
            {
                SessionBooking.status: SessionBookingStatus.COMPLETED.value,
                SessionBooking.updated_at: datetime.now(timezone.utc),
            },
        )
