"""
Tests for the auto-expiry sweeper.

Session dates/times are naive and interpreted in Asia/Kolkata (UTC+05:30).
NOW is 2026-03-10 12:00 UTC, i.e. 17:30 local.
"""

from datetime import date, datetime, time, timezone
from unittest.mock import patch

import pytest
from sqlalchemy.orm import Session

from finsage.core.enums import BookingStatus, SessionBookingStatus
from finsage.models.booking import Booking, SessionBooking
from finsage.services.session_sweeper_service import SessionSweeperService, parse_duration_minutes

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
TODAY = date(2026, 3, 10)


class TestParseDurationMinutes:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("60 min", 60),
            ("45 mins", 45),
            ("90 minutes", 90),
            ("1 hour", 60),
            ("2 hours", 120),
            ("1.5 hours", 90),
            ("1 hr 30 min", 90),
            ("1h 15m", 75),
            ("45", 45),
            ("about 50", 50),
        ],
    )
    def test_parses_common_formats(self, raw, expected):
        assert parse_duration_minutes(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "   ", "flexible", "0 min"])
    def test_falls_back_to_default(self, raw):
        assert parse_duration_minutes(raw) == 60
        assert parse_duration_minutes(raw, default=30) == 30


def _scheduled(db: Session, user_id: str, on: date, at: time, minutes=None, status=BookingStatus.SCHEDULED) -> Booking:
    booking = Booking(
        user_id=user_id,
        status=status.value,
        amount=1000,
        session_date=on,
        session_time=at,
        duration_minutes=minutes,
    )
    db.add(booking)
    db.commit()
    return booking


def _session_booking(db: Session, make_coaching_session, user_id: str, on: date, at: time, duration: str) -> SessionBooking:
    session = make_coaching_session(session_date=on, session_time=at, duration=duration)
    booking = SessionBooking(
        user_id=user_id,
        session_id=session.id,
        status=SessionBookingStatus.BOOKED.value,
        credits_used=1,
    )
    db.add(booking)
    db.commit()
    return booking


class TestSessionSweeperService:
    def test_completes_only_sessions_that_have_ended(self, db: Session, individual_user):
        uid = individual_user.id
        ended = _scheduled(db, uid, TODAY, time(16, 0), minutes=60)
        running = _scheduled(db, uid, TODAY, time(17, 0), minutes=60)
        tomorrow = _scheduled(db, uid, date(2026, 3, 11), time(9, 0), minutes=60)
        yesterday = _scheduled(db, uid, date(2026, 3, 9), time(23, 0), minutes=60)
        booked_only = _scheduled(db, uid, date(2026, 3, 9), time(9, 0), minutes=60, status=BookingStatus.BOOKED)

        result = SessionSweeperService(db).run(now=NOW)

        assert result["success"] is True
        assert result["individual_bookings_updated"] == 2
        for booking in (ended, running, tomorrow, yesterday, booked_only):
            db.refresh(booking)
        assert ended.status == BookingStatus.COMPLETED.value
        assert yesterday.status == BookingStatus.COMPLETED.value
        assert running.status == BookingStatus.SCHEDULED.value
        assert tomorrow.status == BookingStatus.SCHEDULED.value
        assert booked_only.status == BookingStatus.BOOKED.value

    def test_missing_duration_ends_at_start_time(self, db: Session, individual_user):
        booking = _scheduled(db, individual_user.id, TODAY, time(17, 29), minutes=None)

        result = SessionSweeperService(db).run(now=NOW)

        db.refresh(booking)
        assert result["individual_bookings_updated"] == 1
        assert booking.status == BookingStatus.COMPLETED.value

    def test_session_bookings_use_free_text_duration(self, db: Session, individual_user, make_coaching_session):
        uid = individual_user.id
        # 16:00 + 1.5h = 17:30 local: ends exactly now, not yet past
        on_the_edge = _session_booking(db, make_coaching_session, uid, TODAY, time(16, 0), "1.5 hours")
        ended = _session_booking(db, make_coaching_session, uid, TODAY, time(16, 30), "30 min")

        result = SessionSweeperService(db).run(now=NOW)

        db.refresh(on_the_edge)
        db.refresh(ended)
        assert result["session_bookings_updated"] == 1
        assert ended.status == SessionBookingStatus.COMPLETED.value
        assert on_the_edge.status == SessionBookingStatus.BOOKED.value

    def test_second_run_is_a_no_op(self, db: Session, individual_user):
        _scheduled(db, individual_user.id, TODAY, time(9, 0), minutes=60)
        service = SessionSweeperService(db)

        first = service.run(now=NOW)
        second = service.run(now=NOW)

        assert first["individual_bookings_updated"] == 1
        assert second["individual_bookings_updated"] == 0
        assert second["session_bookings_updated"] == 0

    def test_records_metrics_for_completed_sessions(self, db: Session, individual_user):
        _scheduled(db, individual_user.id, TODAY, time(9, 0), minutes=60)

        with patch(
            "finsage.services.session_sweeper_service.prometheus_metrics.inc_sessions_auto_completed"
        ) as inc:
            SessionSweeperService(db).run(now=NOW)

        inc.assert_called_once_with("booking", 1)

    def test_response_message(self, db: Session):
        result = SessionSweeperService(db).run(now=NOW)

        assert result["message"] == "Successfully processed 0 expired sessions"
        assert result["timestamp"] == NOW.isoformat()
