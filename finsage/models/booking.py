# finsage/models/booking.py
"""
Booking models.

``Booking`` is a paid reservation of a catalog item, created in
``payment_pending`` at checkout and promoted once the gateway payment is
verified. ``CoachingSession`` and ``SessionBooking`` are the credit-based
scheduled sessions redeemed from a user's credit balance.

Status machine for Booking::

    payment_pending -> booked -> scheduled -> completed
                         |           |
                         +-----------+--> cancelled

Completed and cancelled are terminal.
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Index, Integer, String, Time
from sqlalchemy.orm import relationship
import ulid

from ..core.enums import BookingStatus, SessionBookingStatus
from ..database import Base

CANCELLABLE_BOOKING_STATUSES = (BookingStatus.BOOKED.value, BookingStatus.SCHEDULED.value)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    item_id = Column(String(26), ForeignKey("catalog_items.id"), nullable=True)
    item_type = Column(String(32), nullable=True)
    service_type = Column(String(64), nullable=False, default="consultation")
    status = Column(String(20), nullable=False, default=BookingStatus.PAYMENT_PENDING.value)
    amount = Column(Integer, nullable=False, default=0)
    session_date = Column(Date, nullable=True)
    session_time = Column(Time, nullable=True)
    duration_minutes = Column(Integer, nullable=True)
    can_rebook = Column(Boolean, nullable=False, default=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    payments = relationship("Payment", back_populates="booking")

    __table_args__ = (
        Index("idx_bookings_user_status", "user_id", "status"),
        Index("idx_bookings_status_session", "status", "session_date"),
    )

    @property
    def is_cancelled(self) -> bool:
        return self.status == BookingStatus.CANCELLED.value

    @property
    def is_cancellable(self) -> bool:
        return self.status in CANCELLABLE_BOOKING_STATUSES

    def __repr__(self) -> str:
        return f"<Booking {self.id} status={self.status}>"


class CoachingSession(Base):
    """A scheduled session users can book with credits."""

    __tablename__ = "coaching_sessions"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    title = Column(String(255), nullable=False)
    session_type = Column(String(32), nullable=False)
    session_date = Column(Date, nullable=False)
    session_time = Column(Time, nullable=False)
    # Free text as entered by coaches: "60 min", "1 hour", "1.5 hours"
    duration = Column(String(64), nullable=True)
    credits_required = Column(Integer, nullable=False, default=1)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    bookings = relationship("SessionBooking", back_populates="session")


class SessionBooking(Base):
    __tablename__ = "session_bookings"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    session_id = Column(
        String(26), ForeignKey("coaching_sessions.id", ondelete="CASCADE"), nullable=False
    )
    status = Column(String(20), nullable=False, default=SessionBookingStatus.BOOKED.value)
    credits_used = Column(Integer, nullable=False, default=0)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    session = relationship("CoachingSession", back_populates="bookings")

    __table_args__ = (Index("idx_session_bookings_status", "status"),)
