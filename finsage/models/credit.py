# finsage/models/credit.py
"""
Credit request and balance models.

Approving a ``CreditRequest`` is the only path that increments a
``CreditBalance``; the amount added equals the requested amount.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
import ulid

from ..core.enums import CreditRequestStatus
from ..database import Base


class CreditRequest(Base):
    __tablename__ = "credit_requests"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    requested_amount = Column(Integer, nullable=False)
    service_type = Column(String(32), nullable=False)
    reason = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default=CreditRequestStatus.PENDING.value)
    admin_id = Column(String(64), nullable=True)
    admin_notes = Column(Text, nullable=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    decided_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (Index("idx_credit_requests_status", "status", "created_at"),)


class CreditBalance(Base):
    __tablename__ = "credit_balances"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    service_type = Column(String(32), nullable=False)
    amount = Column(Integer, nullable=False, default=0)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("user_id", "service_type", name="uq_credit_balances_user_service"),
    )
