# finsage/models/payment.py
"""
Payment ledger models.

``Payment`` tracks the gateway order for a booking. ``Purchase`` is the
entitlement granted by a verified payment; ``booking_id`` is unique so a
repeated verification can never grant a second entitlement.
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship
import ulid

from ..core.constants import PAYMENT_METHOD_RAZORPAY
from ..core.enums import PaymentStatus, PurchaseStatus
from ..database import Base


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    booking_id = Column(String(26), ForeignKey("bookings.id"), nullable=True)
    amount = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    payment_method = Column(String(32), nullable=False, default=PAYMENT_METHOD_RAZORPAY)
    # Gateway order id; suffixed with "_refund_<refund id>" once refunded
    transaction_id = Column(String(128), nullable=False, index=True)
    gateway_payment_id = Column(String(64), nullable=True)
    service_type = Column(String(64), nullable=False, default="consultation")
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    booking = relationship("Booking", back_populates="payments")

    __table_args__ = (Index("idx_payments_booking_status", "booking_id", "status"),)

    @property
    def refundable_reference(self) -> str:
        """Gateway id to refund against: the payment id when known, else the order id."""
        return self.gateway_payment_id or self.transaction_id

    def __repr__(self) -> str:
        return f"<Payment {self.id} status={self.status} amount={self.amount}>"


class Purchase(Base):
    __tablename__ = "purchases"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    booking_id = Column(String(26), ForeignKey("bookings.id"), nullable=False, unique=True)
    item_id = Column(String(26), nullable=False)
    item_type = Column(String(32), nullable=False)
    amount_paid = Column(Integer, nullable=False)
    payment_method = Column(String(32), nullable=False, default=PAYMENT_METHOD_RAZORPAY)
    status = Column(String(20), nullable=False, default=PurchaseStatus.PURCHASED.value)
    can_rebook = Column(Boolean, nullable=False, default=True)
    purchase_date = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (Index("idx_purchases_user_item", "user_id", "item_id"),)
