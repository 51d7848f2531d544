# finsage/repositories/payment_repository.py
"""Payment and purchase data access."""

from datetime import datetime, timezone
import logging
from typing import Optional, Sequence, Tuple

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.enums import PaymentStatus
from ..models.payment import Payment, Purchase
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class PaymentRepository(BaseRepository[Payment]):
    def __init__(self, db: Session):
        super().__init__(db, Payment)

    def find_by_order_id(self, order_id: str) -> Optional[Payment]:
        return self.find_one_by(transaction_id=order_id)

    def find_latest_for_booking(
        self, booking_id: str, statuses: Sequence[str]
    ) -> Optional[Payment]:
        return (
            self._build_query()
            .filter(Payment.booking_id == booking_id, Payment.status.in_(list(statuses)))
            .order_by(Payment.created_at.desc())
            .first()
        )

    def find_captured_for_booking(self, booking_id: str) -> Optional[Payment]:
        """
        Latest payment for the booking whose money the gateway holds.

        That is a completed payment, or a pending one that checkout verification
        already attached a gateway payment id to.
        """
        return (
            self._build_query()
            .filter(
                Payment.booking_id == booking_id,
                or_(
                    Payment.status == PaymentStatus.COMPLETED.value,
                    and_(
                        Payment.status == PaymentStatus.PENDING.value,
                        Payment.gateway_payment_id.isnot(None),
                    ),
                ),
            )
            .order_by(Payment.created_at.desc())
            .first()
        )

    def record_gateway_payment(
        self, payment_id: str, gateway_payment_id: str, mark_completed: bool = False
    ) -> int:
        values: dict = {
            Payment.gateway_payment_id: gateway_payment_id,
            Payment.updated_at: datetime.now(timezone.utc),
        }
        if mark_completed:
            values[Payment.status] = PaymentStatus.COMPLETED.value
        query = self._build_query().filter(
            Payment.id == payment_id,
            Payment.status.in_([PaymentStatus.PENDING.value, PaymentStatus.COMPLETED.value]),
        )
        return self._execute_update(query, values)

    def mark_refunded(self, payment_id: str, refund_id: str) -> int:
        """
        Move a captured payment to refunded.

        The order id is annotated with the refund id so the gateway trail can
        be followed from the ledger.
        """
        payment = self.get_by_id(payment_id)
        if payment is None:
            return 0
        query = self._build_query().filter(
            Payment.id == payment_id,
            Payment.status != PaymentStatus.REFUNDED.value,
        )
        return self._execute_update(
            query,
            {
                Payment.status: PaymentStatus.REFUNDED.value,
                Payment.transaction_id: f"{payment.transaction_id}_refund_{refund_id}",
                Payment.updated_at: datetime.now(timezone.utc),
            },
        )

    def mark_failed(self, payment_id: str) -> int:
        query = self._build_query().filter(
            Payment.id == payment_id,
            Payment.status == PaymentStatus.PENDING.value,
        )
        return self._execute_update(
            query,
            {Payment.status: PaymentStatus.FAILED.value, Payment.updated_at: datetime.now(timezone.utc)},
        )


class PurchaseRepository(BaseRepository[Purchase]):
    def __init__(self, db: Session):
        super().__init__(db, Purchase)

    def find_by_booking(self, booking_id: str) -> Optional[Purchase]:
        return self.find_one_by(booking_id=booking_id)

    def find_latest_for_item(self, user_id: str, item_id: str) -> Optional[Purchase]:
        return (
            self._build_query()
            .filter(Purchase.user_id == user_id, Purchase.item_id == item_id)
            .order_by(Purchase.purchase_date.desc())
            .first()
        )

    def create_once(self, **values: object) -> Tuple[Purchase, bool]:
        """
        Insert a purchase keyed by booking, or return the one already there.

        Returns:
            Tuple of (purchase, created)
        """
        booking_id = str(values["booking_id"])
        existing = self.find_by_booking(booking_id)
        if existing:
            return existing, False
        try:
            return self.create(**values), True
        except IntegrityError:
            winner = self.find_by_booking(booking_id)
            if winner is None:
                raise
            self.logger.info("Purchase for booking %s inserted concurrently", booking_id)
            return winner, False
