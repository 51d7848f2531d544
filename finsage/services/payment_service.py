# finsage/services/payment_service.py
"""
Payment orchestration: checkout orders, verification and cancellation refunds.

Gateway calls are made exactly once with a bounded timeout. Every state
change that could race (booking promotion, cancellation) is a conditional
update, so a retried or concurrent request is reported as already processed
instead of being applied twice.
"""

from datetime import date, datetime, time
import logging
import time as time_module
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import CURRENCY_SUBUNITS
from ..core.enums import BookingStatus, PaymentStatus, PurchaseStatus
from ..core.exceptions import (
    AlreadyProcessedException,
    BusinessRuleException,
    ExternalServiceException,
    NotFoundException,
    RepositoryException,
    ServiceException,
    SignatureMismatchException,
    ValidationException,
)
from ..core.timezone_utils import session_start_utc, utc_now
from ..integrations.razorpay_client import RazorpayClient, RazorpayError, get_payment_gateway
from ..models.booking import CANCELLABLE_BOOKING_STATUSES, Booking
from ..models.payment import Payment
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..principal import CallerContext
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .notification_service import NotificationService
from .refund_policy_engine import RefundPolicyEngine, RefundPolicyResult

logger = logging.getLogger(__name__)


class PaymentService(BaseService):
    def __init__(
        self,
        db: Session,
        gateway: Optional[RazorpayClient] = None,
        notification_service: Optional[NotificationService] = None,
        policy_engine: Optional[RefundPolicyEngine] = None,
    ):
        super().__init__(db)
        self._gateway = gateway
        self.notification_service = notification_service or NotificationService(db)
        self.policy_engine = policy_engine or RefundPolicyEngine()
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.payment_repository = RepositoryFactory.create_payment_repository(db)
        self.purchase_repository = RepositoryFactory.create_purchase_repository(db)
        self.catalog_repository = RepositoryFactory.create_catalog_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)

    @property
    def gateway(self) -> RazorpayClient:
        if self._gateway is None:
            self._gateway = get_payment_gateway()
        return self._gateway

    @BaseService.measure_operation("create_order")
    def create_order(
        self,
        caller: CallerContext,
        item_id: str,
        expected_amount: Optional[int] = None,
        booking_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Open a gateway order for a catalog item and record the pending checkout.

        The price always comes from the catalog; ``expected_amount`` is what
        the client displayed and must match it.
        """
        item = self.catalog_repository.get_active(item_id)
        if item is None:
            raise NotFoundException("Item not found or no longer available", code="ITEM_NOT_FOUND")
        if expected_amount is not None and expected_amount != item.price:
            raise ValidationException(
                "Price has changed, please refresh and try again",
                code="PRICE_MISMATCH",
                details={"expected": item.price, "received": expected_amount},
            )

        previous = self.purchase_repository.find_latest_for_item(caller.user_id, item.id)
        if previous and previous.status == PurchaseStatus.PURCHASED.value and not previous.can_rebook:
            raise BusinessRuleException("You have already purchased this item", code="ALREADY_PURCHASED")

        draft: Optional[Booking] = None
        if booking_id:
            draft = self.booking_repository.get_for_user(booking_id, caller.user_id)
            if draft is None:
                raise NotFoundException("Booking not found or access denied")
            if draft.status != BookingStatus.PAYMENT_PENDING.value:
                raise BusinessRuleException("Booking is not awaiting payment", code="BOOKING_NOT_PENDING")

        receipt = f"receipt_{int(time_module.time() * 1000)}"
        amount_subunits = item.price * CURRENCY_SUBUNITS
        try:
            order = self.gateway.create_order(
                amount_subunits=amount_subunits,
                currency=settings.currency,
                receipt=receipt,
                notes={
                    "user_id": caller.user_id,
                    "item_title": item.title,
                    "duration": item.duration or "",
                },
            )
        except RazorpayError as exc:
            raise ExternalServiceException("Could not create payment order", service="razorpay") from exc

        with self.transaction():
            self.user_repository.ensure_profile(caller.user_id, email=caller.email, role=caller.role.value)
            if draft is None:
                draft = self.booking_repository.create(
                    user_id=caller.user_id,
                    item_id=item.id,
                    item_type=item.item_type,
                    service_type=item.item_type,
                    status=BookingStatus.PAYMENT_PENDING.value,
                    amount=item.price,
                )
            self.payment_repository.create(
                user_id=caller.user_id,
                booking_id=draft.id,
                amount=item.price,
                status=PaymentStatus.PENDING.value,
                transaction_id=order["id"],
                service_type=item.item_type,
            )

        self.log_operation("order_created", order_id=order["id"], booking_id=draft.id)
        return {
            "order_id": order["id"],
            "amount": amount_subunits,
            "currency": settings.currency,
            "key_id": self.gateway.key_id,
            "booking_id": draft.id,
            "receipt": receipt,
        }

    @BaseService.measure_operation("verify_payment")
    def verify_payment(
        self,
        caller: CallerContext,
        order_id: str,
        payment_id: str,
        signature: str,
        booking_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Check the checkout signature and grant the purchase.

        Raises:
            SignatureMismatchException: signature does not match; nothing is written
            NotFoundException: no checkout for this order belongs to the caller
        """
        if not self.gateway.verify_signature(order_id, payment_id, signature):
            self.logger.warning(f"Signature mismatch for order {order_id}")
            raise SignatureMismatchException()

        payment = self.payment_repository.find_by_order_id(order_id)
        if payment is None or payment.user_id != caller.user_id or payment.booking_id is None:
            raise NotFoundException("Payment not found", code="PAYMENT_NOT_FOUND")
        if booking_id and booking_id != payment.booking_id:
            raise ValidationException("Booking does not match this order", code="BOOKING_MISMATCH")

        booking = self.booking_repository.get_by_id(payment.booking_id)
        if booking is None:
            raise NotFoundException("Booking not found")
        item = self.catalog_repository.get_by_id(booking.item_id) if booking.item_id else None

        with self.transaction():
            # First write of the unit of work: a lost insert race rolls back nothing else
            purchase, created = self.purchase_repository.create_once(
                user_id=caller.user_id,
                booking_id=booking.id,
                item_id=booking.item_id or "",
                item_type=booking.item_type or (item.item_type if item else ""),
                amount_paid=payment.amount,
                status=PurchaseStatus.PURCHASED.value,
            )
            self.booking_repository.transition_status(
                booking.id,
                [BookingStatus.PAYMENT_PENDING.value],
                BookingStatus.BOOKED.value,
            )
            # TODO: confirm with finance whether a verified checkout should move
            # Payment.status to completed; until then it stays pending unless
            # MARK_PAYMENT_COMPLETED_ON_VERIFY is set.
            self.payment_repository.record_gateway_payment(
                payment.id,
                payment_id,
                mark_completed=settings.mark_payment_completed_on_verify,
            )

        if created:
            self.log_operation("payment_verified", order_id=order_id, booking_id=booking.id)
            self.notification_service.send_booking_confirmation(
                self.user_repository.get_by_id(caller.user_id),
                item.title if item else "Your session",
                session_kind=(booking.item_type or "session").replace("_", " "),
                amount_paid=payment.amount,
            )
        else:
            self.logger.info(f"Verification replay for booking {booking.id}; purchase already exists")

        return {
            "success": True,
            "booking_id": booking.id,
            "purchase_id": purchase.id,
            "already_processed": not created,
        }

    @BaseService.measure_operation("dismiss_checkout")
    def dismiss_checkout(self, caller: CallerContext, order_id: str) -> Dict[str, Any]:
        """The payer closed the checkout widget: the order fails, the booking stays retryable."""
        payment = self.payment_repository.find_by_order_id(order_id)
        if payment is None or payment.user_id != caller.user_id:
            raise NotFoundException("Payment not found", code="PAYMENT_NOT_FOUND")
        with self.transaction():
            updated = self.payment_repository.mark_failed(payment.id)
        return {"success": True, "order_id": order_id, "already_processed": updated == 0}

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(self, caller: CallerContext, booking_id: str) -> Dict[str, Any]:
        booking = self.booking_repository.get_for_user(booking_id, caller.user_id)
        if booking is None:
            raise NotFoundException("Booking not found or access denied")
        if booking.is_cancelled:
            return self._already_cancelled()
        if booking.status == BookingStatus.COMPLETED.value:
            raise BusinessRuleException("Completed bookings cannot be cancelled", code="BOOKING_COMPLETED")

        payment = self.payment_repository.find_captured_for_booking(booking.id)
        if payment is None:
            refunded = self.payment_repository.find_latest_for_booking(
                booking.id, [PaymentStatus.REFUNDED.value]
            )
            if refunded is None:
                raise NotFoundException("No payment found for this booking", code="PAYMENT_NOT_FOUND")
            # The money already went back; bring the booking in line with the ledger
            with self.transaction():
                self.booking_repository.transition_status(
                    booking.id,
                    CANCELLABLE_BOOKING_STATUSES,
                    BookingStatus.CANCELLED.value,
                    cancelled_at=utc_now(),
                )
            self.logger.info(f"Booking {booking.id} reconciled with existing refund")
            return self._already_cancelled()

        if not booking.is_cancellable:
            raise BusinessRuleException("Booking cannot be cancelled in its current state")

        policy = self.policy_engine.evaluate_booking_cancellation(booking.created_at, payment.amount)
        refund: Optional[Dict[str, Any]] = None
        try:
            with self.transaction():
                updated = self.booking_repository.transition_status(
                    booking.id,
                    CANCELLABLE_BOOKING_STATUSES,
                    BookingStatus.CANCELLED.value,
                    cancelled_at=utc_now(),
                )
                if not updated:
                    raise AlreadyProcessedException("Booking was already cancelled")
                try:
                    refund = self.gateway.refund(
                        payment.refundable_reference,
                        amount_subunits=policy.refund_amount * CURRENCY_SUBUNITS,
                        notes={
                            "booking_id": booking.id,
                            "reason": "User cancellation",
                            "refund_percentage": str(policy.percentage),
                        },
                    )
                except RazorpayError as exc:
                    raise ExternalServiceException("Refund could not be processed", service="razorpay") from exc
                self.payment_repository.mark_refunded(payment.id, refund["id"])
        except AlreadyProcessedException:
            return self._already_cancelled()
        except (ServiceException, RepositoryException) as exc:
            if refund is None or isinstance(exc, ExternalServiceException):
                raise
            self._settle_after_refund(booking, payment, refund, exc)
            return self._cancelled(booking, policy, refund)
        else:
            return self._cancelled(booking, policy, refund)

    def _cancelled(
        self, booking: Booking, policy: RefundPolicyResult, refund: Dict[str, Any]
    ) -> Dict[str, Any]:
        prometheus_metrics.inc_refund(policy.percentage)
        self.log_operation(
            "booking_cancelled",
            booking_id=booking.id,
            refund_id=refund["id"],
            refund_percentage=policy.percentage,
        )
        return {
            "success": True,
            "already_cancelled": False,
            "message": f"Booking cancelled. {policy.percentage}% refund initiated.",
            "refund_amount": policy.refund_amount,
            "refund_percentage": policy.percentage,
            "refund_id": refund["id"],
            "refund_status": refund.get("status"),
        }

    def quote_session_refund(
        self,
        session_date: date,
        session_time: time,
        amount: int,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Preview of the session cancellation tiers for display before cancelling."""
        if amount < 0:
            raise ValidationException("Amount cannot be negative")
        start = session_start_utc(session_date, session_time)
        result = self.policy_engine.evaluate_session_cancellation(start, amount, now=now)
        return {"session_start": start.isoformat(), **result.to_payload()}

    def _settle_after_refund(
        self,
        booking: Booking,
        payment: Payment,
        refund: Dict[str, Any],
        cause: Exception,
    ) -> None:
        """
        The gateway refunded but the local commit failed.

        Retry the two ledger writes once; if that fails too, the refund stands
        and the mismatch is recorded as reconciliation debt.
        """
        self.logger.error(
            f"Local update failed after refund {refund['id']} for booking {booking.id}: {cause}"
        )
        try:
            with self.transaction():
                self.booking_repository.transition_status(
                    booking.id,
                    CANCELLABLE_BOOKING_STATUSES,
                    BookingStatus.CANCELLED.value,
                    cancelled_at=utc_now(),
                )
                self.payment_repository.mark_refunded(payment.id, refund["id"])
        except Exception as exc:
            prometheus_metrics.inc_reconciliation_debt("cancel_booking")
            self.logger.critical(
                "[RECONCILIATION] Refund issued without ledger update",
                extra={
                    "booking_id": booking.id,
                    "payment_id": payment.id,
                    "refund_id": refund["id"],
                    "error": str(exc),
                },
            )

    @staticmethod
    def _already_cancelled() -> Dict[str, Any]:
        return {
            "success": True,
            "already_cancelled": True,
            "message": "Booking is already cancelled",
            "refund_amount": 0,
            "refund_percentage": 0,
            "refund_id": None,
            "refund_status": None,
        }
