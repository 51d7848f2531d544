"""
Tests for PaymentService: checkout orders, signature verification and
cancellation with tiered refunds.
"""

from datetime import date, datetime, time, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy.orm import Session

from finsage.core.enums import BookingStatus, PaymentStatus, PurchaseStatus
from finsage.core.exceptions import (
    BusinessRuleException,
    ExternalServiceException,
    NotFoundException,
    RepositoryException,
    SignatureMismatchException,
    ValidationException,
)
from finsage.integrations.razorpay_client import RazorpayError
from finsage.models.booking import Booking
from finsage.models.payment import Payment, Purchase
from finsage.services.payment_service import PaymentService


@pytest.fixture
def service(db: Session, fake_gateway, mock_notification_service) -> PaymentService:
    return PaymentService(db, gateway=fake_gateway, notification_service=mock_notification_service)


def _checkout(service: PaymentService, caller, item) -> dict:
    return service.create_order(caller, item.id, expected_amount=item.price)


class TestCreateOrder:
    def test_creates_gateway_order_booking_and_pending_payment(
        self, service, db, fake_gateway, individual_caller, make_item
    ):
        item = make_item(price=2000, duration="60 min")

        order = _checkout(service, individual_caller, item)

        assert order["amount"] == 200000
        assert order["currency"] == "INR"
        assert order["key_id"] == fake_gateway.key_id
        assert order["receipt"].startswith("receipt_")
        gateway_order = fake_gateway.orders[0]
        assert gateway_order["id"] == order["order_id"]
        assert gateway_order["notes"] == {
            "user_id": individual_caller.user_id,
            "item_title": item.title,
            "duration": "60 min",
        }
        booking = db.query(Booking).filter_by(id=order["booking_id"]).one()
        assert booking.status == BookingStatus.PAYMENT_PENDING.value
        payment = db.query(Payment).filter_by(transaction_id=order["order_id"]).one()
        assert payment.status == PaymentStatus.PENDING.value
        assert payment.amount == 2000

    def test_price_comes_from_catalog(self, service, individual_caller, make_item):
        item = make_item(price=2000)

        with pytest.raises(ValidationException) as exc_info:
            service.create_order(individual_caller, item.id, expected_amount=1)

        assert exc_info.value.code == "PRICE_MISMATCH"

    def test_inactive_item_is_not_purchasable(self, service, individual_caller, make_item):
        item = make_item(is_active=False)

        with pytest.raises(NotFoundException):
            _checkout(service, individual_caller, item)

    def test_reuses_draft_booking(self, service, db, individual_caller, make_item):
        item = make_item()
        first = _checkout(service, individual_caller, item)

        second = service.create_order(individual_caller, item.id, booking_id=first["booking_id"])

        assert second["booking_id"] == first["booking_id"]
        assert db.query(Booking).count() == 1
        assert db.query(Payment).count() == 2

    def test_gateway_failure_writes_nothing(self, service, db, fake_gateway, individual_caller, make_item):
        item = make_item()

        with patch.object(fake_gateway, "create_order", side_effect=RazorpayError("down")):
            with pytest.raises(ExternalServiceException):
                _checkout(service, individual_caller, item)

        assert db.query(Booking).count() == 0
        assert db.query(Payment).count() == 0


class TestVerifyPayment:
    def test_valid_signature_grants_one_purchase(
        self, service, db, fake_gateway, individual_caller, make_item, mock_notification_service
    ):
        item = make_item()
        order = _checkout(service, individual_caller, item)
        signature = fake_gateway.sign(order["order_id"], "pay_123")

        result = service.verify_payment(individual_caller, order["order_id"], "pay_123", signature)

        assert result["success"] is True
        assert result["already_processed"] is False
        purchase = db.query(Purchase).filter_by(booking_id=order["booking_id"]).one()
        assert purchase.status == PurchaseStatus.PURCHASED.value
        assert purchase.amount_paid == item.price
        booking = db.query(Booking).filter_by(id=order["booking_id"]).one()
        assert booking.status == BookingStatus.BOOKED.value
        payment = db.query(Payment).filter_by(transaction_id=order["order_id"]).one()
        assert payment.gateway_payment_id == "pay_123"
        assert payment.status == PaymentStatus.PENDING.value
        mock_notification_service.send_booking_confirmation.assert_called_once()

    def test_retried_verification_is_idempotent(
        self, service, db, fake_gateway, individual_caller, make_item, mock_notification_service
    ):
        item = make_item()
        order = _checkout(service, individual_caller, item)
        signature = fake_gateway.sign(order["order_id"], "pay_123")

        first = service.verify_payment(individual_caller, order["order_id"], "pay_123", signature)
        second = service.verify_payment(individual_caller, order["order_id"], "pay_123", signature)

        assert second["already_processed"] is True
        assert second["purchase_id"] == first["purchase_id"]
        assert db.query(Purchase).count() == 1
        assert mock_notification_service.send_booking_confirmation.call_count == 1

    def test_invalid_signature_creates_nothing(self, service, db, individual_caller, make_item):
        item = make_item()
        order = _checkout(service, individual_caller, item)

        with pytest.raises(SignatureMismatchException):
            service.verify_payment(individual_caller, order["order_id"], "pay_123", "forged")

        assert db.query(Purchase).count() == 0
        booking = db.query(Booking).filter_by(id=order["booking_id"]).one()
        assert booking.status == BookingStatus.PAYMENT_PENDING.value

    def test_other_users_order_is_not_found(
        self, service, fake_gateway, individual_caller, client_caller, make_item
    ):
        item = make_item()
        order = _checkout(service, individual_caller, item)
        signature = fake_gateway.sign(order["order_id"], "pay_123")

        with pytest.raises(NotFoundException):
            service.verify_payment(client_caller, order["order_id"], "pay_123", signature)

    def test_booking_must_match_order(self, service, fake_gateway, individual_caller, make_item):
        item = make_item()
        order = _checkout(service, individual_caller, item)
        signature = fake_gateway.sign(order["order_id"], "pay_123")

        with pytest.raises(ValidationException) as exc_info:
            service.verify_payment(
                individual_caller, order["order_id"], "pay_123", signature, booking_id="other"
            )

        assert exc_info.value.code == "BOOKING_MISMATCH"

    def test_flag_marks_payment_completed(self, service, db, fake_gateway, individual_caller, make_item):
        item = make_item()
        order = _checkout(service, individual_caller, item)
        signature = fake_gateway.sign(order["order_id"], "pay_123")

        with patch("finsage.services.payment_service.settings.mark_payment_completed_on_verify", True):
            service.verify_payment(individual_caller, order["order_id"], "pay_123", signature)

        payment = db.query(Payment).filter_by(transaction_id=order["order_id"]).one()
        assert payment.status == PaymentStatus.COMPLETED.value

    def test_repurchase_blocked_when_rebooking_not_allowed(
        self, service, db, fake_gateway, individual_caller, make_item
    ):
        item = make_item()
        order = _checkout(service, individual_caller, item)
        service.verify_payment(
            individual_caller, order["order_id"], "pay_1", fake_gateway.sign(order["order_id"], "pay_1")
        )
        db.query(Purchase).update({Purchase.can_rebook: False})
        db.commit()

        with pytest.raises(BusinessRuleException) as exc_info:
            _checkout(service, individual_caller, item)

        assert exc_info.value.code == "ALREADY_PURCHASED"


class TestDismissCheckout:
    def test_marks_pending_payment_failed_once(self, service, db, individual_caller, make_item):
        item = make_item()
        order = _checkout(service, individual_caller, item)

        first = service.dismiss_checkout(individual_caller, order["order_id"])
        second = service.dismiss_checkout(individual_caller, order["order_id"])

        assert first["already_processed"] is False
        assert second["already_processed"] is True
        payment = db.query(Payment).filter_by(transaction_id=order["order_id"]).one()
        assert payment.status == PaymentStatus.FAILED.value


class TestCancelBooking:
    def test_within_first_hour_refunds_everything(
        self, service, db, fake_gateway, individual_caller, make_paid_booking
    ):
        booking, payment = make_paid_booking(
            individual_caller.user_id, amount=2000, booked_at=datetime.now(timezone.utc) - timedelta(minutes=30)
        )

        result = service.cancel_booking(individual_caller, booking.id)

        assert result["already_cancelled"] is False
        assert result["refund_percentage"] == 100
        assert result["refund_amount"] == 2000
        assert result["message"] == "Booking cancelled. 100% refund initiated."
        assert fake_gateway.refunds[0]["amount"] == 200000
        assert fake_gateway.refunds[0]["payment_id"] == payment.gateway_payment_id
        db.refresh(booking)
        db.refresh(payment)
        assert booking.status == BookingStatus.CANCELLED.value
        assert booking.cancelled_at is not None
        assert payment.status == PaymentStatus.REFUNDED.value
        assert payment.transaction_id.endswith(f"_refund_{result['refund_id']}")

    def test_after_first_hour_refunds_ninety_percent(
        self, service, fake_gateway, individual_caller, make_paid_booking
    ):
        booking, _ = make_paid_booking(
            individual_caller.user_id, amount=2000, booked_at=datetime.now(timezone.utc) - timedelta(hours=3)
        )

        result = service.cancel_booking(individual_caller, booking.id)

        assert result["refund_percentage"] == 90
        assert result["refund_amount"] == 1800
        assert fake_gateway.refunds[0]["amount"] == 180000

    def test_cancelling_twice_refunds_once(self, service, fake_gateway, individual_caller, make_paid_booking):
        booking, _ = make_paid_booking(individual_caller.user_id)

        service.cancel_booking(individual_caller, booking.id)
        second = service.cancel_booking(individual_caller, booking.id)

        assert second["already_cancelled"] is True
        assert second["refund_amount"] == 0
        assert len(fake_gateway.refunds) == 1

    def test_gateway_failure_leaves_booking_active(
        self, service, db, fake_gateway, individual_caller, make_paid_booking
    ):
        booking, payment = make_paid_booking(individual_caller.user_id)
        fake_gateway.fail_refunds = True

        with pytest.raises(ExternalServiceException) as exc_info:
            service.cancel_booking(individual_caller, booking.id)

        assert exc_info.value.status_code == 502
        db.refresh(booking)
        db.refresh(payment)
        assert booking.status == BookingStatus.BOOKED.value
        assert payment.status == PaymentStatus.PENDING.value

    def test_completed_payment_is_refundable(self, service, individual_caller, make_paid_booking):
        booking, _ = make_paid_booking(individual_caller.user_id, payment_status=PaymentStatus.COMPLETED)

        result = service.cancel_booking(individual_caller, booking.id)

        assert result["already_cancelled"] is False

    def test_other_users_booking_is_not_found(self, service, individual_caller, client_caller, make_paid_booking):
        booking, _ = make_paid_booking(individual_caller.user_id)

        with pytest.raises(NotFoundException):
            service.cancel_booking(client_caller, booking.id)

    def test_completed_booking_cannot_be_cancelled(self, service, individual_caller, make_paid_booking):
        booking, _ = make_paid_booking(individual_caller.user_id, status=BookingStatus.COMPLETED)

        with pytest.raises(BusinessRuleException):
            service.cancel_booking(individual_caller, booking.id)

    def test_booking_without_captured_payment(self, service, db, individual_caller, make_item):
        item = make_item()
        order = _checkout(service, individual_caller, item)

        with pytest.raises(NotFoundException):
            service.cancel_booking(individual_caller, order["booking_id"])

    def test_existing_refund_reconciles_booking(
        self, service, db, fake_gateway, individual_caller, make_paid_booking
    ):
        booking, _ = make_paid_booking(individual_caller.user_id, payment_status=PaymentStatus.REFUNDED)

        result = service.cancel_booking(individual_caller, booking.id)

        assert result["already_cancelled"] is True
        assert fake_gateway.refunds == []
        db.refresh(booking)
        assert booking.status == BookingStatus.CANCELLED.value

    def test_local_failure_after_refund_is_retried(
        self, service, db, fake_gateway, individual_caller, make_paid_booking
    ):
        booking, payment = make_paid_booking(individual_caller.user_id)
        real_mark_refunded = service.payment_repository.mark_refunded

        calls = []

        def flaky_mark_refunded(*args, **kwargs):
            calls.append(args)
            if len(calls) == 1:
                raise RepositoryException("connection lost")
            return real_mark_refunded(*args, **kwargs)

        with patch.object(service.payment_repository, "mark_refunded", side_effect=flaky_mark_refunded):
            result = service.cancel_booking(individual_caller, booking.id)

        assert result["success"] is True
        assert len(fake_gateway.refunds) == 1
        db.refresh(booking)
        db.refresh(payment)
        assert booking.status == BookingStatus.CANCELLED.value
        assert payment.status == PaymentStatus.REFUNDED.value

    def test_persistent_local_failure_records_reconciliation_debt(
        self, service, fake_gateway, individual_caller, make_paid_booking
    ):
        booking, _ = make_paid_booking(individual_caller.user_id)

        with patch.object(
            service.payment_repository, "mark_refunded", side_effect=RepositoryException("db down")
        ), patch(
            "finsage.services.payment_service.prometheus_metrics.inc_reconciliation_debt"
        ) as debt:
            result = service.cancel_booking(individual_caller, booking.id)

        # The refund went out; the response reflects it and the mismatch is recorded
        assert result["refund_id"] == fake_gateway.refunds[0]["id"]
        assert len(fake_gateway.refunds) == 1
        debt.assert_called_once_with("cancel_booking")


class TestQuoteSessionRefund:
    def test_quote_uses_business_timezone(self, service):
        # 10:00 IST on 2026-03-12 is 04:30 UTC
        now = datetime(2026, 3, 11, 4, 30, tzinfo=timezone.utc)

        quote = service.quote_session_refund(date(2026, 3, 12), time(10, 0), 1000, now=now)

        assert quote["session_start"] == "2026-03-12T04:30:00+00:00"
        assert quote["hours"] == 24.0
        assert quote["refund_percentage"] == 90
        assert quote["refund_amount"] == 900

    def test_negative_amount_rejected(self, service):
        with pytest.raises(ValidationException):
            service.quote_session_refund(date(2026, 3, 12), time(10, 0), -1)
