"""
Tests for the compare-and-swap repository writes that guard idempotency.
"""

from datetime import datetime, timezone

import pytest

from finsage.core.enums import BookingStatus, CreditRequestStatus, PurchaseStatus
from finsage.models.credit import CreditRequest
from finsage.repositories.factory import RepositoryFactory


class TestBookingTransitions:
    def test_transition_applies_once(self, db, individual_user, make_paid_booking):
        booking, _ = make_paid_booking(individual_user.id)
        repository = RepositoryFactory.create_booking_repository(db)

        first = repository.transition_status(
            booking.id, [BookingStatus.BOOKED.value], BookingStatus.CANCELLED.value,
            cancelled_at=datetime.now(timezone.utc),
        )
        second = repository.transition_status(
            booking.id, [BookingStatus.BOOKED.value], BookingStatus.CANCELLED.value
        )

        assert (first, second) == (1, 0)
        assert booking.status == BookingStatus.CANCELLED.value
        assert booking.cancelled_at is not None


class TestPurchaseCreateOnce:
    def test_second_insert_returns_existing(self, db, individual_user, make_item, make_paid_booking):
        item = make_item()
        booking, _ = make_paid_booking(individual_user.id, item=item)
        repository = RepositoryFactory.create_purchase_repository(db)
        values = dict(
            user_id=individual_user.id,
            booking_id=booking.id,
            item_id=item.id,
            item_type=item.item_type,
            amount_paid=2000,
            status=PurchaseStatus.PURCHASED.value,
        )

        purchase, created = repository.create_once(**values)
        again, created_again = repository.create_once(**values)

        assert created is True
        assert created_again is False
        assert again.id == purchase.id


class TestCreditBalances:
    def test_add_creates_then_increments(self, db, individual_user):
        repository = RepositoryFactory.create_credit_balance_repository(db)

        repository.add(individual_user.id, "coaching", 5)
        balance = repository.add(individual_user.id, "coaching", 3)

        assert balance.amount == 8

    def test_add_touches_only_its_own_row(self, db, individual_user, client_user):
        repository = RepositoryFactory.create_credit_balance_repository(db)
        coaching = repository.add(individual_user.id, "coaching", 5)
        repository.add(individual_user.id, "short_session", 2)
        repository.add(client_user.id, "coaching", 1)

        again = repository.add(individual_user.id, "coaching", 1)

        assert again.id == coaching.id
        assert again.amount == 6
        assert {b.service_type: b.amount for b in repository.list_for_user(individual_user.id)} == {
            "coaching": 6,
            "short_session": 2,
        }
        assert repository.get_balance(client_user.id, "coaching").amount == 1

    @pytest.mark.parametrize("amount,expected_rows,remaining", [(2, 1, 1), (3, 1, 0), (4, 0, 3)])
    def test_deduct_never_goes_negative(self, db, individual_user, amount, expected_rows, remaining):
        repository = RepositoryFactory.create_credit_balance_repository(db)
        repository.add(individual_user.id, "coaching", 3)

        rows = repository.deduct(individual_user.id, "coaching", amount)

        assert rows == expected_rows
        balance = repository.get_balance(individual_user.id, "coaching")
        db.refresh(balance)
        assert balance.amount == remaining

    def test_deduct_without_balance_row(self, db, individual_user):
        repository = RepositoryFactory.create_credit_balance_repository(db)

        assert repository.deduct(individual_user.id, "short_session", 1) == 0


class TestCreditRequestDecision:
    def test_only_pending_requests_are_decided(self, db, individual_user, admin_user):
        request = CreditRequest(
            user_id=individual_user.id,
            requested_amount=2,
            service_type="coaching",
            reason="Tax season",
            status=CreditRequestStatus.PENDING.value,
        )
        db.add(request)
        db.commit()
        repository = RepositoryFactory.create_credit_request_repository(db)

        approved = repository.decide(request.id, CreditRequestStatus.APPROVED.value, admin_user.id, None)
        rejected = repository.decide(request.id, CreditRequestStatus.REJECTED.value, admin_user.id, "late")

        assert (approved, rejected) == (1, 0)
        assert request.status == CreditRequestStatus.APPROVED.value
        assert request.admin_notes is None


class TestMessageReads:
    def test_mark_read_skips_own_and_already_read(self, db, client_caller, admin_caller):
        from finsage.models.message import Message
        from finsage.services.conversation_service import ConversationService

        conversation, _ = ConversationService(db).get_or_create_conversation(client_caller)
        own = Message(
            conversation_id=conversation.id, sender_id=client_caller.user_id, sender_role="client",
            content="Mine", read_by=[],
        )
        theirs = Message(
            conversation_id=conversation.id, sender_id=admin_caller.user_id, sender_role="admin",
            content="Theirs", read_by=[],
        )
        db.add_all([own, theirs])
        db.commit()
        repository = RepositoryFactory.create_message_repository(db)
        at = datetime(2026, 3, 1, tzinfo=timezone.utc)

        first = repository.mark_read([own, theirs], client_caller.user_id, at)
        second = repository.mark_read([own, theirs], client_caller.user_id, at)

        assert first == [theirs]
        assert second == []
        assert theirs.read_by == [client_caller.user_id]
