# finsage/services/credit_service.py
"""
Credit Service.

Users ask for session credits; admins approve or reject each request once.
Approval is the only path that grows a balance, and redeeming credits for a
coaching session is the only path that shrinks one.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.constants import MAX_CREDIT_REQUEST_AMOUNT, MAX_REASON_LENGTH
from ..core.enums import CreditRequestStatus, CreditServiceType, SessionBookingStatus
from ..core.exceptions import (
    BusinessRuleException,
    ConflictException,
    ForbiddenException,
    InsufficientCreditsException,
    NotFoundException,
    ValidationException,
)
from ..models.booking import SessionBooking
from ..models.credit import CreditBalance, CreditRequest
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..principal import CallerContext
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .notification_service import NotificationService

logger = logging.getLogger(__name__)


class CreditService(BaseService):
    def __init__(self, db: Session, notification_service: Optional[NotificationService] = None):
        super().__init__(db)
        self.notification_service = notification_service or NotificationService(db)
        self.request_repository = RepositoryFactory.create_credit_request_repository(db)
        self.balance_repository = RepositoryFactory.create_credit_balance_repository(db)
        self.session_booking_repository = RepositoryFactory.create_session_booking_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)

    @BaseService.measure_operation("submit_credit_request")
    def submit_request(
        self,
        caller: CallerContext,
        requested_amount: int,
        service_type: str,
        reason: str,
    ) -> CreditRequest:
        """Persist a pending request and alert approved admins."""
        if isinstance(requested_amount, bool) or not isinstance(requested_amount, int):
            raise ValidationException("Requested amount must be a whole number")
        if requested_amount <= 0 or requested_amount > MAX_CREDIT_REQUEST_AMOUNT:
            raise ValidationException(
                f"Requested amount must be between 1 and {MAX_CREDIT_REQUEST_AMOUNT}",
                code="INVALID_AMOUNT",
            )
        service = self._parse_service_type(service_type)
        cleaned_reason = (reason or "").strip()
        if not cleaned_reason:
            raise ValidationException("A reason is required", code="REASON_REQUIRED")
        if len(cleaned_reason) > MAX_REASON_LENGTH:
            raise ValidationException(f"Reason cannot exceed {MAX_REASON_LENGTH} characters")

        with self.transaction():
            requester = self.user_repository.ensure_profile(
                caller.user_id, email=caller.email, role=caller.role.value
            )
            request = self.request_repository.create(
                user_id=caller.user_id,
                requested_amount=requested_amount,
                service_type=service.value,
                reason=cleaned_reason,
                status=CreditRequestStatus.PENDING.value,
            )

        self.log_operation(
            "credit_request_submitted", credit_request_id=request.id, amount=requested_amount
        )
        self.notification_service.notify_credit_request(request, requester)
        return request

    @BaseService.measure_operation("decide_credit_request")
    def decide_request(
        self,
        admin: CallerContext,
        request_id: str,
        approve: bool,
        admin_notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Approve or reject a pending request exactly once.

        A request that was already decided is reported with
        ``already_processed=True`` and has no effect on any balance.
        """
        if not admin.is_admin:
            raise ForbiddenException("Only admins can decide credit requests")

        request = self.request_repository.get_by_id(request_id)
        if request is None:
            raise NotFoundException("Credit request not found")

        to_status = CreditRequestStatus.APPROVED if approve else CreditRequestStatus.REJECTED
        balance: Optional[CreditBalance] = None
        with self.transaction():
            updated = self.request_repository.decide(
                request_id, to_status.value, admin.user_id, (admin_notes or "").strip() or None
            )
            if updated and approve:
                balance = self.balance_repository.add(
                    request.user_id, request.service_type, request.requested_amount
                )

        self.db.refresh(request)
        if not updated:
            self.logger.info(f"Credit request {request_id} already {request.status}")
            return {
                "success": True,
                "already_processed": True,
                "status": request.status,
                "balance": None,
            }

        if approve:
            prometheus_metrics.inc_credits_granted(request.service_type, request.requested_amount)
        self.log_operation(
            "credit_request_decided",
            credit_request_id=request_id,
            status=to_status.value,
            admin_id=admin.user_id,
        )
        return {
            "success": True,
            "already_processed": False,
            "status": to_status.value,
            "balance": balance.amount if balance else None,
        }

    def list_requests(
        self, admin: CallerContext, status: Optional[str] = None, limit: int = 100
    ) -> List[CreditRequest]:
        if not admin.is_admin:
            raise ForbiddenException("Only admins can list credit requests")
        if status:
            try:
                status = CreditRequestStatus(status).value
            except ValueError:
                raise ValidationException(f"Unknown status: {status}")
        return self.request_repository.list_requests(status=status, limit=limit)

    def get_balances(self, user_id: str) -> Dict[str, int]:
        """Balance per service type; types never granted report zero."""
        balances = {service.value: 0 for service in CreditServiceType}
        for row in self.balance_repository.list_for_user(user_id):
            balances[row.service_type] = row.amount
        return balances

    @BaseService.measure_operation("book_session_with_credits")
    def book_session_with_credits(self, caller: CallerContext, session_id: str) -> SessionBooking:
        session = self.session_booking_repository.get_session(session_id)
        if session is None:
            raise NotFoundException("Session not found")
        if self.session_booking_repository.has_active_booking(caller.user_id, session_id):
            raise ConflictException("You have already booked this session", code="ALREADY_BOOKED")

        service_type = self._parse_service_type(session.session_type).value
        required = session.credits_required
        if required <= 0:
            raise BusinessRuleException("Session is not bookable with credits")

        with self.transaction():
            deducted = self.balance_repository.deduct(caller.user_id, service_type, required)
            if not deducted:
                current = self.balance_repository.get_balance(caller.user_id, service_type)
                raise InsufficientCreditsException(required, current.amount if current else 0)
            booking = self.session_booking_repository.create(
                user_id=caller.user_id,
                session_id=session.id,
                status=SessionBookingStatus.BOOKED.value,
                credits_used=required,
            )

        self.log_operation("session_booked_with_credits", session_id=session.id, credits=required)
        self.notification_service.send_booking_confirmation(
            self.user_repository.get_by_id(caller.user_id),
            session.title,
            session_kind=CreditServiceType(service_type).label.lower(),
            session_date=session.session_date,
            session_time=session.session_time,
            credits_used=required,
        )
        return booking

    @staticmethod
    def _parse_service_type(value: str) -> CreditServiceType:
        try:
            return CreditServiceType(value)
        except ValueError:
            raise ValidationException(f"Unknown service type: {value}", code="INVALID_SERVICE_TYPE")
