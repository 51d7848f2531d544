# finsage/services/notification_service.py
"""
Transactional notifications.

Every method here is fire-and-forget from the caller's point of view: a
failed send is logged and reported as ``False``, never raised, so an email
outage can not fail a booking, a payment or a credit request.
"""

from datetime import date, time
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import CreditServiceType
from ..models.credit import CreditRequest
from ..models.inquiry import Inquiry
from ..models.user import Profile
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .email import EmailService
from .template_service import TemplateService

logger = logging.getLogger(__name__)

COUNTRY_NAMES = {
    "US": "United States",
    "UK": "United Kingdom",
    "CA": "Canada",
    "AU": "Australia",
    "DE": "Germany",
    "FR": "France",
    "IN": "India",
    "SG": "Singapore",
    "AE": "United Arab Emirates",
    "NZ": "New Zealand",
}


class NotificationService(BaseService):
    def __init__(
        self,
        db: Session,
        email_service: Optional[EmailService] = None,
        template_service: Optional[TemplateService] = None,
    ):
        super().__init__(db)
        self._email_service = email_service
        self.template_service = template_service or TemplateService()
        self.user_repository = RepositoryFactory.create_user_repository(db)

    @property
    def email_service(self) -> EmailService:
        # Built lazily so a misconfigured provider only surfaces when mail is sent
        if self._email_service is None:
            self._email_service = EmailService(self.db)
        return self._email_service

    def _deliver(self, kind: str, to: List[str], subject: str, html: str) -> bool:
        if not to:
            self.logger.warning("[NOTIFY] %s skipped: no recipients", kind)
            return False
        try:
            if settings.notifications_via_task_queue:
                from ..tasks.email import send_notification_email

                send_notification_email.delay(to, subject, html)
            else:
                self.email_service.send_email(to, subject, html)
        except Exception as exc:
            self.logger.error("[NOTIFY] %s failed for %s: %s", kind, to, exc)
            return False
        self.logger.info("[NOTIFY] %s sent to %d recipient(s)", kind, len(to))
        return True

    @BaseService.measure_operation("notify_credit_request")
    def notify_credit_request(self, request: CreditRequest, requester: Optional[Profile]) -> bool:
        """Alert every approved admin that a user asked for credits."""
        try:
            admin_emails = self.user_repository.get_approved_admin_emails()
            label = CreditServiceType(request.service_type).label
            user_name = requester.display_name if requester else "A user"
            html = self.template_service.render_template(
                "email/credit_request_admin.html",
                {
                    "user_name": user_name,
                    "user_email": requester.email if requester else None,
                    "service_type_label": label,
                    "requested_amount": request.requested_amount,
                    "reason": request.reason,
                    "review_url": f"{settings.frontend_url}/admin/credit-requests",
                },
            )
        except Exception as exc:
            self.logger.error("[NOTIFY] credit request alert could not be prepared: %s", exc)
            return False
        return self._deliver(
            "credit_request",
            admin_emails,
            f"New {label} Credit Request from {user_name}",
            html,
        )

    @BaseService.measure_operation("send_booking_confirmation")
    def send_booking_confirmation(
        self,
        recipient: Optional[Profile],
        session_title: str,
        *,
        session_kind: str = "one-on-one coaching",
        session_date: Optional[date] = None,
        session_time: Optional[time] = None,
        credits_used: Optional[int] = None,
        amount_paid: Optional[int] = None,
    ) -> bool:
        if recipient is None or not recipient.email:
            self.logger.info("[NOTIFY] booking confirmation skipped: recipient has no email")
            return False
        context: Dict[str, Any] = {
            "user_name": recipient.display_name,
            "session_title": session_title,
            "session_kind": session_kind,
            "session_date": session_date.strftime("%A, %B %d, %Y") if session_date else None,
            "session_time": session_time.strftime("%I:%M %p") if session_time else None,
            "credits_used": credits_used,
            "amount_paid": amount_paid,
            "currency": settings.currency,
            "dashboard_url": f"{settings.frontend_url}/dashboard",
        }
        try:
            html = self.template_service.render_template("email/booking_confirmation.html", context)
        except Exception as exc:
            self.logger.error("[NOTIFY] booking confirmation could not be rendered: %s", exc)
            return False
        return self._deliver(
            "booking_confirmation",
            [recipient.email],
            f"Session Booking Confirmed - {session_title}",
            html,
        )

    @BaseService.measure_operation("notify_inquiry")
    def notify_inquiry(self, inquiry: Inquiry) -> bool:
        try:
            admin_emails = self.user_repository.get_approved_admin_emails()
            country = (inquiry.country or "").upper()
            html = self.template_service.render_template(
                "email/inquiry_notification.html",
                {"inquiry": inquiry, "country_name": COUNTRY_NAMES.get(country, inquiry.country)},
            )
        except Exception as exc:
            self.logger.error("[NOTIFY] inquiry alert could not be prepared: %s", exc)
            return False
        return self._deliver(
            "inquiry",
            admin_emails,
            f"New Demo Request from {inquiry.full_name} at {inquiry.company_name}",
            html,
        )
