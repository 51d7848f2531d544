# finsage/services/email.py
"""
Email Service for the FinSage platform.

Sends through Resend. With ``EMAIL_PROVIDER=console`` messages are logged
instead, which is the default for local development and tests.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Union

import resend
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import ExternalServiceException, ServiceException
from .base import BaseService

logger = logging.getLogger(__name__)


class EmailService(BaseService):
    """Service for sending emails using the Resend API."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.provider = settings.email_provider
        self.from_email = settings.from_email
        if self.provider == "resend":
            if not settings.resend_api_key:
                raise ServiceException("Resend API key not configured")
            resend.api_key = settings.resend_api_key

    @staticmethod
    def _html_to_text(html_content: str) -> str:
        text = re.sub(r"<[^>]+>", "", html_content)
        return re.sub(r"\s+", " ", text).strip()

    @BaseService.measure_operation("send_email")
    def send_email(
        self,
        to_email: Union[str, Sequence[str]],
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send a single email.

        Raises:
            ExternalServiceException: If the provider rejects or fails the send
        """
        recipients: List[str] = [to_email] if isinstance(to_email, str) else list(to_email)
        if not recipients:
            raise ServiceException("Email has no recipients")

        email_data = {
            "from": self.from_email,
            "to": recipients,
            "subject": subject,
            "html": html_content,
            "text": text_content or self._html_to_text(html_content),
        }

        if self.provider == "console":
            self.logger.info(
                "[EMAIL:console] to=%s subject=%s", ", ".join(recipients), subject
            )
            return {"id": "console", "to": recipients}

        try:
            response = resend.Emails.send(email_data)
        except Exception as e:
            self.logger.error(f"Failed to send email to {recipients}: {type(e).__name__}: {e}")
            raise ExternalServiceException(
                f"Failed to send email: {str(e)}", service="resend"
            ) from e

        self.logger.info(f"Email sent successfully to {recipients} - Subject: {subject}")
        return dict(response) if response else {}
