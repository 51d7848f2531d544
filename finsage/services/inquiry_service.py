# finsage/services/inquiry_service.py
"""Public website inquiries: persisted first, then announced to admins."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..models.inquiry import Inquiry
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .notification_service import NotificationService

logger = logging.getLogger(__name__)


class InquiryService(BaseService):
    def __init__(self, db: Session, notification_service: Optional[NotificationService] = None):
        super().__init__(db)
        self.repository = RepositoryFactory.create_base_repository(db, Inquiry)
        self.notification_service = notification_service or NotificationService(db)

    @BaseService.measure_operation("submit_inquiry")
    def submit_inquiry(self, data: dict, client_ip: Optional[str]) -> Inquiry:
        with self.transaction():
            inquiry = self.repository.create(**data, client_ip=client_ip or "unknown")
        self.notification_service.notify_inquiry(inquiry)
        return inquiry
