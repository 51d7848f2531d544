# finsage/repositories/credit_repository.py
"""Credit request and credit balance data access."""

from datetime import datetime, timezone
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.enums import CreditRequestStatus
from ..models.credit import CreditBalance, CreditRequest
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class CreditRequestRepository(BaseRepository[CreditRequest]):
    def __init__(self, db: Session):
        super().__init__(db, CreditRequest)

    def list_requests(self, status: Optional[str] = None, limit: int = 100) -> List[CreditRequest]:
        query = self._build_query()
        if status:
            query = query.filter(CreditRequest.status == status)
        return self._execute_query(query.order_by(CreditRequest.created_at.desc()).limit(limit))

    def decide(
        self,
        request_id: str,
        to_status: str,
        admin_id: str,
        admin_notes: Optional[str],
    ) -> int:
        """pending -> approved|rejected. Zero rows means the request was already decided."""
        query = self._build_query().filter(
            CreditRequest.id == request_id,
            CreditRequest.status == CreditRequestStatus.PENDING.value,
        )
        return self._execute_update(
            query,
            {
                CreditRequest.status: to_status,
                CreditRequest.admin_id: admin_id,
                CreditRequest.admin_notes: admin_notes,
                CreditRequest.decided_at: datetime.now(timezone.utc),
            },
        )


class CreditBalanceRepository(BaseRepository[CreditBalance]):
    def __init__(self, db: Session):
        super().__init__(db, CreditBalance)

    def get_balance(self, user_id: str, service_type: str) -> Optional[CreditBalance]:
        return self.find_one_by(user_id=user_id, service_type=service_type)

    def list_for_user(self, user_id: str) -> List[CreditBalance]:
        return self._execute_query(
            self._build_query()
            .filter(CreditBalance.user_id == user_id)
            .order_by(CreditBalance.service_type)
        )

    def add(self, user_id: str, service_type: str, amount: int) -> CreditBalance:
        """
        Increase a balance, creating the row on first grant.

        A concurrent first grant for the same (user, service type) trips the
        unique constraint and fails the surrounding transaction as a whole.
        """
        balance = self.get_balance(user_id, service_type)
        if balance is None:
            return self.create(user_id=user_id, service_type=service_type, amount=amount)

        # Increment in SQL so concurrent approvals for the same row both land
        self._execute_update(
            self._build_query().filter(CreditBalance.id == balance.id),
            {
                CreditBalance.amount: CreditBalance.amount + amount,
                CreditBalance.updated_at: datetime.now(timezone.utc),
            },
        )
        self.db.refresh(balance)
        return balance

    def deduct(self, user_id: str, service_type: str, amount: int) -> int:
        """Conditional decrement; zero rows means the balance could not cover ``amount``."""
        query = self._build_query().filter(
            CreditBalance.user_id == user_id,
            CreditBalance.service_type == service_type,
            CreditBalance.amount >= amount,
        )
        return self._execute_update(
            query,
            {
                CreditBalance.amount: CreditBalance.amount - amount,
                CreditBalance.updated_at: datetime.now(timezone.utc),
            },
        )
