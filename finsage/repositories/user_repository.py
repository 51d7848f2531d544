# finsage/repositories/user_repository.py
"""Profile data access."""

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.enums import UserRole
from ..models.user import Profile
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[Profile]):
    def __init__(self, db: Session):
        super().__init__(db, Profile)

    def ensure_profile(
        self,
        user_id: str,
        *,
        email: Optional[str] = None,
        role: str = UserRole.INDIVIDUAL.value,
    ) -> Profile:
        """
        Return the caller's profile, creating it on first use.

        The identity provider is the system of record for users, so a valid
        token may arrive before the marketplace has ever seen the user.
        """
        existing = self.get_by_id(user_id)
        if existing:
            return existing
        try:
            return self.create(id=user_id, email=email, role=role)
        except IntegrityError:
            self.logger.info("Profile %s created concurrently; re-reading", user_id)
            profile = self.get_by_id(user_id)
            if profile is None:
                raise
            return profile

    def get_approved_admin_emails(self) -> List[str]:
        rows = self._execute_query(
            self._build_query().filter(
                Profile.role == UserRole.ADMIN.value,
                Profile.is_approved.is_(True),
                Profile.email.isnot(None),
            )
        )
        return [row.email for row in rows if row.email]
