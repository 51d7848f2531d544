# finsage/models/user.py
"""
Profile model.

Profiles mirror identity-provider users. The identity provider owns
authentication; this table only carries what the marketplace needs to
address, authorize and notify a user.
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, String
import ulid

from ..core.enums import UserRole
from ..database import Base


class Profile(Base):
    """
    Marketplace view of an identity-provider user.

    Attributes:
        id: Identity-provider subject id
        email: Contact email used for notifications
        role: client, admin, coach or individual
        is_approved: Approved admins receive credit-request and inquiry alerts
    """

    __tablename__ = "profiles"

    id = Column(String(64), primary_key=True, default=lambda: str(ulid.ULID()))
    email = Column(String(255), nullable=True, index=True)
    full_name = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.INDIVIDUAL.value)
    is_approved = Column(Boolean, nullable=False, default=False)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    @property
    def display_name(self) -> str:
        if self.full_name:
            return self.full_name
        if self.email:
            return self.email.split("@")[0]
        return "User"

    def __repr__(self) -> str:
        return f"<Profile {self.id} role={self.role}>"
