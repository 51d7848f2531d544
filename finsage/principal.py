"""The authenticated caller, passed explicitly to every service operation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .core.enums import UserRole


@dataclass(frozen=True)
class CallerContext:
    """Identity and role of whoever is making the current request."""

    user_id: str
    role: UserRole
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_staff(self) -> bool:
        return self.role.is_staff

    @property
    def is_client(self) -> bool:
        return self.role == UserRole.CLIENT
