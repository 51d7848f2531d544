# finsage/auth.py
"""
Bearer-token authentication.

Tokens are issued by the external identity provider and verified here with
the shared secret. The resulting ``CallerContext`` is handed to services
explicitly; nothing reads identity from module state.
"""

from datetime import datetime, timedelta, timezone
import logging
import secrets
from typing import Any, Dict, Optional, cast

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt
from jwt import PyJWTError
from sqlalchemy.orm import Session

from .core.config import settings
from .core.enums import UserRole
from .core.exceptions import ForbiddenException, UnauthorizedException
from .database import get_db
from .principal import CallerContext
from .repositories.factory import RepositoryFactory

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Decode and verify an identity-provider JWT."""
    options: Dict[str, Any] = {"require": ["sub", "exp"]}
    kwargs: Dict[str, Any] = {}
    if settings.jwt_audience:
        kwargs["audience"] = settings.jwt_audience
    else:
        options["verify_aud"] = False
    payload = jwt.decode(
        token,
        settings.jwt_secret.get_secret_value(),
        algorithms=[settings.jwt_algorithm],
        options=options,
        **kwargs,
    )
    return cast(Dict[str, Any], payload)


def create_access_token(
    user_id: str,
    *,
    email: Optional[str] = None,
    role: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Mint a token in the identity provider's format. Used by tooling and tests."""
    now = datetime.now(timezone.utc)
    claims: Dict[str, Any] = {
        "sub": user_id,
        "iat": now,
        "exp": now + (expires_delta or timedelta(hours=1)),
    }
    if settings.jwt_audience:
        claims["aud"] = settings.jwt_audience
    if email:
        claims["email"] = email
    if role:
        claims["app_metadata"] = {"role": role}
    return jwt.encode(claims, settings.jwt_secret.get_secret_value(), algorithm=settings.jwt_algorithm)


def _claim_role(payload: Dict[str, Any]) -> Optional[str]:
    for section in ("app_metadata", "user_metadata"):
        value = (payload.get(section) or {}).get("role")
        if isinstance(value, str):
            return value
    return None


def _resolve_role(raw: Optional[str]) -> UserRole:
    try:
        return UserRole(raw) if raw else UserRole.INDIVIDUAL
    except ValueError:
        return UserRole.INDIVIDUAL


def caller_from_token(token: str, db: Session) -> CallerContext:
    try:
        payload = decode_access_token(token)
    except PyJWTError as e:
        logger.warning(f"JWT validation error: {str(e)}")
        raise UnauthorizedException("Could not validate credentials")

    user_id = payload.get("sub")
    if not isinstance(user_id, str) or not user_id:
        raise UnauthorizedException("Could not validate credentials")

    # The profile row is authoritative for role; token claims cover first contact
    profile = RepositoryFactory.create_user_repository(db).get_by_id(user_id)
    role = _resolve_role(profile.role if profile else _claim_role(payload))
    email = payload.get("email") if isinstance(payload.get("email"), str) else None
    return CallerContext(user_id=user_id, role=role, email=email or (profile.email if profile else None))


def get_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> CallerContext:
    if credentials is None or not credentials.credentials:
        raise UnauthorizedException("Not authenticated")
    return caller_from_token(credentials.credentials, db)


def require_admin(caller: CallerContext = Depends(get_caller)) -> CallerContext:
    if not caller.is_admin:
        raise ForbiddenException("Admin access required")
    return caller


def verify_internal_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> None:
    """Guard for scheduler-triggered endpoints; disabled unless INTERNAL_API_TOKEN is set."""
    expected = settings.internal_api_token.get_secret_value()
    if not expected:
        raise ForbiddenException("Internal endpoints are disabled")
    if credentials is None or not secrets.compare_digest(credentials.credentials, expected):
        raise UnauthorizedException("Invalid internal token")
