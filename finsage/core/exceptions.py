# finsage/core/exceptions.py
"""
Domain-specific exceptions for the FinSage platform.

Services raise these; the API layer converts them to HTTP responses through
``to_http_exception`` (see the handler registered in ``finsage.main``).
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when input fails business validation, before any mutation happens."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found (or not visible to the caller)."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = 422


class UnauthorizedException(DomainException):
    """Raised when the caller is not authenticated."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenException(DomainException):
    """Raised when the caller lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details,
            },
        )


class ExternalServiceException(ServiceException):
    """Raised when a collaborator (payment gateway, email provider) fails."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(
        self,
        message: str,
        *,
        service: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            code="EXTERNAL_SERVICE_FAILURE",
            details={"service": service, **(details or {})},
        )
        self.service = service


class SignatureMismatchException(ValidationException):
    """Raised when a gateway payment signature does not verify."""

    def __init__(self, message: str = "Invalid payment signature") -> None:
        super().__init__(message=message, code="SIGNATURE_MISMATCH")


class AlreadyProcessedException(DomainException):
    """
    Raised when a conditional state transition finds the row already moved on.

    Services usually catch this and report an idempotent success.
    """

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message=message, code="ALREADY_PROCESSED", details=details)


class InsufficientCreditsException(ValidationException):
    """Raised when a credit balance cannot cover a session booking."""

    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            message="Insufficient credits for this session",
            code="INSUFFICIENT_CREDITS",
            details={"required": required, "available": available},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    Used when data access operations fail, such as database connection
    issues, query failures, or constraint violations.
    """
