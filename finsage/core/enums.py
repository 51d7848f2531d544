"""Role and status enumerations shared by models, services and schemas."""

from enum import Enum


class UserRole(str, Enum):
    CLIENT = "client"
    ADMIN = "admin"
    COACH = "coach"
    INDIVIDUAL = "individual"

    @property
    def is_staff(self) -> bool:
        return self in (UserRole.ADMIN, UserRole.COACH)


class ItemType(str, Enum):
    ONE_ON_ONE = "one_on_one"
    SHORT_PROGRAM = "short_program"
    FINANCIAL_TOOL = "financial_tool"


class BookingStatus(str, Enum):
    PAYMENT_PENDING = "payment_pending"
    BOOKED = "booked"
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class SessionBookingStatus(str, Enum):
    BOOKED = "booked"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    REFUNDED = "refunded"
    FAILED = "failed"


class PurchaseStatus(str, Enum):
    PURCHASED = "purchased"
    CANCELLED = "cancelled"


class CreditServiceType(str, Enum):
    COACHING = "coaching"
    SHORT_SESSION = "short_session"

    @property
    def label(self) -> str:
        return "Coaching" if self is CreditServiceType.COACHING else "Short Session"


class CreditRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class MessageType(str, Enum):
    TEXT = "text"
    ATTACHMENT = "attachment"
