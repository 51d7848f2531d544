# finsage/repositories/factory.py
"""
Repository Factory for the FinSage platform.

Centralizes repository creation so services never construct data access
objects directly.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from .base_repository import BaseRepository

if TYPE_CHECKING:
    from .booking_repository import BookingRepository, SessionBookingRepository
    from .catalog_repository import CatalogRepository
    from .conversation_repository import ConversationRepository
    from .credit_repository import CreditBalanceRepository, CreditRequestRepository
    from .message_repository import MessageRepository
    from .payment_repository import PaymentRepository, PurchaseRepository
    from .user_repository import UserRepository


class RepositoryFactory:
    @staticmethod
    def create_base_repository(db: Session, model) -> BaseRepository:
        """Create a generic base repository for any model."""
        return BaseRepository(db, model)

    @staticmethod
    def create_user_repository(db: Session) -> "UserRepository":
        from .user_repository import UserRepository

        return UserRepository(db)

    @staticmethod
    def create_catalog_repository(db: Session) -> "CatalogRepository":
        from .catalog_repository import CatalogRepository

        return CatalogRepository(db)

    @staticmethod
    def create_conversation_repository(db: Session) -> "ConversationRepository":
        from .conversation_repository import ConversationRepository

        return ConversationRepository(db)

    @staticmethod
    def create_message_repository(db: Session) -> "MessageRepository":
        from .message_repository import MessageRepository

        return MessageRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_session_booking_repository(db: Session) -> "SessionBookingRepository":
        from .booking_repository import SessionBookingRepository

        return SessionBookingRepository(db)

    @staticmethod
    def create_payment_repository(db: Session) -> "PaymentRepository":
        from .payment_repository import PaymentRepository

        return PaymentRepository(db)

    @staticmethod
    def create_purchase_repository(db: Session) -> "PurchaseRepository":
        from .payment_repository import PurchaseRepository

        return PurchaseRepository(db)

    @staticmethod
    def create_credit_request_repository(db: Session) -> "CreditRequestRepository":
        from .credit_repository import CreditRequestRepository

        return CreditRequestRepository(db)

    @staticmethod
    def create_credit_balance_repository(db: Session) -> "CreditBalanceRepository":
        from .credit_repository import CreditBalanceRepository

        return CreditBalanceRepository(db)
