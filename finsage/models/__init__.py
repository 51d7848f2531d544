# finsage/models/__init__.py
"""SQLAlchemy models. Importing this package registers every table on ``Base.metadata``."""

from .booking import Booking, CoachingSession, SessionBooking
from .catalog import CatalogItem
from .conversation import Conversation
from .credit import CreditBalance, CreditRequest
from .inquiry import Inquiry
from .message import Message
from .payment import Payment, Purchase
from .user import Profile

__all__ = [
    "Booking",
    "CatalogItem",
    "CoachingSession",
    "Conversation",
    "CreditBalance",
    "CreditRequest",
    "Inquiry",
    "Message",
    "Payment",
    "Profile",
    "Purchase",
    "SessionBooking",
]
