# finsage/models/conversation.py
"""
Conversation model.

A conversation is the channel between a user and the coaching team. Each
user has exactly one general-support conversation and at most one
conversation per purchased item. Conversations are created lazily on first
access and never deleted.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import relationship
import ulid

from ..core.constants import GENERAL_CONTEXT_KEY
from ..database import Base


class Conversation(Base):
    """
    Attributes:
        id: ULID primary key
        user_id: Owner of the conversation (the client side)
        item_id: Catalog item this conversation is about, None for general support
        item_type: Catalog item type, mirrors item_id
        context_key: item_id, or "general" for the support conversation
        last_message_at: Bumped on every message
    """

    __tablename__ = "conversations"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    item_id = Column(String(26), nullable=True)
    item_type = Column(String(32), nullable=True)
    context_key = Column(String(64), nullable=False, default=GENERAL_CONTEXT_KEY)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    last_message_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("Profile", foreign_keys=[user_id])
    messages = relationship(
        "Message",
        back_populates="conversation",
        order_by="Message.created_at",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "context_key", name="uq_conversations_user_context"),
        Index("idx_conversations_last_message", "last_message_at"),
    )

    @property
    def is_general(self) -> bool:
        return self.item_id is None

    def is_owned_by(self, user_id: str) -> bool:
        return self.user_id == user_id

    def __repr__(self) -> str:
        return f"<Conversation {self.id} user={self.user_id} context={self.context_key}>"
