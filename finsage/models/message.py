# finsage/models/message.py
"""
Message model for the conversation system.

Body and sender are immutable once stored. Read state is monotonic:
``read_at`` is set once and ``read_by`` only ever grows.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.types import JSON as SAJSON
import ulid

from ..core.enums import MessageType
from ..database import Base


class Message(Base):
    """
    Attributes:
        course_item_id: Course context the message belongs to, None for general support
        client_key: Idempotency key chosen by the sending client
        read_by: List of reader ids
    """

    __tablename__ = "messages"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    conversation_id = Column(
        String(26), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False
    )
    sender_id = Column(String(64), nullable=False)
    sender_role = Column(String(20), nullable=False)
    content = Column(Text, nullable=False)
    message_type = Column(String(20), nullable=False, default=MessageType.TEXT.value)
    course_item_id = Column(String(26), nullable=True)
    client_key = Column(String(64), nullable=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    read_at = Column(DateTime(timezone=True), nullable=True)
    read_by = Column(SAJSON, nullable=False, default=list)

    conversation = relationship("Conversation", back_populates="messages")

    __table_args__ = (
        UniqueConstraint("conversation_id", "client_key", name="uq_messages_client_key"),
        Index("idx_messages_conversation_created", "conversation_id", "created_at"),
    )

    def is_read_by(self, user_id: str) -> bool:
        return user_id in (self.read_by or [])

    def __repr__(self) -> str:
        return f"<Message {self.id} conversation={self.conversation_id}>"
