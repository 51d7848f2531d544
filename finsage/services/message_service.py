# finsage/services/message_service.py
"""
Message Service for conversations.

Handles:
- Loading a conversation (with read-marking and course-context filtering)
- Sending messages idempotently on the client key
- Read receipts

Routes publish change-feed events from the returned results after the
transaction has committed.
"""

from dataclasses import dataclass, field
import logging
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.constants import MAX_MESSAGE_LENGTH
from ..core.enums import MessageType
from ..core.exceptions import ValidationException
from ..core.timezone_utils import utc_now
from ..models.conversation import Conversation
from ..models.message import Message
from ..principal import CallerContext
from ..repositories.factory import RepositoryFactory
from ..repositories.message_repository import MessageRepository
from .base import BaseService
from .conversation_service import ConversationService
from .messaging.course_context import is_visible_in_context

logger = logging.getLogger(__name__)


@dataclass
class MessagePage:
    """Messages visible to the caller plus the ones this load marked read."""

    conversation: Conversation
    messages: List[Message]
    newly_read: List[Message] = field(default_factory=list)


@dataclass
class SendResult:
    message: Message
    created: bool


class MessageService(BaseService):
    def __init__(
        self,
        db: Session,
        conversation_service: Optional[ConversationService] = None,
        message_repository: Optional[MessageRepository] = None,
    ):
        super().__init__(db)
        self.conversation_service = conversation_service or ConversationService(db)
        self.repository = message_repository or RepositoryFactory.create_message_repository(db)
        self.conversation_repository = RepositoryFactory.create_conversation_repository(db)

    @BaseService.measure_operation("load_messages")
    def load_messages(
        self,
        conversation_id: str,
        caller: CallerContext,
        course_item_id: Optional[str] = None,
    ) -> MessagePage:
        """
        All messages in the conversation, oldest first.

        Marks every message the caller did not send as read by the caller.
        Clients only see messages visible in the conversation's course
        context (or ``course_item_id`` when given).
        """
        conversation = self.conversation_service.get_accessible_conversation(conversation_id, caller)
        messages = self.repository.find_by_conversation(conversation_id)

        if caller.is_client:
            context_item_id = course_item_id or conversation.item_id
            messages = [
                message
                for message in messages
                if is_visible_in_context(message.course_item_id, message.sender_role, context_item_id)
            ]

        with self.transaction():
            newly_read = self.repository.mark_read(messages, caller.user_id, utc_now())

        return MessagePage(conversation=conversation, messages=messages, newly_read=newly_read)

    @BaseService.measure_operation("send_message")
    def send_message(
        self,
        conversation_id: str,
        caller: CallerContext,
        content: str,
        client_key: Optional[str] = None,
        message_type: str = MessageType.TEXT.value,
    ) -> SendResult:
        """
        Store a message and bump the conversation's activity time.

        A repeated ``client_key`` returns the message stored by the first
        attempt with ``created=False``.
        """
        body, message_type = self._validate_send(content, message_type)
        conversation = self.conversation_service.get_accessible_conversation(conversation_id, caller)

        if client_key:
            existing = self.repository.find_by_client_key(conversation_id, client_key)
            if existing is not None:
                self.logger.info(f"Duplicate send for client key {client_key}; returning stored message")
                return SendResult(message=existing, created=False)

        now = utc_now()
        with self.transaction():
            try:
                message = self.repository.create(
                    conversation_id=conversation_id,
                    sender_id=caller.user_id,
                    sender_role=caller.role.value,
                    content=body,
                    message_type=message_type,
                    course_item_id=conversation.item_id,
                    client_key=client_key,
                    created_at=now,
                    read_by=[],
                )
            except IntegrityError:
                # A concurrent retry with the same client key committed first
                winner = self.repository.find_by_client_key(conversation_id, client_key or "")
                if winner is None:
                    raise
                return SendResult(message=winner, created=False)
            self.conversation_repository.update_last_message_at(conversation_id, now)

        self.log_operation("message_sent", conversation_id=conversation_id, message_id=message.id)
        return SendResult(message=message, created=True)

    @BaseService.measure_operation("mark_messages_read")
    def mark_messages_read(
        self,
        conversation_id: str,
        message_ids: List[str],
        caller: CallerContext,
    ) -> List[Message]:
        """Mark the given messages read by the caller. Returns only those that changed."""
        self.conversation_service.get_accessible_conversation(conversation_id, caller)
        messages = self.repository.find_by_ids(conversation_id, message_ids)
        with self.transaction():
            return self.repository.mark_read(messages, caller.user_id, utc_now())

    def _validate_send(self, content: str, message_type: str) -> Tuple[str, str]:
        body = (content or "").strip()
        if not body:
            raise ValidationException("Message content cannot be empty", code="EMPTY_MESSAGE")
        if len(body) > MAX_MESSAGE_LENGTH:
            raise ValidationException(
                f"Message content cannot exceed {MAX_MESSAGE_LENGTH} characters",
                code="MESSAGE_TOO_LONG",
            )
        try:
            return body, MessageType(message_type).value
        except ValueError:
            raise ValidationException(f"Unsupported message type: {message_type}")

