# finsage/repositories/message_repository.py
"""
Message Repository for the conversation system.

Read receipts are monotonic: ``read_at`` is written once and ``read_by``
only ever gains entries.
"""

from datetime import datetime
import logging
from typing import Iterable, List, Optional

from sqlalchemy import and_
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from ..core.constants import LEGACY_COURSE_TAG_PREFIX
from ..core.exceptions import RepositoryException
from ..models.message import Message
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class MessageRepository(BaseRepository[Message]):
    def __init__(self, db: Session):
        super().__init__(db, Message)

    def find_by_conversation(self, conversation_id: str) -> List[Message]:
        """All messages in a conversation, oldest first; ties broken by id."""
        query = (
            self._build_query()
            .filter(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.asc(), Message.id.asc())
        )
        return self._execute_query(query)

    def find_by_client_key(self, conversation_id: str, client_key: str) -> Optional[Message]:
        return self.find_one_by(conversation_id=conversation_id, client_key=client_key)

    def find_by_ids(self, conversation_id: str, message_ids: Iterable[str]) -> List[Message]:
        ids = list(message_ids)
        if not ids:
            return []
        query = self._build_query().filter(
            and_(Message.conversation_id == conversation_id, Message.id.in_(ids))
        )
        return self._execute_query(query)

    def mark_read(self, messages: Iterable[Message], reader_id: str, at: datetime) -> List[Message]:
        """
        Record ``reader_id`` as having read each message it did not send.

        Returns the messages whose read state actually changed.
        """
        changed: List[Message] = []
        try:
            for message in messages:
                if message.sender_id == reader_id:
                    continue
                read_by = list(message.read_by or [])
                if reader_id in read_by and message.read_at is not None:
                    continue
                if reader_id not in read_by:
                    read_by.append(reader_id)
                    message.read_by = read_by
                    flag_modified(message, "read_by")
                if message.read_at is None:
                    message.read_at = at
                changed.append(message)
            if changed:
                self.db.flush()
        except Exception as e:
            self.logger.error(f"Error marking messages as read: {str(e)}")
            raise RepositoryException(f"Failed to mark messages as read: {str(e)}")

        if changed:
            self.logger.info(f"Marked {len(changed)} messages as read for user {reader_id}")
        return changed

    def find_legacy_tagged(self, limit: int = 500) -> List[Message]:
        """Messages still carrying the course title in the body instead of course_item_id."""
        query = (
            self._build_query()
            .filter(
                Message.course_item_id.is_(None),
                Message.content.like(f"{LEGACY_COURSE_TAG_PREFIX}%"),
            )
            .order_by(Message.created_at.asc())
            .limit(limit)
        )
        return self._execute_query(query)
