# finsage/repositories/conversation_repository.py
"""
Conversation Repository.

Conversations are keyed by (user_id, context_key); the unique constraint on
that pair is what makes lazy creation safe under concurrent first access.
"""

from datetime import datetime
import logging
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.constants import DEFAULT_QUERY_LIMIT, GENERAL_CONTEXT_KEY
from ..models.conversation import Conversation
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


def context_key_for(item_id: Optional[str]) -> str:
    return item_id or GENERAL_CONTEXT_KEY


class ConversationRepository(BaseRepository[Conversation]):
    def __init__(self, db: Session):
        super().__init__(db, Conversation)

    def find_by_context(self, user_id: str, item_id: Optional[str]) -> Optional[Conversation]:
        return self.find_one_by(user_id=user_id, context_key=context_key_for(item_id))

    def get_or_create(
        self,
        user_id: str,
        item_id: Optional[str] = None,
        item_type: Optional[str] = None,
    ) -> Tuple[Conversation, bool]:
        """
        Get an existing conversation or create a new one.

        Returns:
            Tuple of (conversation, created) where created is True if new
        """
        existing = self.find_by_context(user_id, item_id)
        if existing:
            return existing, False

        try:
            conversation = self.create(
                user_id=user_id,
                item_id=item_id,
                item_type=item_type if item_id else None,
                context_key=context_key_for(item_id),
            )
        except IntegrityError:
            # Lost the creation race; the winner's row is now visible
            winner = self.find_by_context(user_id, item_id)
            if winner is None:
                raise
            return winner, False
        return conversation, True

    def find_for_user(self, user_id: str, limit: int = DEFAULT_QUERY_LIMIT) -> List[Conversation]:
        query = (
            self._build_query()
            .filter(Conversation.user_id == user_id)
            .order_by(
                func.coalesce(Conversation.last_message_at, Conversation.created_at).desc()
            )
            .limit(limit)
        )
        return self._execute_query(query)

    def find_recent(self, limit: int = DEFAULT_QUERY_LIMIT) -> List[Conversation]:
        """All conversations, most recently active first. Staff inbox view."""
        query = (
            self._build_query()
            .order_by(
                func.coalesce(Conversation.last_message_at, Conversation.created_at).desc()
            )
            .limit(limit)
        )
        return self._execute_query(query)

    def update_last_message_at(self, conversation_id: str, at: datetime) -> None:
        self._execute_update(
            self._build_query().filter(Conversation.id == conversation_id),
            {Conversation.last_message_at: at},
        )
