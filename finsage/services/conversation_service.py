# finsage/services/conversation_service.py
"""
Conversation Service.

Handles:
- Lazy creation of the general-support and per-course conversations
- Listing conversations (own for clients, all for staff)
- Access control shared with the message service
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.constants import DEFAULT_QUERY_LIMIT
from ..core.exceptions import ForbiddenException, NotFoundException
from ..models.conversation import Conversation
from ..principal import CallerContext
from ..repositories.conversation_repository import ConversationRepository
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


class ConversationService(BaseService):
    def __init__(
        self,
        db: Session,
        conversation_repository: Optional[ConversationRepository] = None,
    ):
        super().__init__(db)
        self.conversation_repository = (
            conversation_repository or RepositoryFactory.create_conversation_repository(db)
        )
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.catalog_repository = RepositoryFactory.create_catalog_repository(db)

    @BaseService.measure_operation("get_or_create_conversation")
    def get_or_create_conversation(
        self,
        caller: CallerContext,
        item_id: Optional[str] = None,
        item_type: Optional[str] = None,
    ) -> Tuple[Conversation, bool]:
        """
        Get the caller's conversation for ``item_id``, or the general one.

        Returns:
            Tuple of (conversation, created) where created is True if new
        """
        if item_id:
            item = self.catalog_repository.get_by_id(item_id)
            if item is None:
                raise NotFoundException("Catalog item not found", code="ITEM_NOT_FOUND")
            item_type = item_type or item.item_type

        with self.transaction():
            self.user_repository.ensure_profile(
                caller.user_id, email=caller.email, role=caller.role.value
            )
            conversation, created = self.conversation_repository.get_or_create(
                user_id=caller.user_id,
                item_id=item_id,
                item_type=item_type,
            )
        if created:
            self.log_operation(
                "conversation_created",
                conversation_id=conversation.id,
                context_key=conversation.context_key,
            )
        return conversation, created

    @BaseService.measure_operation("list_conversations")
    def list_conversations(
        self, caller: CallerContext, limit: int = DEFAULT_QUERY_LIMIT
    ) -> List[Conversation]:
        if caller.is_staff:
            return self.conversation_repository.find_recent(limit=limit)
        return self.conversation_repository.find_for_user(caller.user_id, limit=limit)

    def get_accessible_conversation(self, conversation_id: str, caller: CallerContext) -> Conversation:
        """
        Load a conversation the caller may read and write.

        Raises:
            NotFoundException: the conversation does not exist
            ForbiddenException: caller is neither the owner nor staff
        """
        conversation = self.conversation_repository.get_by_id(conversation_id)
        if conversation is None:
            raise NotFoundException("Conversation not found", code="CONVERSATION_NOT_FOUND")
        if not (conversation.is_owned_by(caller.user_id) or caller.is_staff):
            self.logger.warning(
                f"User {caller.user_id} denied access to conversation {conversation_id}"
            )
            raise ForbiddenException("You do not have access to this conversation")
        return conversation
