# finsage/routes/v1/conversations.py
"""
Conversations routes - API v1

Endpoints:
    GET /                               -> List conversations (own, or all for staff)
    POST /                              -> Get or create a conversation
    GET /{conversation_id}/messages     -> Load messages (marks them read)
    POST /{conversation_id}/messages    -> Send a message
    POST /{conversation_id}/read        -> Mark messages read
    GET /{conversation_id}/stream       -> Change feed as Server-Sent Events

Change-feed events are published here, after the service has committed.
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from sse_starlette.sse import EventSourceResponse

from ...auth import get_caller
from ...core.constants import DEFAULT_QUERY_LIMIT, MAX_QUERY_LIMIT
from ...database import get_db
from ...principal import CallerContext
from ...schemas.conversation import (
    ConversationCreateRequest,
    ConversationEnvelope,
    ConversationListResponse,
    ConversationResponse,
    MarkReadRequest,
    MarkReadResponse,
    MessageListResponse,
    MessageResponse,
    SendMessageRequest,
    SendMessageResponse,
)
from ...services.conversation_service import ConversationService
from ...services.message_service import MessageService
from ...services.messaging import (
    publish_message_inserted,
    publish_messages_updated,
    serialize_message,
)
from ...services.messaging.sse_stream import create_conversation_stream

logger = logging.getLogger(__name__)

router = APIRouter(tags=["conversations-v1"])


def get_conversation_service(db: Session = Depends(get_db)) -> ConversationService:
    return ConversationService(db)


def get_message_service(db: Session = Depends(get_db)) -> MessageService:
    return MessageService(db)


@router.get("", response_model=ConversationListResponse)
async def list_conversations(
    limit: int = Query(DEFAULT_QUERY_LIMIT, ge=1, le=MAX_QUERY_LIMIT),
    caller: CallerContext = Depends(get_caller),
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationListResponse:
    conversations = await asyncio.to_thread(service.list_conversations, caller, limit)
    return ConversationListResponse(
        conversations=[ConversationResponse.model_validate(c) for c in conversations]
    )


@router.post("", response_model=ConversationEnvelope)
async def get_or_create_conversation(
    request: ConversationCreateRequest,
    caller: CallerContext = Depends(get_caller),
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationEnvelope:
    conversation, created = await asyncio.to_thread(
        service.get_or_create_conversation, caller, request.item_id, request.item_type
    )
    return ConversationEnvelope(
        conversation=ConversationResponse.model_validate(conversation), created=created
    )


@router.get("/{conversation_id}/messages", response_model=MessageListResponse)
async def load_messages(
    conversation_id: str,
    course_item_id: Optional[str] = Query(None),
    caller: CallerContext = Depends(get_caller),
    service: MessageService = Depends(get_message_service),
) -> MessageListResponse:
    page = await asyncio.to_thread(service.load_messages, conversation_id, caller, course_item_id)
    if page.newly_read:
        await publish_messages_updated(page.newly_read)
    return MessageListResponse(
        conversation_id=conversation_id,
        messages=[MessageResponse(**serialize_message(m)) for m in page.messages],
    )


@router.post("/{conversation_id}/messages", response_model=SendMessageResponse)
async def send_message(
    conversation_id: str,
    request: SendMessageRequest,
    caller: CallerContext = Depends(get_caller),
    service: MessageService = Depends(get_message_service),
) -> SendMessageResponse:
    result = await asyncio.to_thread(
        service.send_message,
        conversation_id,
        caller,
        request.content,
        request.client_key,
        request.message_type,
    )
    if result.created:
        await publish_message_inserted(result.message)
    return SendMessageResponse(
        message=MessageResponse(**serialize_message(result.message)),
        created=result.created,
    )


@router.post("/{conversation_id}/read", response_model=MarkReadResponse)
async def mark_messages_read(
    conversation_id: str,
    request: MarkReadRequest,
    caller: CallerContext = Depends(get_caller),
    service: MessageService = Depends(get_message_service),
) -> MarkReadResponse:
    changed = await asyncio.to_thread(
        service.mark_messages_read, conversation_id, request.message_ids, caller
    )
    if changed:
        await publish_messages_updated(changed)
    return MarkReadResponse(messages=[MessageResponse(**serialize_message(m)) for m in changed])


@router.get("/{conversation_id}/stream")
async def stream_conversation(
    conversation_id: str,
    caller: CallerContext = Depends(get_caller),
    service: ConversationService = Depends(get_conversation_service),
) -> EventSourceResponse:
    # Access is checked before streaming so no DB session outlives this call
    await asyncio.to_thread(service.get_accessible_conversation, conversation_id, caller)
    return EventSourceResponse(
        create_conversation_stream(conversation_id, caller.user_id),
        headers={"X-Accel-Buffering": "no"},
    )
