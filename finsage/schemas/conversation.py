# finsage/schemas/conversation.py
"""
Pydantic schemas for the conversation API.

Message payloads share their shape with change-feed events.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..core.constants import MAX_MESSAGE_LENGTH
from ._strict_base import StrictRequestModel


class ConversationCreateRequest(StrictRequestModel):
    item_id: Optional[str] = Field(None, description="Catalog item; omit for general support")
    item_type: Optional[str] = None


class ConversationResponse(BaseModel):
    id: str
    user_id: str
    item_id: Optional[str] = None
    item_type: Optional[str] = None
    context_key: str
    created_at: datetime
    last_message_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ConversationEnvelope(BaseModel):
    success: bool = True
    conversation: ConversationResponse
    created: bool = False


class ConversationListResponse(BaseModel):
    success: bool = True
    conversations: List[ConversationResponse]


class MessageResponse(BaseModel):
    id: str
    conversation_id: str
    sender_id: str
    sender_role: str
    content: str
    message_type: str
    course_item_id: Optional[str] = None
    client_key: Optional[str] = None
    created_at: Optional[str] = None
    read_at: Optional[str] = None
    read_by: List[str] = Field(default_factory=list)


class MessageListResponse(BaseModel):
    success: bool = True
    conversation_id: str
    messages: List[MessageResponse]


class SendMessageRequest(StrictRequestModel):
    content: str = Field(..., max_length=MAX_MESSAGE_LENGTH)
    client_key: Optional[str] = Field(None, max_length=64, description="Client idempotency key")
    message_type: str = "text"


class SendMessageResponse(BaseModel):
    success: bool = True
    message: MessageResponse
    created: bool


class MarkReadRequest(StrictRequestModel):
    message_ids: List[str] = Field(..., min_length=1)


class MarkReadResponse(BaseModel):
    success: bool = True
    messages: List[MessageResponse]
