# finsage/services/messaging/__init__.py
"""
Real-time conversation messaging.

Server side: event builders, the broadcaster publisher and the SSE stream.
Client side: ``ConversationSession`` with its gateway and change-feed seams.
"""

from .change_feed import BroadcastChangeFeed, ChangeFeed
from .conversation_session import (
    Confirmed,
    ConversationSession,
    MessageSendError,
    Pending,
    SessionMessage,
)
from .course_context import backfill_course_context, is_visible_in_context, parse_course_tag
from .events import EventType, build_insert_event, build_update_event, serialize_message
from .http_gateway import HttpMessageGateway, MessageGateway, MessageGatewayError
from .publisher import channel_for, publish_message_inserted, publish_messages_updated

__all__ = [
    "BroadcastChangeFeed",
    "ChangeFeed",
    "Confirmed",
    "ConversationSession",
    "EventType",
    "HttpMessageGateway",
    "MessageGateway",
    "MessageGatewayError",
    "MessageSendError",
    "Pending",
    "SessionMessage",
    "backfill_course_context",
    "build_insert_event",
    "build_update_event",
    "channel_for",
    "is_visible_in_context",
    "parse_course_tag",
    "publish_message_inserted",
    "publish_messages_updated",
    "serialize_message",
]
