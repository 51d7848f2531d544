# finsage/services/messaging/events.py
"""
Change-feed event definitions and builders.

All events follow this structure:
{
    "type": str,           # "insert" or "update"
    "schema_version": int, # Schema version (currently 1)
    "timestamp": str,      # ISO 8601 timestamp
    "payload": dict        # The serialized message row
}
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from ...core.timezone_utils import ensure_utc
from ...models.message import Message


class EventType(str, Enum):
    INSERT = "insert"
    UPDATE = "update"


# Increment when the payload structure changes
SCHEMA_VERSION = 1


def _iso(value: Optional[datetime]) -> Optional[str]:
    return ensure_utc(value).isoformat() if value else None


def serialize_message(message: Message) -> Dict[str, Any]:
    """Wire shape of a message, shared by the REST API and the change feed."""
    return {
        "id": message.id,
        "conversation_id": message.conversation_id,
        "sender_id": message.sender_id,
        "sender_role": message.sender_role,
        "content": message.content,
        "message_type": message.message_type,
        "course_item_id": message.course_item_id,
        "client_key": message.client_key,
        "created_at": _iso(message.created_at),
        "read_at": _iso(message.read_at),
        "read_by": list(message.read_by or []),
    }


def build_event(event_type: EventType, payload: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": event_type.value,
        "schema_version": SCHEMA_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "payload": payload,
    }


def build_insert_event(message: Message) -> Dict[str, Any]:
    return build_event(EventType.INSERT, serialize_message(message))


def build_update_event(message: Message) -> Dict[str, Any]:
    return build_event(EventType.UPDATE, serialize_message(message))
