# finsage/services/messaging/publisher.py
"""
Publishing of conversation change events.

Publishing is fire-and-forget: the message is already committed when these
functions run, so a feed outage is logged and clients catch up on their
next load.
"""

import json
import logging
from typing import Any, Dict, Iterable

from ...core.broadcast import get_broadcast
from ...core.constants import CONVERSATION_CHANNEL_PREFIX
from ...models.message import Message
from .events import build_insert_event, build_update_event

logger = logging.getLogger(__name__)


def channel_for(conversation_id: str) -> str:
    return f"{CONVERSATION_CHANNEL_PREFIX}:{conversation_id}"


async def publish_event(conversation_id: str, event: Dict[str, Any]) -> bool:
    channel = channel_for(conversation_id)
    try:
        broadcast = get_broadcast()
        await broadcast.publish(channel=channel, message=json.dumps(event))
    except RuntimeError as e:
        # Broadcast not initialized
        logger.warning(f"[PUBLISHER] Change feed unavailable, dropped {event['type']} on {channel}: {e}")
        return False
    except Exception as e:
        logger.error(f"[PUBLISHER] Failed to publish {event['type']} to {channel}: {e}")
        return False
    logger.debug(f"[PUBLISHER] Published {event['type']} to {channel}")
    return True


async def publish_message_inserted(message: Message) -> bool:
    return await publish_event(message.conversation_id, build_insert_event(message))


async def publish_messages_updated(messages: Iterable[Message]) -> int:
    """Publish one update event per message; returns how many went out."""
    published = 0
    for message in messages:
        if await publish_event(message.conversation_id, build_update_event(message)):
            published += 1
    return published
