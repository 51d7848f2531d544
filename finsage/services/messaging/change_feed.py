# finsage/services/messaging/change_feed.py
"""Subscription side of the conversation change feed."""

from contextlib import asynccontextmanager
import json
import logging
from typing import Any, AsyncContextManager, AsyncIterator, Dict, Protocol

from ...core.broadcast import get_broadcast
from .publisher import channel_for

logger = logging.getLogger(__name__)


class ChangeFeed(Protocol):
    """Source of insert/update events for one conversation."""

    def subscribe(self, conversation_id: str) -> AsyncContextManager[AsyncIterator[Dict[str, Any]]]:
        ...


class BroadcastChangeFeed:
    """Change feed backed by the process-wide ``broadcaster`` connection."""

    @asynccontextmanager
    async def subscribe(self, conversation_id: str) -> AsyncIterator[AsyncIterator[Dict[str, Any]]]:
        channel = channel_for(conversation_id)
        async with get_broadcast().subscribe(channel=channel) as subscriber:
            logger.info(f"[CHANGE-FEED] Subscribed to {channel}")

            async def events() -> AsyncIterator[Dict[str, Any]]:
                async for raw in subscriber:
                    try:
                        yield json.loads(raw.message)
                    except json.JSONDecodeError as e:
                        logger.warning(f"[CHANGE-FEED] Invalid JSON on {channel}: {e}")

            yield events()
        logger.info(f"[CHANGE-FEED] Unsubscribed from {channel}")
