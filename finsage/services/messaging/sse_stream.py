# finsage/services/messaging/sse_stream.py
"""
Server-Sent Events stream for one conversation.

The stream is DB-free: access checks happen before it starts so no session
is held open for the lifetime of the connection.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import json
import logging
from typing import Any, AsyncGenerator, Dict, Optional

from ...core.constants import SSE_HEARTBEAT_INTERVAL
from .change_feed import BroadcastChangeFeed, ChangeFeed

logger = logging.getLogger(__name__)


def format_feed_event(event: Dict[str, Any]) -> Dict[str, str]:
    """Insert events carry the message id as the SSE ``id`` field; updates do not."""
    event_type = event.get("type", "unknown")
    payload = event.get("payload", {})
    result: Dict[str, str] = {"event": event_type, "data": json.dumps(payload)}
    if event_type == "insert" and payload.get("id"):
        result["id"] = payload["id"]
    return result


def _heartbeat() -> Dict[str, str]:
    return {
        "event": "heartbeat",
        "data": json.dumps(
            {"type": "heartbeat", "timestamp": datetime.now(timezone.utc).isoformat()}
        ),
    }


async def create_conversation_stream(
    conversation_id: str,
    user_id: str,
    feed: Optional[ChangeFeed] = None,
    heartbeat_interval: float = SSE_HEARTBEAT_INTERVAL,
) -> AsyncGenerator[Dict[str, str], None]:
    """
    Yield SSE event dicts for ``conversation_id`` until the client disconnects.

    Yields:
        Dicts with keys event, data and (for inserts) id
    """
    feed = feed or BroadcastChangeFeed()

    yield {
        "event": "connected",
        "data": json.dumps(
            {
                "conversation_id": conversation_id,
                "user_id": user_id,
                "status": "connected",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        ),
    }

    try:
        async with feed.subscribe(conversation_id) as events:
            # A queue decouples the subscriber from heartbeat timing; wait_for on
            # __anext__ would cancel the subscriber mid-read.
            queue: asyncio.Queue[tuple[str, Any]] = asyncio.Queue()

            async def reader_task() -> None:
                try:
                    async for event in events:
                        await queue.put(("message", event))
                except Exception as e:
                    await queue.put(("error", e))
                finally:
                    await queue.put(("done", None))

            reader = asyncio.create_task(reader_task())
            try:
                while True:
                    try:
                        kind, data = await asyncio.wait_for(queue.get(), timeout=heartbeat_interval)
                    except asyncio.TimeoutError:
                        yield _heartbeat()
                        continue

                    if kind == "message":
                        yield format_feed_event(data)
                    elif kind == "error":
                        logger.error(f"[SSE-STREAM] Reader error on conversation {conversation_id}: {data}")
                        break
                    else:
                        logger.info(f"[SSE-STREAM] Subscription ended for conversation {conversation_id}")
                        break
            finally:
                reader.cancel()
                try:
                    await reader
                except asyncio.CancelledError:
                    pass

    except asyncio.CancelledError:
        logger.info(f"[SSE-STREAM] Stream cancelled for user {user_id}")
        raise
    except RuntimeError as e:
        # Broadcast not initialized
        logger.error(f"[SSE-STREAM] Change feed unavailable for user {user_id}: {e}")
        yield {
            "event": "error",
            "data": json.dumps(
                {
                    "error": "service_unavailable",
                    "message": "Real-time service temporarily unavailable",
                }
            ),
        }
