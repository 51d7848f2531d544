# finsage/core/broadcast.py
"""
Shared broadcast manager for the conversation change feed.

One ``Broadcast`` instance per worker process holds a single Redis pub/sub
connection; every SSE subscriber and every publisher in the process goes
through it.
"""
import logging
from typing import Optional

from broadcaster import Broadcast

from .config import settings

logger = logging.getLogger(__name__)

_broadcast: Optional[Broadcast] = None


def get_broadcast() -> Broadcast:
    """
    Get the shared broadcast instance.

    Raises:
        RuntimeError: If broadcast is not initialized (call connect_broadcast first)
    """
    if _broadcast is None:
        raise RuntimeError("Broadcast not initialized. Call connect_broadcast() during startup.")
    return _broadcast


def is_broadcast_initialized() -> bool:
    return _broadcast is not None


async def connect_broadcast(url: Optional[str] = None) -> None:
    """Connect the process-wide broadcaster. Called from the app lifespan."""
    global _broadcast

    broadcast_url = url or settings.redis_url or "redis://localhost:6379"
    _broadcast = Broadcast(broadcast_url)
    await _broadcast.connect()
    logger.info("[BROADCAST] Connected change feed backend: %s", broadcast_url.split("@")[-1])


async def disconnect_broadcast() -> None:
    global _broadcast

    if _broadcast is not None:
        await _broadcast.disconnect()
        _broadcast = None
        logger.info("[BROADCAST] Disconnected change feed backend")
