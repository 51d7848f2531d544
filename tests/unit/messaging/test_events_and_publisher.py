"""
Tests for change-feed events, publishing and the broadcaster-backed feed.
"""

import asyncio
from datetime import datetime
import json
from unittest.mock import AsyncMock, Mock, patch

import pytest

from finsage.core import broadcast as broadcast_module
from finsage.models.message import Message
from finsage.services.messaging.change_feed import BroadcastChangeFeed
from finsage.services.messaging.events import (
    SCHEMA_VERSION,
    build_insert_event,
    build_update_event,
    serialize_message,
)
from finsage.services.messaging.publisher import (
    channel_for,
    publish_message_inserted,
    publish_messages_updated,
)


def _message(**overrides) -> Message:
    values = dict(
        id="01HQZX0000000000000000000A",
        conversation_id="conv-1",
        sender_id="client-1",
        sender_role="client",
        content="Hello",
        message_type="text",
        course_item_id=None,
        client_key="key-1",
        created_at=datetime(2026, 3, 1, 9, 0),
        read_at=None,
        read_by=["admin-1"],
    )
    values.update(overrides)
    return Message(**values)


def test_serialized_timestamps_are_utc():
    payload = serialize_message(_message())

    assert payload["created_at"] == "2026-03-01T09:00:00+00:00"
    assert payload["read_at"] is None
    assert payload["read_by"] == ["admin-1"]
    assert payload["client_key"] == "key-1"


def test_events_are_versioned():
    message = _message()

    insert = build_insert_event(message)
    update = build_update_event(message)

    assert insert["type"] == "insert"
    assert update["type"] == "update"
    assert insert["schema_version"] == SCHEMA_VERSION
    assert insert["payload"]["id"] == message.id


def test_channel_is_per_conversation():
    assert channel_for("conv-1") == "conversation:conv-1"


@pytest.mark.asyncio
async def test_publish_sends_json_to_conversation_channel():
    fake_broadcast = Mock()
    fake_broadcast.publish = AsyncMock()

    with patch("finsage.services.messaging.publisher.get_broadcast", return_value=fake_broadcast):
        published = await publish_message_inserted(_message())

    assert published is True
    kwargs = fake_broadcast.publish.await_args.kwargs
    assert kwargs["channel"] == "conversation:conv-1"
    assert json.loads(kwargs["message"])["type"] == "insert"


@pytest.mark.asyncio
async def test_publish_without_broadcast_is_dropped():
    with patch(
        "finsage.services.messaging.publisher.get_broadcast",
        side_effect=RuntimeError("Broadcast not initialized"),
    ):
        published = await publish_message_inserted(_message())

    assert published is False


@pytest.mark.asyncio
async def test_update_publishing_counts_successes():
    fake_broadcast = Mock()
    fake_broadcast.publish = AsyncMock(side_effect=[None, ConnectionError("redis gone")])

    with patch("finsage.services.messaging.publisher.get_broadcast", return_value=fake_broadcast):
        published = await publish_messages_updated([_message(), _message(id="01HQZX0000000000000000000B")])

    assert published == 1


@pytest.mark.asyncio
async def test_broadcast_feed_delivers_published_events():
    await broadcast_module.connect_broadcast("memory://")
    try:
        feed = BroadcastChangeFeed()
        async with feed.subscribe("conv-1") as events:
            await publish_message_inserted(_message())
            event = await asyncio.wait_for(events.__anext__(), timeout=1.0)
    finally:
        await broadcast_module.disconnect_broadcast()

    assert event["type"] == "insert"
    assert event["payload"]["conversation_id"] == "conv-1"
