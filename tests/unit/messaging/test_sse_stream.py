"""
Tests for the conversation SSE stream.
"""

import asyncio
from contextlib import asynccontextmanager
import json

import pytest

from finsage.services.messaging.sse_stream import create_conversation_stream, format_feed_event


class ListFeed:
    def __init__(self, events):
        self.events = events

    @asynccontextmanager
    async def subscribe(self, conversation_id):
        async def events():
            for event in self.events:
                yield event

        yield events()


class SilentFeed:
    @asynccontextmanager
    async def subscribe(self, conversation_id):
        async def events():
            await asyncio.Event().wait()
            yield {}

        yield events()


class UnavailableFeed:
    @asynccontextmanager
    async def subscribe(self, conversation_id):
        raise RuntimeError("Broadcast not initialized")
        yield


async def _collect(stream, limit=10):
    items = []
    async for item in stream:
        items.append(item)
        if len(items) >= limit:
            break
    await stream.aclose()
    return items


def test_insert_events_carry_message_id():
    formatted = format_feed_event({"type": "insert", "payload": {"id": "m1", "content": "Hi"}})

    assert formatted["event"] == "insert"
    assert formatted["id"] == "m1"
    assert json.loads(formatted["data"]) == {"id": "m1", "content": "Hi"}


def test_update_events_have_no_id():
    formatted = format_feed_event({"type": "update", "payload": {"id": "m1"}})

    assert "id" not in formatted


@pytest.mark.asyncio
async def test_stream_starts_with_connected_then_relays_feed():
    feed = ListFeed(
        [
            {"type": "insert", "payload": {"id": "m1"}},
            {"type": "update", "payload": {"id": "m1", "read_by": ["admin-1"]}},
        ]
    )

    items = await _collect(create_conversation_stream("conv-1", "client-1", feed=feed))

    assert [item["event"] for item in items] == ["connected", "insert", "update"]
    connected = json.loads(items[0]["data"])
    assert connected["conversation_id"] == "conv-1"
    assert connected["status"] == "connected"
    assert items[1]["id"] == "m1"


@pytest.mark.asyncio
async def test_idle_stream_sends_heartbeats():
    stream = create_conversation_stream("conv-1", "client-1", feed=SilentFeed(), heartbeat_interval=0.01)

    items = await _collect(stream, limit=3)

    assert [item["event"] for item in items] == ["connected", "heartbeat", "heartbeat"]
    assert json.loads(items[1]["data"])["type"] == "heartbeat"


@pytest.mark.asyncio
async def test_unavailable_feed_reports_error():
    items = await _collect(create_conversation_stream("conv-1", "client-1", feed=UnavailableFeed()))

    assert [item["event"] for item in items] == ["connected", "error"]
    assert json.loads(items[1]["data"])["error"] == "service_unavailable"
