# finsage/services/messaging/conversation_session.py
"""
Client-side conversation state with optimistic sends.

A ``ConversationSession`` keeps the ordered message list one participant
sees. Sends appear immediately as pending entries keyed by the client
idempotency key; the stored row replaces the pending entry when either the
insert response or the change-feed insert arrives, whichever is first.
Entries are matched by key or id, never by position.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
import logging
from typing import Any, Dict, List, Optional, Set, Union

from ...core.config import settings
from ...core.exceptions import ValidationException
from ...core.ulid_helper import generate_ulid
from .change_feed import ChangeFeed
from .course_context import is_visible_in_context
from .events import EventType
from .http_gateway import MessageGateway

logger = logging.getLogger(__name__)


class MessageSendError(RuntimeError):
    """The server did not accept a send. The optimistic entry was removed; retry is safe."""

    def __init__(self, message: str, client_key: str) -> None:
        super().__init__(message)
        self.client_key = client_key


@dataclass(frozen=True)
class Pending:
    local_id: str


@dataclass(frozen=True)
class Confirmed:
    message_id: str


MessageIdentity = Union[Pending, Confirmed]


@dataclass
class SessionMessage:
    identity: MessageIdentity
    content: str
    sender_id: str
    created_at: datetime
    sender_role: Optional[str] = None
    course_item_id: Optional[str] = None
    client_key: Optional[str] = None
    read_at: Optional[str] = None
    read_by: List[str] = field(default_factory=list)

    @property
    def is_pending(self) -> bool:
        return isinstance(self.identity, Pending)

    @property
    def message_id(self) -> Optional[str]:
        return self.identity.message_id if isinstance(self.identity, Confirmed) else None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "SessionMessage":
        created = record.get("created_at")
        return cls(
            identity=Confirmed(record["id"]),
            content=record.get("content", ""),
            sender_id=record.get("sender_id", ""),
            created_at=datetime.fromisoformat(created) if created else datetime.now(timezone.utc),
            sender_role=record.get("sender_role"),
            course_item_id=record.get("course_item_id"),
            client_key=record.get("client_key"),
            read_at=record.get("read_at"),
            read_by=list(record.get("read_by") or []),
        )


class ConversationSession:
    def __init__(
        self,
        *,
        gateway: MessageGateway,
        feed: ChangeFeed,
        conversation_id: str,
        user_id: str,
        course_item_id: Optional[str] = None,
        apply_context_filter: bool = True,
        read_delay_seconds: Optional[float] = None,
    ) -> None:
        self.gateway = gateway
        self.feed = feed
        self.conversation_id = conversation_id
        self.user_id = user_id
        self.course_item_id = course_item_id
        self.apply_context_filter = apply_context_filter
        self.read_delay_seconds = (
            settings.read_receipt_delay_seconds if read_delay_seconds is None else read_delay_seconds
        )
        self._messages: List[SessionMessage] = []
        self._known_ids: Set[str] = set()
        self._unread_ids: List[str] = []
        self._read_task: Optional[asyncio.Task[None]] = None
        self._feed_task: Optional[asyncio.Task[None]] = None

    @property
    def messages(self) -> List[SessionMessage]:
        return list(self._messages)

    async def load(self) -> List[SessionMessage]:
        """
        Replace local state with the server's ordered list.

        Sends still in flight stay at the end unless the server already
        returned the stored row for their key.
        """
        records = await self.gateway.load_messages(self.conversation_id, self.course_item_id)
        stored_keys = {record["client_key"] for record in records if record.get("client_key")}
        in_flight = [
            message
            for message in self._messages
            if message.is_pending and message.client_key not in stored_keys
        ]
        self._messages = [SessionMessage.from_record(record) for record in records] + in_flight
        self._known_ids = {record["id"] for record in records}
        return self.messages

    async def send(self, content: str) -> SessionMessage:
        """
        Optimistically append ``content`` and confirm it with the server.

        Raises:
            ValidationException: content is empty or whitespace
            MessageSendError: the server rejected or never received the insert
        """
        body = (content or "").strip()
        if not body:
            raise ValidationException("Message content cannot be empty")

        client_key = generate_ulid()
        self._messages.append(
            SessionMessage(
                identity=Pending(client_key),
                content=body,
                sender_id=self.user_id,
                created_at=datetime.now(timezone.utc),
                course_item_id=self.course_item_id,
                client_key=client_key,
            )
        )

        try:
            record = await self.gateway.insert_message(self.conversation_id, body, client_key)
        except Exception as exc:
            self._remove_pending(client_key)
            logger.warning("Send failed for %s: %s", client_key, exc)
            raise MessageSendError("Message could not be sent", client_key) from exc

        return self._confirm(record)

    async def start(self) -> None:
        if self._feed_task is None:
            self._feed_task = asyncio.create_task(self._consume_feed())

    async def stop(self) -> None:
        for task in (self._feed_task, self._read_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._feed_task = None
        self._read_task = None

    def apply_event(self, event: Dict[str, Any]) -> None:
        """Fold one change-feed event into local state."""
        payload = event.get("payload") or {}
        if not payload.get("id"):
            return
        if event.get("type") == EventType.INSERT.value:
            self._apply_insert(payload)
        elif event.get("type") == EventType.UPDATE.value:
            self._apply_update(payload)

    def read_status(self, message: SessionMessage) -> Dict[str, Any]:
        others = [reader for reader in message.read_by if reader != self.user_id]
        return {
            "is_delivered": not message.is_pending,
            "is_read": message.read_at is not None or bool(others),
            "read_by": others,
        }

    # Internals

    async def _consume_feed(self) -> None:
        try:
            async with self.feed.subscribe(self.conversation_id) as events:
                async for event in events:
                    self.apply_event(event)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("Change feed for %s ended: %s", self.conversation_id, exc)

    def _apply_insert(self, record: Dict[str, Any]) -> None:
        message_id = record["id"]
        if message_id in self._known_ids:
            return

        client_key = record.get("client_key")
        if client_key and self._index_of_pending(client_key) is not None:
            self._confirm(record)
            return

        if self.apply_context_filter and not is_visible_in_context(
            record.get("course_item_id"), record.get("sender_role"), self.course_item_id
        ):
            return

        self._messages.append(SessionMessage.from_record(record))
        self._known_ids.add(message_id)
        if record.get("sender_id") != self.user_id:
            self._schedule_read(message_id)

    def _apply_update(self, record: Dict[str, Any]) -> None:
        index = self._index_of_id(record["id"])
        if index is None:
            return
        current = self._messages[index]
        incoming = SessionMessage.from_record(record)
        read_by = list(current.read_by)
        for reader in incoming.read_by:
            if reader not in read_by:
                read_by.append(reader)
        self._messages[index] = replace(
            incoming,
            read_at=current.read_at or incoming.read_at,
            read_by=read_by,
        )

    def _confirm(self, record: Dict[str, Any]) -> SessionMessage:
        confirmed = SessionMessage.from_record(record)
        existing = self._index_of_id(record["id"])
        if existing is not None:
            # The feed got there first; fold in anything newer without regressing reads
            self._apply_update(record)
            return self._messages[existing]

        pending = self._index_of_pending(record.get("client_key") or "")
        if pending is None:
            self._messages.append(confirmed)
        else:
            self._messages[pending] = confirmed
        self._known_ids.add(record["id"])
        return confirmed

    def _remove_pending(self, client_key: str) -> None:
        index = self._index_of_pending(client_key)
        if index is not None:
            del self._messages[index]

    def _index_of_pending(self, client_key: str) -> Optional[int]:
        for index, message in enumerate(self._messages):
            if isinstance(message.identity, Pending) and message.identity.local_id == client_key:
                return index
        return None

    def _index_of_id(self, message_id: str) -> Optional[int]:
        if message_id not in self._known_ids:
            return None
        for index, message in enumerate(self._messages):
            if message.message_id == message_id:
                return index
        return None

    def _schedule_read(self, message_id: str) -> None:
        self._unread_ids.append(message_id)
        if self._read_task is None or self._read_task.done():
            try:
                self._read_task = asyncio.get_running_loop().create_task(self._flush_reads())
            except RuntimeError:
                # No loop: the next load() marks everything read server-side
                self._unread_ids.clear()

    async def _flush_reads(self) -> None:
        # Arrivals during a gateway call are picked up by the next pass
        while self._unread_ids:
            await asyncio.sleep(self.read_delay_seconds)
            batch, self._unread_ids = self._unread_ids, []
            try:
                records = await self.gateway.mark_read(self.conversation_id, batch)
            except Exception as exc:
                logger.warning("Marking %d messages read failed: %s", len(batch), exc)
                continue
            for record in records:
                if record.get("id"):
                    self._apply_update(record)
