# finsage/services/messaging/http_gateway.py
"""HTTP implementation of the message gateway used by ``ConversationSession``."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, cast

import httpx

from ...core.config import settings

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


class MessageGatewayError(RuntimeError):
    """Raised when the messaging API fails or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MessageGateway(Protocol):
    async def load_messages(
        self, conversation_id: str, course_item_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        ...

    async def insert_message(
        self, conversation_id: str, content: str, client_key: str
    ) -> Dict[str, Any]:
        ...

    async def mark_read(self, conversation_id: str, message_ids: List[str]) -> List[Dict[str, Any]]:
        ...


class HttpMessageGateway:
    """
    Talks to the FinSage messaging API with the caller's bearer token.

    Every call is bounded by ``timeout``. Reads are retried once on transport
    errors; inserts and read-marking are never retried.
    """

    def __init__(
        self,
        *,
        base_url: str,
        access_token: str,
        timeout: Optional[float] = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout if timeout is not None else settings.client_timeout_seconds
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=transport,
            headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def load_messages(
        self, conversation_id: str, course_item_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        params = {"course_item_id": course_item_id} if course_item_id else None
        body = await self._request(
            "GET",
            f"{API_PREFIX}/conversations/{conversation_id}/messages",
            params=params,
            retries=1,
        )
        return cast(List[Dict[str, Any]], body.get("messages", []))

    async def insert_message(
        self, conversation_id: str, content: str, client_key: str
    ) -> Dict[str, Any]:
        body = await self._request(
            "POST",
            f"{API_PREFIX}/conversations/{conversation_id}/messages",
            json_body={"content": content, "client_key": client_key},
        )
        return cast(Dict[str, Any], body["message"])

    async def mark_read(self, conversation_id: str, message_ids: List[str]) -> List[Dict[str, Any]]:
        body = await self._request(
            "POST",
            f"{API_PREFIX}/conversations/{conversation_id}/read",
            json_body={"message_ids": message_ids},
        )
        return cast(List[Dict[str, Any]], body.get("messages", []))

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
        retries: int = 0,
    ) -> Dict[str, Any]:
        attempt = 0
        while True:
            try:
                response = await self._client.request(method, path, params=params, json=json_body)
                response.raise_for_status()
                return cast(Dict[str, Any], response.json())
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                logger.error("Messaging API error %s for %s %s", status, method, path)
                raise MessageGatewayError(
                    f"Messaging API responded with status {status}", status_code=status
                ) from exc
            except httpx.TransportError as exc:
                if attempt < retries:
                    attempt += 1
                    logger.warning("Retrying %s %s after transport error: %s", method, path, exc)
                    continue
                logger.error("Messaging API unreachable for %s %s: %s", method, path, exc)
                raise MessageGatewayError("Failed to reach messaging API") from exc
