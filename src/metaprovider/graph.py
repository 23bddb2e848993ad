"""Cloud API (Graph) HTTP client for the messages and media endpoints."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from metaprovider.config import DEFAULT_API_VERSION, DEFAULT_GRAPH_URL
from metaprovider.errors import MalformedResponseError
from metaprovider.payloads import MESSAGING_PRODUCT

logger = logging.getLogger(__name__)


class GraphClient:
    """Bearer-authenticated POSTs to ``{base}/{version}/{number_id}/...``.

    HTTP failures are raised as the ``httpx`` exception itself (status code
    and response body intact); nothing here retries.
    """

    def __init__(
        self,
        *,
        jwt_token: str,
        number_id: str,
        version: str = DEFAULT_API_VERSION,
        base_url: str = DEFAULT_GRAPH_URL,
        timeout_seconds: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._jwt_token = jwt_token
        self._number_id = number_id
        self._version = version
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._transport = transport

    @property
    def number_id(self) -> str:
        return self._number_id

    @property
    def version(self) -> str:
        return self._version

    @property
    def messages_url(self) -> str:
        return f"{self._base_url}/{self._version}/{self._number_id}/messages"

    @property
    def media_url(self) -> str:
        return f"{self._base_url}/{self._version}/{self._number_id}/media"

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._jwt_token}"}

    async def post_message(self, body: dict[str, Any]) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            response = await client.post(self.messages_url, json=body, headers=self._headers())
        self._raise_for_status(response, "messages")
        return self._json(response)

    async def post_media(self, *, filename: str, content: bytes, mime_type: str) -> dict[str, Any]:
        files = {"file": (filename, content, mime_type)}
        data = {"messaging_product": MESSAGING_PRODUCT}
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            response = await client.post(
                self.media_url, data=data, files=files, headers=self._headers()
            )
        self._raise_for_status(response, "media")
        return self._json(response)

    @staticmethod
    def _raise_for_status(response: httpx.Response, endpoint: str) -> None:
        if response.is_error:
            logger.warning(
                "Graph API %s call failed with status %d", endpoint, response.status_code
            )
        response.raise_for_status()

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError as exc:
            raise MalformedResponseError("graph response is not JSON") from exc
        if not isinstance(body, dict):
            raise MalformedResponseError("graph response is not a JSON object")
        return body
