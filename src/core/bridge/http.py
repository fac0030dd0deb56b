import asyncio
import json
import logging
from typing import Optional

import httpx

from core.config import configs

from .base import ASYNC_STARTED, Bridge, BridgeError

logger = logging.getLogger(__name__)


class HttpBridge(Bridge):
    """Bridge that talks to the web-side companion over HTTP.

    Endpoints:
        POST /bridge/identifiers/{event_id}         200 result | 202 pending
        GET  /bridge/identifiers/{event_id}/result  200 result | 204 pending
        POST /bridge/token                          200 {"token": ...}
    """

    def __init__(
        self,
        base_url: str = None,
        timeout: float = None,
        token_poll_interval: float = 0.5,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or configs.BRIDGE_BASE_URL).rstrip("/")
        self.timeout = timeout or configs.BRIDGE_REQUEST_TIMEOUT
        self.token_poll_interval = token_poll_interval
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        logger.debug(f"HttpBridge initialized for {self.base_url}")

    async def invoke_identifier_lookup(self, event_id: str) -> Optional[str]:
        response = await self._request("POST", f"/bridge/identifiers/{event_id}")
        if response.status_code == 202:
            logger.debug(f"[Event {event_id}] Identifier lookup started asynchronously")
            return ASYNC_STARTED
        return response.text

    async def poll_identifier_result(self, event_id: str) -> Optional[str]:
        response = await self._request("GET", f"/bridge/identifiers/{event_id}/result")
        if response.status_code == 204 or not response.text.strip():
            return None
        return response.text

    async def acquire_access_token(self) -> Optional[str]:
        response = await self._request("POST", "/bridge/token")
        # Token requests are answered with 202 while the collaborator refreshes
        # its session; the caller bounds the whole acquisition with a timeout.
        while response.status_code == 202:
            await asyncio.sleep(self.token_poll_interval)
            response = await self._request("GET", "/bridge/token/result")

        try:
            payload = response.json()
        except json.JSONDecodeError as e:
            raise BridgeError(f"Token response is not JSON: {e}") from e

        if not isinstance(payload, dict):
            raise BridgeError(f"Unexpected token response shape: {type(payload).__name__}")
        if payload.get("error"):
            logger.warning(f"Bridge token error: {payload['error']}")
            return None
        return payload.get("token")

    async def _request(self, method: str, path: str) -> httpx.Response:
        try:
            response = await self._client.request(method, path)
            if response.status_code >= 400:
                raise BridgeError(f"{method} {path} failed: HTTP {response.status_code} - {response.text}")
            return response
        except httpx.HTTPError as e:
            raise BridgeError(f"{method} {path} connection error: {e}") from e

    async def close(self):
        await self._client.aclose()
