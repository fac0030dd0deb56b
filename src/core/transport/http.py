import json
import logging
from typing import Any, Dict, Optional

import httpx

from core.config import configs

from .base import Transport

logger = logging.getLogger(__name__)

UPLOAD_PATH = "/functions/v1/multipart-upload"


class HttpTransport(Transport):
    """Multipart upload to the remote service. Failures are reported as False."""

    def __init__(self, base_url: str = None, timeout: float = 60.0, client: Optional[httpx.AsyncClient] = None):
        self.base_url = (base_url or configs.UPLOAD_BASE_URL).rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def upload(self, event_id: str, data: bytes, metadata: Dict[str, Any], token: str) -> bool:
        file_name = metadata.get("fileName", "photo.jpg")
        files = {"file": (file_name, data, metadata.get("contentType", "image/jpeg"))}
        form = {"eventId": event_id, "metadata": json.dumps(metadata)}
        headers = {"Authorization": f"Bearer {token}"}

        try:
            response = await self._client.post(UPLOAD_PATH, data=form, files=files, headers=headers)
            response.raise_for_status()
            logger.debug(f"[Event {event_id}] Uploaded {file_name}. Status: {response.status_code}")
            return True
        except httpx.HTTPStatusError as e:
            logger.error(f"[Event {event_id}] Upload of {file_name} rejected: HTTP {e.response.status_code} - {e.response.text}")
        except httpx.HTTPError as e:
            logger.error(f"[Event {event_id}] Upload of {file_name} connection error: {e}")
        return False

    async def close(self):
        await self._client.aclose()
