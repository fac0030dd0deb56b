import asyncio
import logging
import threading
from dataclasses import asdict
from typing import Any, Dict, List, Optional

import httpx

from photoshare.models.upload import BatchResult, ProgressEvent, UploadStatus

logger = logging.getLogger(__name__)


class UploadObserver:
    """Receives progress of upload batches. Default hooks do nothing."""

    async def on_progress(self, event: ProgressEvent) -> None:
        pass

    async def on_batch_complete(self, batch_id: str, result: BatchResult) -> None:
        pass


class LoggingObserver(UploadObserver):
    async def on_progress(self, event: ProgressEvent) -> None:
        logger.debug(f"[Batch {event.batch_id}] {event.file_name}: {event.status.value} ({event.percent}%)")

    async def on_batch_complete(self, batch_id: str, result: BatchResult) -> None:
        logger.info(f"🏁 [Batch {batch_id}] Finished: {result.succeeded}/{result.total} uploaded, {result.failed} failed")


class ProgressTracker(UploadObserver):
    """Latest status per file and the summary of every batch seen."""

    def __init__(self):
        self._lock = threading.Lock()
        self._files: Dict[str, Dict[str, ProgressEvent]] = {}
        self._results: Dict[str, BatchResult] = {}
        self._rejected: Dict[str, str] = {}

    def register(self, batch_id: str) -> None:
        with self._lock:
            self._files.setdefault(batch_id, {})

    def mark_rejected(self, batch_id: str, reason: str) -> None:
        """Record a batch that ended without running the upload loop."""
        with self._lock:
            self._files.setdefault(batch_id, {})
            self._rejected[batch_id] = reason

    def state(self, batch_id: str) -> str:
        if batch_id in self._rejected:
            return "rejected"
        if batch_id in self._results:
            return "completed"
        return "processing"

    def message(self, batch_id: str) -> Optional[str]:
        return self._rejected.get(batch_id)

    async def on_progress(self, event: ProgressEvent) -> None:
        with self._lock:
            # dicts keep insertion order, so files stay in upload order. Names
            # repeat across folders, so rows are keyed by photo id
            self._files.setdefault(event.batch_id, {})[event.photo_id or event.file_name] = event

    async def on_batch_complete(self, batch_id: str, result: BatchResult) -> None:
        with self._lock:
            self._files.setdefault(batch_id, {})
            self._results[batch_id] = result

    def knows(self, batch_id: str) -> bool:
        return batch_id in self._files

    def files(self, batch_id: str) -> List[ProgressEvent]:
        with self._lock:
            return list(self._files.get(batch_id, {}).values())

    def result(self, batch_id: str) -> Optional[BatchResult]:
        return self._results.get(batch_id)


class WebhookObserver(UploadObserver):
    """Posts the batch summary to a webhook URL, with retries."""

    def __init__(self, url: str, max_attempts: int = 3, timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self.max_attempts = max_attempts
        self.timeout = timeout
        self._client = client

    async def on_batch_complete(self, batch_id: str, result: BatchResult) -> None:
        payload = {
            "batch_id": batch_id,
            "status": "completed" if result.success else "failed",
            "result": {**asdict(result), "success": result.success},
        }
        await self.send(payload, batch_id)

    async def send(self, payload: Dict[str, Any], batch_id: str) -> bool:
        logger.info(f"📤 [Batch {batch_id}] Sending callback to {self.url}")
        if self._client is not None:
            return await self._send_with(self._client, payload, batch_id)
        async with httpx.AsyncClient() as client:
            return await self._send_with(client, payload, batch_id)

    async def _send_with(self, client: httpx.AsyncClient, payload: Dict[str, Any], batch_id: str) -> bool:
        for attempt in range(self.max_attempts):
            try:
                response = await client.post(self.url, json=payload, timeout=self.timeout)
                response.raise_for_status()
                logger.info(f"✅ [Batch {batch_id}] Callback sent successfully. Status: {response.status_code}")
                return True
            except httpx.HTTPStatusError as e:
                logger.error(f"❌ [Batch {batch_id}] Callback failed (attempt {attempt+1}/{self.max_attempts}): HTTP {e.response.status_code} - {e.response.text}")
                if 400 <= e.response.status_code < 500:
                    # Do not retry client errors
                    break
            except httpx.HTTPError as e:
                logger.error(f"❌ [Batch {batch_id}] Callback connection error (attempt {attempt+1}/{self.max_attempts}): {e}")

            if attempt < self.max_attempts - 1:
                await asyncio.sleep(2 ** attempt)

        logger.error(f"❌ [Batch {batch_id}] Callback could not be delivered.")
        return False


class CompositeObserver(UploadObserver):
    """Fans events out. A failing observer is logged and does not stop the others."""

    def __init__(self, *observers: UploadObserver):
        self.observers = list(observers)

    async def on_progress(self, event: ProgressEvent) -> None:
        for observer in self.observers:
            try:
                await observer.on_progress(event)
            except Exception as e:
                logger.error(f"[Batch {event.batch_id}] Observer {type(observer).__name__} failed on progress: {e}")

    async def on_batch_complete(self, batch_id: str, result: BatchResult) -> None:
        for observer in self.observers:
            try:
                await observer.on_batch_complete(batch_id, result)
            except Exception as e:
                logger.error(f"[Batch {batch_id}] Observer {type(observer).__name__} failed on completion: {e}")


def status_counts(events: List[ProgressEvent]) -> Dict[str, int]:
    counts = {status.value: 0 for status in UploadStatus}
    for event in events:
        counts[event.status.value] += 1
    return counts
