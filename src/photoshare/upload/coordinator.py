import asyncio
import logging
import time
from typing import Any, Dict, Optional

from core.storage.base import ContentStore
from core.transport.base import Transport
from photoshare.config import UploadConfig
from photoshare.models.photo import CandidatePhoto
from photoshare.models.upload import BatchResult, ProgressEvent, UploadBatch, UploadStatus
from photoshare.upload.observers import LoggingObserver, UploadObserver
from photoshare.utils.metadata import build_upload_metadata
from photoshare.utils.metrics import UPLOAD_ATTEMPTS_TOTAL, UPLOAD_DURATION_SECONDS, observe_duration

logger = logging.getLogger(__name__)


class UploadCoordinator:
    """
    Uploads a batch strictly in input order.

    Every photo gets one retry after a fixed backoff. A photo that fails
    both attempts is marked failed and the batch moves on; there is no
    batch-level abort.
    """

    def __init__(
        self,
        transport: Transport,
        content_store: ContentStore,
        observer: Optional[UploadObserver] = None,
        config: Optional[UploadConfig] = None,
        clock=time.time,
    ):
        self.transport = transport
        self.content_store = content_store
        self.observer = observer or LoggingObserver()
        self.config = config or UploadConfig()
        self._clock = clock

    async def run(self, batch: UploadBatch, observer: Optional[UploadObserver] = None) -> BatchResult:
        observer = observer or self.observer
        result = BatchResult(total=len(batch.photos))
        logger.info(f"🚀 [Batch {batch.batch_id}] Uploading {result.total} photos to event {batch.event_id}")

        for photo in batch.photos:
            await self._emit(observer, batch, photo, UploadStatus.WAITING, 0)

        for index, photo in enumerate(batch.photos, start=1):
            logger.info(f"[Batch {batch.batch_id}] Photo {index}/{result.total}: {photo.display_name}")
            with observe_duration(UPLOAD_DURATION_SECONDS):
                uploaded = await self._upload_photo(observer, batch, photo)
            if uploaded:
                result.succeeded += 1
            else:
                result.failed += 1

        logger.info(f"[Batch {batch.batch_id}] Summary: total={result.total}, succeeded={result.succeeded}, failed={result.failed}")
        try:
            await observer.on_batch_complete(batch.batch_id, result)
        except Exception as e:
            logger.error(f"[Batch {batch.batch_id}] Summary observer failed: {e}")
        return result

    async def _upload_photo(self, observer: UploadObserver, batch: UploadBatch, photo: CandidatePhoto) -> bool:
        await self._emit(observer, batch, photo, UploadStatus.UPLOADING, 0)

        try:
            data = await self.content_store.read_bytes(photo.content_handle)
        except Exception as e:
            logger.error(f"❌ [Batch {batch.batch_id}] Could not read {photo.display_name}: {e}")
            UPLOAD_ATTEMPTS_TOTAL.labels(attempt="read", result="failed").inc()
            await self._emit(observer, batch, photo, UploadStatus.FAILED, 0)
            return False

        metadata = build_upload_metadata(photo, data, self.config.device_id)
        await self._emit(observer, batch, photo, UploadStatus.UPLOADING, 50)

        if await self._attempt(batch, photo, data, metadata, "first"):
            await self._emit(observer, batch, photo, UploadStatus.COMPLETED, 100)
            return True

        await self._emit(observer, batch, photo, UploadStatus.RETRYING, 0)
        logger.warning(f"[Batch {batch.batch_id}] Retrying {photo.display_name} in {self.config.retry_backoff}s")
        await asyncio.sleep(self.config.retry_backoff)

        if await self._attempt(batch, photo, data, metadata, "retry"):
            await self._emit(observer, batch, photo, UploadStatus.COMPLETED, 100)
            return True

        logger.error(f"❌ [Batch {batch.batch_id}] Upload failed after retry: {photo.display_name}")
        await self._emit(observer, batch, photo, UploadStatus.FAILED, 0)
        return False

    async def _attempt(
        self, batch: UploadBatch, photo: CandidatePhoto, data: bytes, metadata: Dict[str, Any], attempt: str
    ) -> bool:
        try:
            uploaded = await asyncio.wait_for(
                self.transport.upload(batch.event_id, data, metadata, batch.token),
                timeout=self.config.attempt_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"[Batch {batch.batch_id}] Upload of {photo.display_name} timed out ({attempt} attempt)")
            uploaded = False
        except Exception as e:
            logger.warning(f"[Batch {batch.batch_id}] Upload of {photo.display_name} raised ({attempt} attempt): {e}")
            uploaded = False

        UPLOAD_ATTEMPTS_TOTAL.labels(attempt=attempt, result="success" if uploaded else "failed").inc()
        return bool(uploaded)

    async def _emit(
        self, observer: UploadObserver, batch: UploadBatch, photo: CandidatePhoto, status: UploadStatus, percent: int
    ) -> None:
        event = ProgressEvent(batch.batch_id, photo.display_name, status, percent, self._clock(), photo.id)
        try:
            await observer.on_progress(event)
        except Exception as e:
            logger.error(f"[Batch {batch.batch_id}] Progress observer failed: {e}")
