import logging
from typing import List, Optional

from photoshare.dedup.detector import DuplicateDetector
from photoshare.dedup.fetcher import IdentifierFetcher
from photoshare.models.photo import CandidatePhoto
from photoshare.models.upload import BatchResult, UploadBatch
from photoshare.token.cache import TokenCache
from photoshare.upload.coordinator import UploadCoordinator
from photoshare.upload.observers import CompositeObserver, UploadObserver, WebhookObserver

logger = logging.getLogger(__name__)


class UploadService:
    def __init__(
        self,
        token_cache: TokenCache,
        fetcher: IdentifierFetcher,
        detector: DuplicateDetector,
        coordinator: UploadCoordinator,
    ):
        self.token_cache = token_cache
        self.fetcher = fetcher
        self.detector = detector
        self.coordinator = coordinator

    async def process_batch(
        self,
        batch_id: str,
        event_id: str,
        photos: List[CandidatePhoto],
        requester_id: str = "default",
        webhook_url: Optional[str] = None,
    ) -> Optional[BatchResult]:
        """
        Token, then snapshot, then duplicate filter, then upload.

        Returns None without emitting any progress when no access token is
        available; the caller may try again later.
        """
        logger.info(f"📥 [Batch {batch_id}] {len(photos)} candidates for event {event_id} (requester {requester_id})")

        token = await self.token_cache.get_token(requester_id)
        if token is None:
            logger.warning(f"[Batch {batch_id}] No access token available, batch not started")
            return None

        snapshot = await self.fetcher.refresh(event_id)
        new_photos, duplicates = await self.detector.filter_new(photos, snapshot)
        for photo, verdict in duplicates:
            logger.info(f"⏭️ [Batch {batch_id}] Skipping {photo.display_name}: {verdict.reason} ({verdict.confidence * 100:.1f}%)")

        batch = UploadBatch(event_id=event_id, photos=new_photos, token=token, batch_id=batch_id)
        return await self.coordinator.run(batch, self._observer_for(webhook_url))

    def _observer_for(self, webhook_url: Optional[str]) -> UploadObserver:
        if not webhook_url:
            return self.coordinator.observer
        return CompositeObserver(self.coordinator.observer, WebhookObserver(webhook_url))
