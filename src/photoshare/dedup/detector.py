import asyncio
import logging
from typing import List, Optional, Tuple

from core.storage.base import ContentStore
from photoshare.config import DetectionConfig
from photoshare.dedup.hasher import PhotoHasher, PhotoSource, truncated
from photoshare.dedup.matcher import similarity
from photoshare.dedup.snapshot import IdentifierSnapshot
from photoshare.models.photo import CandidatePhoto, DuplicateVerdict
from photoshare.utils.metrics import DUPLICATE_VERDICTS_TOTAL

logger = logging.getLogger(__name__)

NO_DUPLICATE = DuplicateVerdict(False, 0.0, "No duplicate detected")
CHECK_FAILED = DuplicateVerdict(False, 0.0, "Error during duplicate check")


class DuplicateDetector:
    """
    Multi-factor duplicate detection against an identifier snapshot.

    Stages, cheapest first:
        1. SHA-256 content hash, exact lookup (confidence 1.0)
        2. perceptual hash, exact lookup (confidence fixed at the
           near-duplicate threshold)
        3. perceptual hash, linear similarity scan (confidence = similarity)

    Stage 3 is O(N) over the snapshot's perceptual entries.
    A failure to read or hash the candidate never raises; the photo is
    reported as not a duplicate so it still gets uploaded.
    """

    def __init__(
        self,
        content_store: ContentStore,
        hasher: Optional[PhotoHasher] = None,
        config: Optional[DetectionConfig] = None,
    ):
        self.config = config or DetectionConfig()
        self.content_store = content_store
        self.hasher = hasher or PhotoHasher(self.config.chunk_size, self.config.dhash_size)

    def check_for_duplicate(self, photo: CandidatePhoto, snapshot: IdentifierSnapshot) -> DuplicateVerdict:
        logger.debug(f"Checking for duplicate: {photo.display_name}")
        try:
            with self.content_store.open(photo.content_handle) as stream:
                verdict = self._classify(stream, snapshot)
        except Exception as e:
            logger.error(f"Error checking {photo.display_name} for duplicate: {e}")
            DUPLICATE_VERDICTS_TOTAL.labels(stage="error").inc()
            return CHECK_FAILED

        if verdict.is_duplicate:
            logger.info(f"{photo.display_name} is a duplicate of {verdict.matched_identifier.display_name} ({verdict.reason})")
        return verdict

    def check_content(self, source: PhotoSource, snapshot: IdentifierSnapshot) -> DuplicateVerdict:
        """Classify raw bytes or a seekable binary stream."""
        try:
            return self._classify(source, snapshot)
        except Exception as e:
            logger.error(f"Error checking content for duplicate: {e}")
            DUPLICATE_VERDICTS_TOTAL.labels(stage="error").inc()
            return CHECK_FAILED

    async def filter_new(
        self, photos: List[CandidatePhoto], snapshot: IdentifierSnapshot
    ) -> Tuple[List[CandidatePhoto], List[Tuple[CandidatePhoto, DuplicateVerdict]]]:
        """
        Split candidates into photos to upload and detected duplicates.
        Input order is preserved in both lists.
        """
        new_photos: List[CandidatePhoto] = []
        duplicates: List[Tuple[CandidatePhoto, DuplicateVerdict]] = []

        if not snapshot.by_content_hash and not snapshot.by_perceptual_hash:
            logger.info("Empty snapshot, every candidate is new.")
            return list(photos), duplicates

        for photo in photos:
            verdict = await asyncio.to_thread(self.check_for_duplicate, photo, snapshot)
            if verdict.is_duplicate:
                duplicates.append((photo, verdict))
            else:
                new_photos.append(photo)

        logger.info(f"Duplicate filter: {len(new_photos)} new, {len(duplicates)} already uploaded.")
        return new_photos, duplicates

    def is_photo_uploaded(self, photo_id: str, snapshot: IdentifierSnapshot) -> bool:
        """Loose lookup by media id, file size or file name fragment."""
        for identifier in snapshot.identifiers():
            if (
                photo_id == identifier.media_id
                or (identifier.file_size > 0 and photo_id == str(identifier.file_size))
                or (identifier.file_name is not None and photo_id in identifier.file_name)
            ):
                return True
        return False

    def _classify(self, source: PhotoSource, snapshot: IdentifierSnapshot) -> DuplicateVerdict:
        # Step 1: exact file match
        content_hash = self.hasher.content_hash(source)
        if content_hash is not None and content_hash in snapshot.by_content_hash:
            DUPLICATE_VERDICTS_TOTAL.labels(stage="content_hash").inc()
            return DuplicateVerdict(
                True,
                self.config.exact_threshold,
                "Exact file hash match",
                snapshot.by_content_hash[content_hash],
            )

        if not snapshot.by_perceptual_hash:
            DUPLICATE_VERDICTS_TOTAL.labels(stage="none").inc()
            return NO_DUPLICATE

        if not isinstance(source, (bytes, bytearray)):
            source.seek(0)
        perceptual_hash = self.hasher.perceptual_hash(source)
        if perceptual_hash is None:
            DUPLICATE_VERDICTS_TOTAL.labels(stage="none").inc()
            return NO_DUPLICATE

        # Step 2: exact visual fingerprint match.
        # Confidence stays at the near-duplicate threshold; 1.0 is reserved
        # for byte-identical files.
        if perceptual_hash in snapshot.by_perceptual_hash:
            DUPLICATE_VERDICTS_TOTAL.labels(stage="perceptual_exact").inc()
            return DuplicateVerdict(
                True,
                self.config.near_duplicate_threshold,
                "Exact perceptual hash match",
                snapshot.by_perceptual_hash[perceptual_hash],
            )

        # Step 3: near-duplicate scan
        for uploaded_hash, identifier in snapshot.by_perceptual_hash.items():
            score = similarity(perceptual_hash, uploaded_hash)
            if score >= self.config.near_duplicate_threshold:
                logger.debug(f"Perceptual match {truncated(perceptual_hash)} ~ {truncated(uploaded_hash)}: {score:.3f}")
                DUPLICATE_VERDICTS_TOTAL.labels(stage="perceptual_similar").inc()
                return DuplicateVerdict(
                    True,
                    score,
                    f"Perceptual similarity: {score * 100:.1f}%",
                    identifier,
                )

        DUPLICATE_VERDICTS_TOTAL.labels(stage="none").inc()
        return NO_DUPLICATE
