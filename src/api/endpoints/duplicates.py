import asyncio
import logging
from fastapi import APIRouter, Depends

from core.dependencies import get_detector, get_fetcher, get_snapshot_registry
from photoshare.dedup.detector import DuplicateDetector
from photoshare.dedup.fetcher import IdentifierFetcher
from photoshare.dedup.snapshot import SnapshotRegistry
from photoshare.upload.schema import DuplicateCheckRequest, DuplicateCheckResponse, VerdictResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/check", response_model=DuplicateCheckResponse)
async def check_duplicates(
    req: DuplicateCheckRequest,
    detector: DuplicateDetector = Depends(get_detector),
    fetcher: IdentifierFetcher = Depends(get_fetcher),
    registry: SnapshotRegistry = Depends(get_snapshot_registry),
):
    """
    Classify each photo against the identifiers already uploaded to the event.
    """
    if req.refresh:
        snapshot = await fetcher.refresh(req.event_id)
    else:
        snapshot = registry.get_or_empty(req.event_id)

    verdicts = []
    for item in req.photos:
        photo = item.to_candidate()
        verdict = await asyncio.to_thread(detector.check_for_duplicate, photo, snapshot)
        verdicts.append(VerdictResponse.from_verdict(photo, verdict))

    duplicates = sum(1 for v in verdicts if v.is_duplicate)
    logger.info(f"🔍 [Event {req.event_id}] Checked {len(verdicts)} photos, {duplicates} duplicates")
    return DuplicateCheckResponse(event_id=req.event_id, identifiers=len(snapshot.identifiers()), verdicts=verdicts)
