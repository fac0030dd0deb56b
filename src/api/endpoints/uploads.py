import uuid
import logging
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from core.dependencies import get_content_store, get_progress_tracker, get_upload_service
from core.storage.base import ContentStore
from photoshare.models.photo import CandidatePhoto
from photoshare.upload.observers import ProgressTracker, status_counts
from photoshare.upload.schema import (
    BatchStatusResponse,
    FileProgressResponse,
    PhotoItem,
    UploadRequest,
    UploadTaskResponse,
)
from photoshare.upload.service import UploadService

logger = logging.getLogger(__name__)
router = APIRouter()


async def run_batch(
    service: UploadService,
    tracker: ProgressTracker,
    batch_id: str,
    req: UploadRequest,
    photos: list[CandidatePhoto],
):
    try:
        result = await service.process_batch(
            batch_id=batch_id,
            event_id=req.event_id,
            photos=photos,
            requester_id=req.requester_id,
            webhook_url=req.webhook_url,
        )
    except Exception as e:
        logger.exception(f"❌ [Batch {batch_id}] Pipeline crashed: {e}")
        tracker.mark_rejected(batch_id, f"Pipeline error: {e}")
        return
    if result is None:
        tracker.mark_rejected(batch_id, "No access token available")


@router.post("", response_model=UploadTaskResponse, status_code=202)
async def submit_upload_batch(
    req: UploadRequest,
    background_tasks: BackgroundTasks,
    service: UploadService = Depends(get_upload_service),
    tracker: ProgressTracker = Depends(get_progress_tracker),
    content_store: ContentStore = Depends(get_content_store),
):
    """
    Submit a batch of candidate photos. Duplicates are filtered and the rest
    uploaded in the background.
    """
    photos = [item.to_candidate() for item in req.photos]
    if req.folder:
        handles = await content_store.list_handles(req.folder)
        photos.extend(PhotoItem(handle=handle).to_candidate() for handle in handles)
    if not photos:
        raise HTTPException(status_code=400, detail=f"No photos found in folder: {req.folder}")

    batch_id = str(uuid.uuid4())
    logger.info(f"📥 [Batch {batch_id}] Accepted. Event: {req.event_id}, Photos: {len(photos)}, Webhook: {req.webhook_url}")
    tracker.register(batch_id)

    background_tasks.add_task(run_batch, service, tracker, batch_id, req, photos)

    return UploadTaskResponse(batch_id=batch_id, status="processing")


@router.get("/{batch_id}", response_model=BatchStatusResponse)
async def get_upload_batch(
    batch_id: str,
    tracker: ProgressTracker = Depends(get_progress_tracker),
):
    if not tracker.knows(batch_id):
        raise HTTPException(status_code=404, detail="Batch not found")

    events = tracker.files(batch_id)
    files = [
        FileProgressResponse(
            file_name=event.file_name,
            photo_id=event.photo_id,
            status=event.status.value,
            percent=event.percent,
            timestamp=event.timestamp,
        )
        for event in events
    ]
    response = BatchStatusResponse(
        batch_id=batch_id,
        status=tracker.state(batch_id),
        files=files,
        counts=status_counts(events),
        message=tracker.message(batch_id),
    )

    result = tracker.result(batch_id)
    if result is not None:
        response.total = result.total
        response.succeeded = result.succeeded
        response.failed = result.failed
        response.success = result.success
    return response
