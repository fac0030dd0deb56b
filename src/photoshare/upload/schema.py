from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from photoshare.models.photo import CandidatePhoto, DuplicateVerdict


class PhotoItem(BaseModel):
    handle: str = Field(description="Content handle relative to the media root")
    id: Optional[str] = Field(None, description="Client photo ID, defaults to the handle")
    display_name: Optional[str] = Field(None, description="File name shown in progress")
    size_bytes: int = Field(0, ge=0)
    taken_at: Optional[datetime] = None
    added_at: Optional[datetime] = None

    def to_candidate(self) -> CandidatePhoto:
        return CandidatePhoto(
            id=self.id or self.handle,
            content_handle=self.handle,
            display_name=self.display_name or self.handle.split("/")[-1],
            size_bytes=self.size_bytes,
            taken_at=self.taken_at,
            added_at=self.added_at,
        )


class UploadRequest(BaseModel):
    event_id: str = Field(..., min_length=1, description="Target event")
    photos: List[PhotoItem] = Field(default_factory=list)
    folder: Optional[str] = Field(None, description="Scan this media folder instead of listing photos")
    requester_id: str = Field("default", description="Who asked for the upload")
    webhook_url: Optional[str] = Field(None, description="Receives the batch summary")

    @model_validator(mode="after")
    def _photos_or_folder(self) -> "UploadRequest":
        if not self.photos and not self.folder:
            raise ValueError("either photos or folder is required")
        return self


class UploadTaskResponse(BaseModel):
    batch_id: str
    status: str = "processing"
    message: str = "Upload batch accepted."


class FileProgressResponse(BaseModel):
    file_name: str
    photo_id: Optional[str] = None
    status: str
    percent: int
    timestamp: float


class BatchStatusResponse(BaseModel):
    batch_id: str
    status: str
    files: List[FileProgressResponse]
    counts: Dict[str, int]
    total: Optional[int] = None
    succeeded: Optional[int] = None
    failed: Optional[int] = None
    success: Optional[bool] = None
    message: Optional[str] = None


class DuplicateCheckRequest(BaseModel):
    event_id: str = Field(..., min_length=1)
    photos: List[PhotoItem] = Field(..., min_length=1)
    refresh: bool = Field(True, description="Fetch identifiers before checking")


class VerdictResponse(BaseModel):
    photo_id: str
    is_duplicate: bool
    confidence: float
    reason: str
    matched: Optional[Dict[str, Any]] = None

    @classmethod
    def from_verdict(cls, photo: CandidatePhoto, verdict: DuplicateVerdict) -> "VerdictResponse":
        matched = None
        if verdict.matched_identifier is not None:
            identifier = verdict.matched_identifier
            matched = {
                "display_name": identifier.display_name,
                "media_id": identifier.media_id,
                "content_hash": identifier.content_hash,
                "perceptual_hash": identifier.perceptual_hash,
            }
        return cls(
            photo_id=photo.id,
            is_duplicate=verdict.is_duplicate,
            confidence=verdict.confidence,
            reason=verdict.reason,
            matched=matched,
        )


class DuplicateCheckResponse(BaseModel):
    event_id: str
    identifiers: int
    verdicts: List[VerdictResponse]


class IdentifierDelivery(BaseModel):
    result: Optional[str] = Field(None, description="Raw identifier JSON as produced by the web app")


class TokenDelivery(BaseModel):
    token: Optional[str] = None
    error: Optional[str] = Field(None, description="Set when the web app could not provide a token")
