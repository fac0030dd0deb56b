from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from photoshare.models.photo import CandidatePhoto


class UploadStatus(str, Enum):
    WAITING = "waiting"
    UPLOADING = "uploading"
    RETRYING = "retrying"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class UploadBatch:
    event_id: str
    photos: List[CandidatePhoto]
    token: str
    batch_id: str


@dataclass(frozen=True)
class ProgressEvent:
    batch_id: str
    file_name: str
    status: UploadStatus
    percent: int
    timestamp: float  # Unix timestamp
    photo_id: Optional[str] = None


@dataclass
class BatchResult:
    total: int = 0
    succeeded: int = 0
    failed: int = 0

    @property
    def success(self) -> bool:
        # Partial success counts as success at the batch level
        return self.succeeded > 0
