from .identifier import PhotoIdentifier
from .photo import CandidatePhoto, DuplicateVerdict
from .upload import BatchResult, ProgressEvent, UploadBatch, UploadStatus

__all__ = [
    "PhotoIdentifier",
    "CandidatePhoto",
    "DuplicateVerdict",
    "UploadBatch",
    "UploadStatus",
    "ProgressEvent",
    "BatchResult",
]
