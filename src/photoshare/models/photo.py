from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from photoshare.models.identifier import PhotoIdentifier


@dataclass(frozen=True)
class CandidatePhoto:
    id: str
    content_handle: str
    display_name: str
    size_bytes: int = 0
    taken_at: Optional[datetime] = None
    added_at: Optional[datetime] = None


@dataclass(frozen=True)
class DuplicateVerdict:
    is_duplicate: bool
    confidence: float
    reason: str
    matched_identifier: Optional[PhotoIdentifier] = None

    def __str__(self) -> str:
        return f"DuplicateVerdict(is_duplicate={self.is_duplicate}, confidence={self.confidence * 100:.1f}%, reason='{self.reason}')"
