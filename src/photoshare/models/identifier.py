from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PhotoIdentifier:
    """A photo the remote service already holds for an event."""
    content_hash: Optional[str] = None  # SHA-256 of the file bytes
    perceptual_hash: Optional[str] = None  # 64-bit dHash, hex
    original_timestamp: Optional[str] = None
    file_size: int = 0
    file_name: Optional[str] = None
    camera_make: Optional[str] = None
    camera_model: Optional[str] = None
    width: int = 0
    height: int = 0
    media_id: Optional[str] = None
    uploader_id: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return bool(self.content_hash) or bool(self.perceptual_hash)

    @property
    def display_name(self) -> str:
        if self.file_name:
            return self.file_name
        if self.content_hash and len(self.content_hash) >= 12:
            return f"Hash: {self.content_hash[:8]}..."
        if self.media_id:
            return f"Media: {self.media_id}"
        return "Unknown Photo"
