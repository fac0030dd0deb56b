import logging
import threading
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

from photoshare.models.identifier import PhotoIdentifier

logger = logging.getLogger(__name__)


class IdentifierSnapshot:
    """Read-only lookup of the identifiers fetched for one event."""

    __slots__ = ("by_content_hash", "by_perceptual_hash")

    def __init__(
        self,
        by_content_hash: Mapping[str, PhotoIdentifier],
        by_perceptual_hash: Mapping[str, PhotoIdentifier],
    ):
        self.by_content_hash = MappingProxyType(dict(by_content_hash))
        self.by_perceptual_hash = MappingProxyType(dict(by_perceptual_hash))

    @classmethod
    def from_identifiers(cls, identifiers: Iterable[PhotoIdentifier]) -> "IdentifierSnapshot":
        by_content_hash: Dict[str, PhotoIdentifier] = {}
        by_perceptual_hash: Dict[str, PhotoIdentifier] = {}

        for identifier in identifiers:
            if identifier.content_hash:
                by_content_hash[identifier.content_hash] = identifier
            if identifier.perceptual_hash:
                by_perceptual_hash[identifier.perceptual_hash] = identifier

        logger.debug(f"Built lookup maps - Hash: {len(by_content_hash)}, Perceptual: {len(by_perceptual_hash)}")
        return cls(by_content_hash, by_perceptual_hash)

    @classmethod
    def empty(cls) -> "IdentifierSnapshot":
        return cls({}, {})

    def identifiers(self) -> List[PhotoIdentifier]:
        """Every distinct identifier, including those known only by perceptual hash."""
        seen = {}
        for identifier in list(self.by_content_hash.values()) + list(self.by_perceptual_hash.values()):
            seen.setdefault(id(identifier), identifier)
        return list(seen.values())

    def __len__(self) -> int:
        return len(self.by_content_hash) + len(self.by_perceptual_hash)

    def __repr__(self) -> str:
        return f"<IdentifierSnapshot(hash={len(self.by_content_hash)}, perceptual={len(self.by_perceptual_hash)})>"


class SnapshotRegistry:
    """Latest snapshot per event. Writers swap the whole mapping."""

    def __init__(self):
        self._lock = threading.Lock()
        self._snapshots: Mapping[str, IdentifierSnapshot] = MappingProxyType({})

    def get(self, event_id: str) -> Optional[IdentifierSnapshot]:
        return self._snapshots.get(event_id)

    def get_or_empty(self, event_id: str) -> IdentifierSnapshot:
        return self._snapshots.get(event_id) or IdentifierSnapshot.empty()

    def replace(self, event_id: str, snapshot: IdentifierSnapshot) -> None:
        with self._lock:
            self._snapshots = MappingProxyType({**self._snapshots, event_id: snapshot})
        logger.info(f"[Event {event_id}] Snapshot replaced: {snapshot!r}")

    def clear(self, event_id: Optional[str] = None) -> None:
        with self._lock:
            if event_id is None:
                self._snapshots = MappingProxyType({})
            else:
                self._snapshots = MappingProxyType({k: v for k, v in self._snapshots.items() if k != event_id})
