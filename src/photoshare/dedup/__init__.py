from .detector import DuplicateDetector
from .fetcher import IdentifierFetcher
from .hasher import PhotoHasher
from .matcher import NEAR_DUPLICATE_THRESHOLD, are_similar, hamming_distance, similarity
from .snapshot import IdentifierSnapshot, SnapshotRegistry

__all__ = [
    "DuplicateDetector",
    "IdentifierFetcher",
    "PhotoHasher",
    "IdentifierSnapshot",
    "SnapshotRegistry",
    "NEAR_DUPLICATE_THRESHOLD",
    "are_similar",
    "hamming_distance",
    "similarity",
]
