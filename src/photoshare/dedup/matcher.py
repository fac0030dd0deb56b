import string
from typing import Optional

NEAR_DUPLICATE_THRESHOLD = 0.95


def _is_hex(value: str) -> bool:
    return all(c in string.hexdigits for c in value)


def hamming_distance(hash_a: Optional[str], hash_b: Optional[str]) -> Optional[int]:
    """
    Count of differing bits between two hex fingerprints.

    Returns None when the fingerprints cannot be compared: missing, of
    different lengths, or not hexadecimal.
    """
    if not hash_a or not hash_b or len(hash_a) != len(hash_b):
        return None
    # int(x, 16) would also take "0x", "_" and a sign
    if not _is_hex(hash_a) or not _is_hex(hash_b):
        return None
    return bin(int(hash_a, 16) ^ int(hash_b, 16)).count("1")


def similarity(hash_a: Optional[str], hash_b: Optional[str]) -> float:
    """1 - hamming_distance / bit_length, or 0.0 for incomparable hashes."""
    distance = hamming_distance(hash_a, hash_b)
    if distance is None:
        return 0.0
    bit_length = len(hash_a) * 4
    return 1.0 - distance / bit_length


def are_similar(hash_a: Optional[str], hash_b: Optional[str], threshold: float = NEAR_DUPLICATE_THRESHOLD) -> bool:
    return similarity(hash_a, hash_b) >= threshold
