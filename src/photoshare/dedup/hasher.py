import hashlib
import io
import logging
from typing import BinaryIO, Iterator, Optional, Union

import numpy as np
from PIL import Image, ImageFile, UnidentifiedImageError

logger = logging.getLogger(__name__)
ImageFile.LOAD_TRUNCATED_IMAGES = True

PhotoSource = Union[bytes, bytearray, BinaryIO]


def truncated(full_hash: Optional[str]) -> Optional[str]:
    """Display form of a hash, e.g. "abc123...def789"."""
    if full_hash is None or len(full_hash) < 12:
        return full_hash
    return f"{full_hash[:6]}...{full_hash[-6:]}"


class PhotoHasher:
    """
    Content and perceptual fingerprints for photo bytes.

    The content hash is SHA-256 over the exact bytes. The perceptual hash is
    a difference hash (dHash): the image is reduced to a (size+1) x size
    grayscale grid and each bit records whether a pixel is brighter than its
    right neighbour. Bit ``y * size + x`` of the integer is set for cell
    (x, y); the hex form is zero padded to size*size/4 characters, which is
    the layout the web and iOS clients publish.
    """

    def __init__(self, chunk_size: int = 8192, dhash_size: int = 8):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if dhash_size <= 0 or (dhash_size * dhash_size) % 4:
            raise ValueError("dhash_size must yield a whole number of hex digits")
        self.chunk_size = chunk_size
        self.dhash_size = dhash_size

    @property
    def perceptual_bits(self) -> int:
        return self.dhash_size * self.dhash_size

    def content_hash(self, source: PhotoSource) -> Optional[str]:
        digest = hashlib.sha256()
        total_bytes = 0
        try:
            for chunk in self._iter_chunks(source):
                digest.update(chunk)
                total_bytes += len(chunk)
        except OSError as e:
            logger.error(f"Failed to read content for hashing: {e}")
            return None

        content_hash = digest.hexdigest()
        logger.debug(f"SHA-256 {truncated(content_hash)} over {total_bytes} bytes")
        return content_hash

    def perceptual_hash(self, source: PhotoSource) -> Optional[str]:
        """Returns None when the bytes cannot be decoded as an image."""
        stream = io.BytesIO(source) if isinstance(source, (bytes, bytearray)) else source
        width, height = self.dhash_size + 1, self.dhash_size
        try:
            with Image.open(stream) as img:
                # Let JPEG decoders skip work we throw away in the resize
                img.draft("RGB", (width * 8, height * 8))
                small = img.convert("RGB").resize((width, height), Image.Resampling.BILINEAR)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            logger.debug(f"No perceptual signal available: {e}")
            return None

        pixels = np.asarray(small, dtype=np.uint16)
        gray = pixels.sum(axis=2) // 3
        brighter = (gray[:, :-1] > gray[:, 1:]).flatten()

        value = 0
        for position, bit in enumerate(brighter):
            if bit:
                value |= 1 << position
        return f"{value:0{self.perceptual_bits // 4}x}"

    def _iter_chunks(self, source: PhotoSource) -> Iterator[bytes]:
        if isinstance(source, (bytes, bytearray)):
            view = memoryview(source)
            for start in range(0, len(view), self.chunk_size):
                yield view[start:start + self.chunk_size]
            return

        while True:
            chunk = source.read(self.chunk_size)
            if not chunk:
                break
            yield chunk
