import logging
import os
from pathlib import Path
from typing import BinaryIO

import aiofiles

from core.config import configs
from core.exceptions import ContentNotFoundError

from .base import ContentStore

logger = logging.getLogger(__name__)


class LocalContentStore(ContentStore):
    """Implementation of ContentStore for the local filesystem."""

    def __init__(self, media_root: str = None):
        self.media_root = Path(media_root or configs.MEDIA_ROOT)
        self.media_root.mkdir(parents=True, exist_ok=True)
        logger.debug(f"LocalContentStore initialized with base path {self.media_root}")

    def resolve(self, handle: str) -> Path:
        full_path = (self.media_root / handle).resolve()
        if self.media_root.resolve() not in full_path.parents:
            raise ContentNotFoundError(f"Handle escapes media root: {handle}")
        if not full_path.is_file():
            logger.error(f"Content not found: {full_path}")
            raise ContentNotFoundError(f"Content not found: {handle}")
        return full_path

    def open(self, handle: str) -> BinaryIO:
        return open(self.resolve(handle), "rb")

    async def read_bytes(self, handle: str) -> bytes:
        full_path = self.resolve(handle)
        logger.debug(f"Reading content from local storage: {full_path}")
        async with aiofiles.open(full_path, "rb") as in_file:
            return await in_file.read()

    async def list_handles(self, prefix: str) -> list[str]:
        full_path = self.media_root / prefix
        if not full_path.exists():
            return []

        handles = []
        for root, _, filenames in os.walk(full_path):
            for filename in filenames:
                if not filename.lower().endswith(("png", "jpg", "jpeg", "heic", "webp")):
                    continue
                # relative path from media_root
                abs_path = Path(root) / filename
                handles.append(str(abs_path.relative_to(self.media_root)))
        return sorted(handles)
