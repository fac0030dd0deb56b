from abc import ABC, abstractmethod
from typing import Any, Dict


class Transport(ABC):
    """Opaque upload channel to the remote service."""

    @abstractmethod
    async def upload(self, event_id: str, data: bytes, metadata: Dict[str, Any], token: str) -> bool:
        """
        Upload one photo.

        Args:
            event_id: The event the photo belongs to.
            data: The raw photo bytes.
            metadata: File name, size, timestamps and device details.
            token: The access token authorizing the upload.

        Returns:
            True if the remote service accepted the photo.
        """
        raise NotImplementedError()

    async def close(self):
        pass
