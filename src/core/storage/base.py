from abc import ABC, abstractmethod
from typing import BinaryIO


class ContentStore(ABC):
    """Abstract base class for reading candidate photo content."""

    @abstractmethod
    def open(self, handle: str) -> BinaryIO:
        """
        Open the content behind a handle for streaming reads.

        Args:
            handle: The content handle produced by the media scan.

        Returns:
            A binary file object positioned at the start of the content.

        Raises:
            ContentNotFoundError: the handle does not resolve to a file.
        """
        pass

    @abstractmethod
    async def read_bytes(self, handle: str) -> bytes:
        """
        Read the full content behind a handle.

        Args:
            handle: The content handle produced by the media scan.

        Returns:
            The raw photo bytes.

        Raises:
            ContentNotFoundError: the handle does not resolve to a file.
        """
        pass

    @abstractmethod
    async def list_handles(self, prefix: str) -> list[str]:
        """
        List all content handles with the given prefix.

        Args:
            prefix: The directory prefix to search (e.g., "camera/").

        Returns:
            A list of handles.
        """
        pass
