import asyncio
from abc import ABC, abstractmethod
from typing import Optional

from core.exceptions import BridgeError

# Returned by an identifier lookup that was accepted but has not produced a
# result yet. The result is then delivered through a completion future or a
# pollable result slot.
ASYNC_STARTED = "ASYNC_STARTED"

__all__ = ["ASYNC_STARTED", "Bridge", "BridgeError"]


class Bridge(ABC):
    """Abstract gateway to the web-side collaborator.

    The collaborator owns the user session. It answers two questions for the
    worker: which photos of an event are already uploaded, and what the
    current access token is.
    """

    @abstractmethod
    async def invoke_identifier_lookup(self, event_id: str) -> Optional[str]:
        """
        Start the identifier lookup for an event.

        Returns:
            The raw JSON result when the collaborator answered synchronously
            (usually an error envelope), or ASYNC_STARTED when the result
            will be delivered later.
        """
        raise NotImplementedError()

    @abstractmethod
    async def poll_identifier_result(self, event_id: str) -> Optional[str]:
        """
        Read the result slot of a pending lookup.

        Returns:
            The raw JSON result, or None while the lookup is still running.
        """
        raise NotImplementedError()

    def completion_future(self, event_id: str) -> Optional[asyncio.Future]:
        """
        Future resolved with the raw lookup result, for bridges that can
        signal completion. Bridges that only support polling return None.
        """
        return None

    @abstractmethod
    async def acquire_access_token(self) -> Optional[str]:
        """
        Ask the collaborator for a fresh access token.

        Returns:
            The token, or None when the collaborator has none to give.
        Raises:
            BridgeError: the collaborator could not be reached.
        """
        raise NotImplementedError()

    async def close(self):
        pass
