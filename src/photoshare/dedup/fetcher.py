import asyncio
import logging
from typing import List, Optional

from core.bridge.base import ASYNC_STARTED, Bridge, BridgeError
from photoshare.config import FetchConfig
from photoshare.dedup.parser import EMPTY_RESULTS, parse_identifier_response
from photoshare.dedup.snapshot import IdentifierSnapshot, SnapshotRegistry
from photoshare.models.identifier import PhotoIdentifier

logger = logging.getLogger(__name__)


class IdentifierFetcher:
    """
    Loads the identifiers of photos already uploaded to an event.

    Duplicate protection is best effort: every failure (bridge errors,
    timeouts, unparsable results, unauthenticated users) produces an empty
    list so the surrounding upload flow is never blocked.
    """

    def __init__(self, bridge: Bridge, registry: SnapshotRegistry, config: Optional[FetchConfig] = None):
        self.bridge = bridge
        self.registry = registry
        self.config = config or FetchConfig()

    async def fetch_identifiers(self, event_id: str) -> List[PhotoIdentifier]:
        logger.info(f"[Event {event_id}] Loading uploaded photo identifiers")

        # The collaborator needs time to settle before it can answer
        await asyncio.sleep(self.config.warmup_delay)

        try:
            raw = await asyncio.wait_for(
                self.bridge.invoke_identifier_lookup(event_id),
                timeout=self.config.invoke_timeout,
            )
            if raw == ASYNC_STARTED:
                logger.debug(f"[Event {event_id}] Async lookup started, waiting for result...")
                raw = await self._await_result(event_id)
        except asyncio.TimeoutError:
            logger.warning(f"[Event {event_id}] Timeout waiting for identifier lookup")
            return []
        except BridgeError as e:
            logger.warning(f"[Event {event_id}] Bridge error during identifier lookup: {e}")
            return []
        except Exception as e:
            logger.error(f"[Event {event_id}] Unexpected error in photo fetch: {e}")
            return []

        if raw is None:
            logger.warning(f"[Event {event_id}] No identifier result received")
            return []

        identifiers = parse_identifier_response(raw)
        logger.info(f"[Event {event_id}] Received {len(identifiers)} photo identifiers")
        return identifiers

    async def refresh(self, event_id: str) -> IdentifierSnapshot:
        """Fetch identifiers and swap a fresh snapshot into the registry."""
        identifiers = await self.fetch_identifiers(event_id)
        snapshot = IdentifierSnapshot.from_identifiers(identifiers)
        self.registry.replace(event_id, snapshot)
        return snapshot

    async def _await_result(self, event_id: str) -> Optional[str]:
        future = self.bridge.completion_future(event_id)
        if future is not None:
            # The bridge owns the future; a timeout here must not cancel it
            return await asyncio.wait_for(asyncio.shield(future), timeout=self.config.result_timeout)
        return await self._poll_result(event_id)

    async def _poll_result(self, event_id: str) -> Optional[str]:
        for attempt in range(1, self.config.max_poll_attempts + 1):
            await asyncio.sleep(self.config.poll_interval)
            result = await self.bridge.poll_identifier_result(event_id)
            if result is not None and result.strip() not in EMPTY_RESULTS:
                logger.debug(f"[Event {event_id}] Async result ready after {attempt} checks")
                return result
        return None
