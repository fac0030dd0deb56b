import sys
import os
import json
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add src to sys.path
sys.path.append(os.path.join(os.path.dirname(__file__), "../src"))

from core.bridge.base import ASYNC_STARTED, Bridge, BridgeError
from photoshare.config import FetchConfig
from photoshare.dedup.fetcher import IdentifierFetcher
from photoshare.dedup.snapshot import SnapshotRegistry

FAST = FetchConfig(warmup_delay=0, invoke_timeout=0.2, poll_interval=0.01, max_poll_attempts=5)

RESULT = json.dumps({
    "success": True,
    "identifiers": [{"hash": "a" * 64, "perceptualHash": "ffffffffffffffff"}, "media-2"],
})


class PollingBridge(Bridge):
    """Starts asynchronously and publishes the result after a number of polls."""

    def __init__(self, result, ready_after=2):
        self.result = result
        self.ready_after = ready_after
        self.polls = 0

    async def invoke_identifier_lookup(self, event_id):
        return ASYNC_STARTED

    async def poll_identifier_result(self, event_id):
        self.polls += 1
        if self.polls < self.ready_after:
            return "undefined" if self.polls % 2 else None
        return self.result

    async def acquire_access_token(self):
        return None


def make_bridge(**overrides):
    bridge = MagicMock()
    bridge.invoke_identifier_lookup = AsyncMock(return_value=RESULT)
    bridge.poll_identifier_result = AsyncMock(return_value=None)
    bridge.completion_future = MagicMock(return_value=None)
    for name, value in overrides.items():
        setattr(bridge, name, value)
    return bridge


@pytest.mark.asyncio
async def test_synchronous_result_is_parsed():
    fetcher = IdentifierFetcher(make_bridge(), SnapshotRegistry(), FAST)

    identifiers = await fetcher.fetch_identifiers("event-1")

    assert [i.content_hash for i in identifiers] == ["a" * 64, "media-2"]


@pytest.mark.asyncio
async def test_async_result_is_polled_until_ready():
    bridge = PollingBridge(RESULT, ready_after=4)
    fetcher = IdentifierFetcher(bridge, SnapshotRegistry(), FAST)

    identifiers = await fetcher.fetch_identifiers("event-1")

    assert len(identifiers) == 2
    assert bridge.polls == 4


@pytest.mark.asyncio
async def test_polling_gives_up_after_max_attempts():
    bridge = PollingBridge(RESULT, ready_after=100)
    fetcher = IdentifierFetcher(bridge, SnapshotRegistry(), FAST)

    assert await fetcher.fetch_identifiers("event-1") == []
    assert bridge.polls == FAST.max_poll_attempts


@pytest.mark.asyncio
async def test_completion_future_is_awaited_instead_of_polling():
    loop = asyncio.get_running_loop()
    future = loop.create_future()
    bridge = make_bridge(
        invoke_identifier_lookup=AsyncMock(return_value=ASYNC_STARTED),
        completion_future=MagicMock(return_value=future),
    )
    loop.call_later(0.01, future.set_result, RESULT)
    fetcher = IdentifierFetcher(bridge, SnapshotRegistry(), FAST)

    identifiers = await fetcher.fetch_identifiers("event-1")

    assert len(identifiers) == 2
    bridge.poll_identifier_result.assert_not_called()


@pytest.mark.asyncio
async def test_completion_future_timeout_fails_open():
    future = asyncio.get_running_loop().create_future()
    bridge = make_bridge(
        invoke_identifier_lookup=AsyncMock(return_value=ASYNC_STARTED),
        completion_future=MagicMock(return_value=future),
    )
    fetcher = IdentifierFetcher(bridge, SnapshotRegistry(), FAST)

    assert await fetcher.fetch_identifiers("event-1") == []
    # the bridge still owns the future
    assert not future.cancelled()


@pytest.mark.asyncio
async def test_invoke_timeout_fails_open():
    async def hang(event_id):
        await asyncio.sleep(5)

    bridge = make_bridge(invoke_identifier_lookup=AsyncMock(side_effect=hang))
    fetcher = IdentifierFetcher(bridge, SnapshotRegistry(), FAST)

    assert await fetcher.fetch_identifiers("event-1") == []


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [BridgeError("unreachable"), RuntimeError("bug")])
async def test_bridge_exceptions_fail_open(error):
    bridge = make_bridge(invoke_identifier_lookup=AsyncMock(side_effect=error))
    fetcher = IdentifierFetcher(bridge, SnapshotRegistry(), FAST)

    assert await fetcher.fetch_identifiers("event-1") == []


@pytest.mark.asyncio
async def test_not_logged_in_fails_open():
    raw = json.dumps({"success": False, "reason": "user-not-logged-in"})
    fetcher = IdentifierFetcher(make_bridge(invoke_identifier_lookup=AsyncMock(return_value=raw)), SnapshotRegistry(), FAST)

    assert await fetcher.fetch_identifiers("event-1") == []


@pytest.mark.asyncio
async def test_refresh_swaps_snapshot_into_registry():
    registry = SnapshotRegistry()
    fetcher = IdentifierFetcher(make_bridge(), registry, FAST)

    snapshot = await fetcher.refresh("event-1")

    assert registry.get("event-1") is snapshot
    assert "a" * 64 in snapshot.by_content_hash
    assert "ffffffffffffffff" in snapshot.by_perceptual_hash


@pytest.mark.asyncio
async def test_refresh_after_failure_stores_empty_snapshot():
    registry = SnapshotRegistry()
    fetcher = IdentifierFetcher(make_bridge(invoke_identifier_lookup=AsyncMock(side_effect=BridgeError("x"))), registry, FAST)

    snapshot = await fetcher.refresh("event-1")

    assert len(snapshot) == 0
    assert registry.get("event-1") is snapshot
