import sys
import os
import json
import asyncio
import threading

import httpx
import pytest

# Add src to sys.path
sys.path.append(os.path.join(os.path.dirname(__file__), "../src"))

from core.bridge.base import ASYNC_STARTED, BridgeError
from core.bridge.callback import CallbackBridge
from core.bridge.factory import BridgeFactory
from core.bridge.http import HttpBridge
from core.transport.http import UPLOAD_PATH, HttpTransport
from photoshare.config import FetchConfig
from photoshare.dedup.fetcher import IdentifierFetcher
from photoshare.dedup.snapshot import SnapshotRegistry
from photoshare.token.cache import TokenCache

BASE_URL = "http://bridge.test"


def http_bridge(handler) -> HttpBridge:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=BASE_URL)
    return HttpBridge(base_url=BASE_URL, token_poll_interval=0, client=client)


@pytest.mark.asyncio
async def test_http_bridge_async_lookup_and_result_slot():
    state = {"ready": False}

    def handler(request: httpx.Request):
        if request.method == "POST" and request.url.path == "/bridge/identifiers/event-1":
            return httpx.Response(202, json={"status": ASYNC_STARTED})
        if request.url.path == "/bridge/identifiers/event-1/result":
            if not state["ready"]:
                state["ready"] = True
                return httpx.Response(204)
            return httpx.Response(200, text='{"success": true, "identifiers": []}')
        return httpx.Response(404)

    bridge = http_bridge(handler)

    assert await bridge.invoke_identifier_lookup("event-1") == ASYNC_STARTED
    assert await bridge.poll_identifier_result("event-1") is None
    assert json.loads(await bridge.poll_identifier_result("event-1"))["success"] is True
    assert bridge.completion_future("event-1") is None
    await bridge.close()


@pytest.mark.asyncio
async def test_http_bridge_synchronous_answer():
    bridge = http_bridge(lambda request: httpx.Response(200, text='{"success": false, "reason": "user-not-logged-in"}'))

    raw = await bridge.invoke_identifier_lookup("event-1")

    assert json.loads(raw)["reason"] == "user-not-logged-in"
    await bridge.close()


@pytest.mark.asyncio
async def test_http_bridge_token_waits_through_pending_answers():
    answers = [httpx.Response(202), httpx.Response(202), httpx.Response(200, json={"token": "jwt-token"})]
    paths = []

    def handler(request):
        paths.append(request.url.path)
        return answers.pop(0)

    bridge = http_bridge(handler)

    assert await bridge.acquire_access_token() == "jwt-token"
    assert paths == ["/bridge/token", "/bridge/token/result", "/bridge/token/result"]
    await bridge.close()


@pytest.mark.asyncio
async def test_http_bridge_token_error_payload_is_none():
    bridge = http_bridge(lambda request: httpx.Response(200, json={"error": "no session"}))
    assert await bridge.acquire_access_token() is None
    await bridge.close()


@pytest.mark.asyncio
async def test_http_bridge_failures_raise_bridge_error():
    def unreachable(request):
        raise httpx.ConnectError("refused", request=request)

    bridge = http_bridge(unreachable)
    with pytest.raises(BridgeError):
        await bridge.invoke_identifier_lookup("event-1")
    await bridge.close()

    bridge = http_bridge(lambda request: httpx.Response(500, text="oops"))
    with pytest.raises(BridgeError):
        await bridge.acquire_access_token()
    await bridge.close()

    bridge = http_bridge(lambda request: httpx.Response(200, text="not json"))
    with pytest.raises(BridgeError):
        await bridge.acquire_access_token()
    await bridge.close()


@pytest.mark.asyncio
async def test_callback_bridge_delivers_identifiers_from_another_thread():
    commands = []
    bridge = CallbackBridge(lambda command, params: commands.append((command, params)))

    assert await bridge.invoke_identifier_lookup("event-1") == ASYNC_STARTED
    future = bridge.completion_future("event-1")
    assert not future.done()

    worker = threading.Thread(target=bridge.deliver_identifiers, args=("event-1", '{"success": true}'))
    worker.start()
    worker.join()

    assert await asyncio.wait_for(future, timeout=1) == '{"success": true}'
    assert await bridge.poll_identifier_result("event-1") == '{"success": true}'
    assert commands == [("identifiers", {"event_id": "event-1"})]


@pytest.mark.asyncio
async def test_callback_bridge_synchronous_answer():
    bridge = CallbackBridge(lambda command, params: '{"success": false}')

    assert await bridge.invoke_identifier_lookup("event-1") == '{"success": false}'
    assert bridge.completion_future("event-1") is None


@pytest.mark.asyncio
async def test_callback_bridge_token_roundtrip():
    loop = asyncio.get_running_loop()
    bridge = CallbackBridge(lambda command, params: loop.call_later(0.01, bridge.deliver_token, "jwt-token") and None)

    assert await bridge.acquire_access_token() == "jwt-token"


@pytest.mark.asyncio
async def test_callback_bridge_token_error():
    loop = asyncio.get_running_loop()
    bridge = CallbackBridge(lambda command, params: loop.call_later(0.01, bridge.deliver_token_error, "expired") and None)

    assert await bridge.acquire_access_token() is None


@pytest.mark.asyncio
async def test_callback_bridge_dispatch_failure_is_bridge_error():
    def dispatch(command, params):
        raise RuntimeError("host detached")

    bridge = CallbackBridge(dispatch)
    with pytest.raises(BridgeError):
        await bridge.acquire_access_token()
    # no stale request is left behind
    bridge.deliver_token("late")


async def serve_host(bridge: CallbackBridge, answers: dict):
    """Collect queued commands and answer them from a host thread."""
    while True:
        for command in bridge.outbox.drain():
            if command["command"] == "identifiers":
                target, args = bridge.deliver_identifiers, (command["event_id"], answers["identifiers"])
            else:
                target, args = bridge.deliver_token, (answers["token"],)
            worker = threading.Thread(target=target, args=args)
            worker.start()
            worker.join()
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_configured_callback_bridge_serves_token_and_identifiers():
    bridge = BridgeFactory.get_bridge("callback")
    answers = {
        "token": "jwt-token",
        "identifiers": json.dumps({"success": True, "identifiers": [{"hash": "a" * 64}]}),
    }
    host = asyncio.create_task(serve_host(bridge, answers))
    try:
        cache = TokenCache(bridge)
        fetcher = IdentifierFetcher(bridge, SnapshotRegistry(), FetchConfig(warmup_delay=0))

        assert await asyncio.wait_for(cache.get_token(), timeout=2) == "jwt-token"
        identifiers = await asyncio.wait_for(fetcher.fetch_identifiers("event-1"), timeout=2)
        assert [i.content_hash for i in identifiers] == ["a" * 64]
    finally:
        host.cancel()
    assert bridge.outbox.drain() == []


def test_bridge_factory():
    assert isinstance(BridgeFactory.get_bridge("callback"), CallbackBridge)
    with pytest.raises(ValueError):
        BridgeFactory.get_bridge("carrier-pigeon")


@pytest.mark.asyncio
async def test_http_transport_posts_multipart_with_bearer_token():
    seen = {}

    def handler(request: httpx.Request):
        seen["path"] = request.url.path
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = request.read()
        return httpx.Response(200, json={"ok": True})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://upload.test")
    transport = HttpTransport(base_url="http://upload.test", client=client)

    ok = await transport.upload("event-1", b"jpeg-bytes", {"fileName": "a.jpg", "mediaType": "photo"}, "jwt-token")

    assert ok is True
    assert seen["path"] == UPLOAD_PATH
    assert seen["auth"] == "Bearer jwt-token"
    assert b"jpeg-bytes" in seen["body"]
    assert b'name="eventId"' in seen["body"]
    await transport.close()


@pytest.mark.asyncio
async def test_http_transport_reports_failures_as_false():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(403)), base_url="http://upload.test")
    transport = HttpTransport(base_url="http://upload.test", client=client)

    assert await transport.upload("event-1", b"x", {"fileName": "a.jpg"}, "jwt-token") is False
    await transport.close()
