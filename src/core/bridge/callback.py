import asyncio
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from .base import ASYNC_STARTED, Bridge, BridgeError

logger = logging.getLogger(__name__)

# dispatch(command, params) -> optional synchronous answer
Dispatch = Callable[[str, Dict[str, Any]], Optional[str]]

IDENTIFIERS_COMMAND = "identifiers"
TOKEN_COMMAND = "token"


def _resolve(future: asyncio.Future, value: Optional[str]):
    if not future.done():
        future.set_result(value)


class CommandOutbox:
    """Default dispatch: queues commands until the host collects them.

    Every command is answered asynchronously, so identifier lookups report
    ASYNC_STARTED and wait for ``deliver_identifiers``.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._commands: List[Dict[str, Any]] = []

    def __call__(self, command: str, params: Dict[str, Any]) -> Optional[str]:
        with self._lock:
            self._commands.append({"command": command, **params})
        logger.debug(f"Queued '{command}' for the host")
        return None

    def drain(self) -> List[Dict[str, Any]]:
        with self._lock:
            commands, self._commands = self._commands, []
        return commands


class CallbackBridge(Bridge):
    """Bridge driven by a host that answers through callbacks.

    The host receives commands through ``dispatch`` and reports results by
    calling ``deliver_identifiers``, ``deliver_token`` or
    ``deliver_token_error``. Those callbacks may run on any thread; results
    are handed to the event loop that issued the request.
    """

    def __init__(self, dispatch: Optional[Dispatch] = None):
        # Without a dispatch the host pulls commands from ``outbox``
        self.outbox = CommandOutbox() if dispatch is None else None
        self._dispatch = dispatch or self.outbox
        self._lock = threading.Lock()
        self._identifier_futures: Dict[str, asyncio.Future] = {}
        self._token_future: Optional[asyncio.Future] = None

    async def invoke_identifier_lookup(self, event_id: str) -> Optional[str]:
        future = asyncio.get_running_loop().create_future()
        with self._lock:
            self._identifier_futures[event_id] = future

        answer = self._send(IDENTIFIERS_COMMAND, {"event_id": event_id})
        if answer is not None and answer != ASYNC_STARTED:
            with self._lock:
                self._identifier_futures.pop(event_id, None)
            return answer
        return ASYNC_STARTED

    async def poll_identifier_result(self, event_id: str) -> Optional[str]:
        with self._lock:
            future = self._identifier_futures.get(event_id)
            if future is None or not future.done():
                return None
            self._identifier_futures.pop(event_id, None)
        return future.result()

    def completion_future(self, event_id: str) -> Optional[asyncio.Future]:
        with self._lock:
            return self._identifier_futures.get(event_id)

    async def acquire_access_token(self) -> Optional[str]:
        future = asyncio.get_running_loop().create_future()
        with self._lock:
            self._token_future = future
        try:
            self._send(TOKEN_COMMAND, {})
            return await future
        finally:
            with self._lock:
                if self._token_future is future:
                    self._token_future = None

    def deliver_identifiers(self, event_id: str, raw_result: Optional[str]):
        with self._lock:
            future = self._identifier_futures.get(event_id)
        if future is None:
            logger.warning(f"[Event {event_id}] Identifier result delivered with no pending lookup")
            return
        future.get_loop().call_soon_threadsafe(_resolve, future, raw_result)

    def deliver_token(self, token: Optional[str]):
        with self._lock:
            future = self._token_future
        if future is None:
            logger.warning("Token delivered with no pending request")
            return
        future.get_loop().call_soon_threadsafe(_resolve, future, token)

    def deliver_token_error(self, error: str):
        logger.error(f"Host reported token error: {error}")
        self.deliver_token(None)

    def _send(self, command: str, params: Dict[str, Any]) -> Optional[str]:
        try:
            return self._dispatch(command, params)
        except Exception as e:
            raise BridgeError(f"Dispatch of '{command}' failed: {e}") from e
