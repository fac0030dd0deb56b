import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from core.bridge.base import Bridge, BridgeError
from core.storage.kv import KeyValueStore
from photoshare.config import TokenConfig
from photoshare.utils.metrics import TOKEN_REQUESTS_TOTAL

logger = logging.getLogger(__name__)

KEY_TOKEN = "jwt_token"
KEY_ISSUED_AT = "jwt_timestamp"
KEY_LAST_ATTEMPT = "jwt_request_timestamp"


@dataclass(frozen=True)
class CachedToken:
    value: str
    issued_at: float  # Unix timestamp

    def age(self, now: float) -> float:
        return now - self.issued_at


def preview(token: Optional[str]) -> str:
    if not token:
        return "<none>"
    if len(token) <= 20:
        return f"<{len(token)} chars>"
    return f"{token[:10]}...{token[-10:]}"


def _as_timestamp(raw: Any, key: str) -> Optional[float]:
    if raw is None:
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        logger.warning(f"[Token] Ignoring persisted {key}: not a timestamp ({raw!r})")
        return None


class TokenCache:
    """
    Single-flight cache for the collaborator's access token.

    All concurrent callers share one acquisition. A token younger than the
    fresh window is served without touching the bridge, and a new
    acquisition is refused (resolved with None) while the previous attempt
    is inside the throttle window.

    ``get_token`` is synchronous and hands each caller its own future that
    follows the shared acquisition, so a caller that gives up (cancels or
    times out) does not take the other waiters down with it.
    """

    def __init__(
        self,
        bridge: Bridge,
        store: Optional[KeyValueStore] = None,
        config: Optional[TokenConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.bridge = bridge
        self.store = store
        self.config = config or TokenConfig()
        self._clock = clock
        self._lock = threading.Lock()
        self._cached: Optional[CachedToken] = None
        self._last_attempt: Optional[float] = None
        self._pending: Optional[asyncio.Future] = None
        self._task: Optional[asyncio.Task] = None

    def get_token(self, requester_id: str = "default") -> "asyncio.Future[Optional[str]]":
        loop = asyncio.get_running_loop()
        with self._lock:
            now = self._clock()

            if self._cached is not None:
                if self._cached.age(now) < self.config.fresh_duration:
                    logger.debug(f"[Token {requester_id}] Serving cached token (age {self._cached.age(now):.0f}s)")
                    TOKEN_REQUESTS_TOTAL.labels(outcome="cached").inc()
                    return self._resolved(loop, self._cached.value)
                logger.info(f"[Token {requester_id}] Cached token expired, clearing")
                self._cached = None

            if self._pending is not None and not self._pending.done():
                logger.debug(f"[Token {requester_id}] Joining in-flight acquisition")
                TOKEN_REQUESTS_TOTAL.labels(outcome="coalesced").inc()
                return self._follow(loop, self._pending)

            if self._last_attempt is not None and now - self._last_attempt < self.config.throttle_duration:
                logger.warning(f"[Token {requester_id}] Request throttled ({now - self._last_attempt:.1f}s since last attempt)")
                TOKEN_REQUESTS_TOTAL.labels(outcome="throttled").inc()
                return self._resolved(loop, None)

            self._last_attempt = now
            future = loop.create_future()
            self._pending = future
            self._task = loop.create_task(self._acquire(future, requester_id))

        logger.info(f"🔑 [Token {requester_id}] Requesting fresh token from bridge")
        return self._follow(loop, future)

    async def load(self) -> Optional[CachedToken]:
        """Restore persisted state. A persisted token past the fresh window is ignored."""
        if self.store is None:
            return None
        ns = self.config.namespace
        try:
            value = await self.store.get(ns, KEY_TOKEN)
            issued_at = await self.store.get(ns, KEY_ISSUED_AT)
            last_attempt = await self.store.get(ns, KEY_LAST_ATTEMPT)
        except Exception as e:
            logger.warning(f"[Token] Could not load persisted token: {e}")
            return None

        with self._lock:
            now = self._clock()
            last_attempt = _as_timestamp(last_attempt, KEY_LAST_ATTEMPT)
            issued_at = _as_timestamp(issued_at, KEY_ISSUED_AT)
            if last_attempt is not None:
                self._last_attempt = last_attempt
            if isinstance(value, str) and value.strip() and issued_at is not None:
                cached = CachedToken(value, issued_at)
                if cached.age(now) < self.config.fresh_duration:
                    self._cached = cached
                    logger.info(f"[Token] Restored persisted token (age {cached.age(now):.0f}s)")
            return self._cached

    def cache_token(self, value: str) -> None:
        """Cache a token obtained outside the bridge. Persisting it is up to the caller."""
        if not value or not value.strip():
            raise ValueError("token must not be blank")
        with self._lock:
            self._cached = CachedToken(value, self._clock())
        logger.info(f"[Token] Cached external token {preview(value)}")

    async def force_clear(self) -> None:
        with self._lock:
            self._cached = None
            self._last_attempt = None
            pending, self._pending = self._pending, None
        if pending is not None and not pending.done():
            pending.set_result(None)

        if self.store is not None:
            try:
                await self.store.delete(self.config.namespace, KEY_TOKEN, KEY_ISSUED_AT, KEY_LAST_ATTEMPT)
            except Exception as e:
                logger.warning(f"[Token] Could not clear persisted token: {e}")
        logger.info("🔄 [Token] Cache force cleared")

    def token_age(self) -> Optional[float]:
        """Seconds since the cached token was issued, None without a token."""
        cached = self._cached
        return cached.age(self._clock()) if cached is not None else None

    def has_valid_token(self) -> bool:
        cached = self._cached
        return cached is not None and cached.age(self._clock()) < self.config.fresh_duration

    def debug_info(self) -> Dict[str, Any]:
        with self._lock:
            now = self._clock()
            cached = self._cached
            last_attempt = self._last_attempt
            in_progress = self._pending is not None and not self._pending.done()
        return {
            "has_token": cached is not None,
            "token_length": len(cached.value) if cached else 0,
            "token_age": cached.age(now) if cached else None,
            "last_request_age": now - last_attempt if last_attempt is not None else None,
            "is_request_in_progress": in_progress,
            "is_throttled": last_attempt is not None and now - last_attempt < self.config.throttle_duration,
        }

    async def _acquire(self, future: asyncio.Future, requester_id: str) -> None:
        token: Optional[str] = None
        try:
            try:
                token = await asyncio.wait_for(
                    self.bridge.acquire_access_token(),
                    timeout=self.config.request_timeout,
                )
            except asyncio.TimeoutError:
                logger.warning(f"[Token {requester_id}] Token request timed out after {self.config.request_timeout}s")
            except BridgeError as e:
                logger.warning(f"[Token {requester_id}] Bridge error while requesting token: {e}")
            except Exception as e:
                logger.error(f"[Token {requester_id}] Unexpected error while requesting token: {e}")

            if token is not None and not token.strip():
                token = None

            with self._lock:
                # force_clear() may have abandoned this acquisition
                current = self._pending is future
                if current:
                    self._pending = None
                    if token is not None:
                        self._cached = CachedToken(token, self._clock())
                cached = self._cached
                last_attempt = self._last_attempt

            # Waiters must not wait on the store
            if not future.done():
                future.set_result(token if current else None)

            if current:
                if token is not None:
                    logger.info(f"✅ [Token {requester_id}] Token received {preview(token)}")
                    TOKEN_REQUESTS_TOTAL.labels(outcome="acquired").inc()
                    await self._persist({
                        KEY_TOKEN: cached.value,
                        KEY_ISSUED_AT: cached.issued_at,
                        KEY_LAST_ATTEMPT: last_attempt,
                    })
                else:
                    logger.warning(f"❌ [Token {requester_id}] No token available")
                    TOKEN_REQUESTS_TOTAL.labels(outcome="failed").inc()
                    await self._persist({KEY_LAST_ATTEMPT: last_attempt})
        finally:
            with self._lock:
                if self._pending is future:
                    self._pending = None
            if not future.done():
                future.set_result(None)

    async def _persist(self, values: Dict[str, Any]) -> None:
        if self.store is None:
            return
        try:
            await asyncio.wait_for(
                self.store.set_many(self.config.namespace, values),
                timeout=self.config.request_timeout,
            )
        except Exception as e:
            logger.warning(f"[Token] Could not persist token state: {e}")

    @staticmethod
    def _follow(loop: asyncio.AbstractEventLoop, shared: asyncio.Future) -> asyncio.Future:
        """A caller's own view of the shared acquisition. Cancelling it leaves the others untouched."""
        waiter = loop.create_future()

        def _relay(done: asyncio.Future) -> None:
            if not waiter.done():
                waiter.set_result(None if done.cancelled() else done.result())

        shared.add_done_callback(_relay)
        return waiter

    @staticmethod
    def _resolved(loop: asyncio.AbstractEventLoop, value: Optional[str]) -> asyncio.Future:
        future = loop.create_future()
        future.set_result(value)
        return future
