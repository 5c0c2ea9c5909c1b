"""
Warden API - Fixed-Window Rate Limiter
========================================

What:  Per-key request counting over fixed time windows, with independent
       limiter instances isolated by key prefix.
How:   Each key ("<prefix>:<client>") maps to one RateLimitEntry
       {count, reset_time}. The first request of a window creates the
       entry, later requests increment it, and once reset_time has passed
       the entry is replaced by a fresh one. A background sweeper deletes
       expired entries regardless of traffic.
Who:   RateLimitMiddleware (global "standard" limiter) and the RateLimit
       route dependency ("strict" limiter on register/login).

Algorithm (per request):
    1. key = prefix + ":" + key_func(request)
    2. entry absent or expired → {count: 1, reset_time: now + window}, admit
    3. otherwise count += 1; count > max → reject with retry-after
    4. headers: limit, remaining = max(0, max - count), reset (epoch seconds)

Storage:
    RateLimitStore is the seam between the algorithm and where counters
    live. InMemoryRateLimitStore keeps them in a per-process dict, so each
    worker process counts independently. A shared store (e.g. Redis) would
    implement the same four methods.

Concurrency:
    The read-increment-write of a key runs under an asyncio.Lock, so two
    interleaved requests from one client never lose an increment even when
    the store's methods suspend.
"""

import asyncio
import logging
import math
import time
from abc import ABC, abstractmethod
from contextlib import suppress
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"


def now_ms() -> int:
    return int(time.time() * 1000)


def default_client_key(request: Any) -> str:
    """
    Identify the client behind a request.

    First address of X-Forwarded-For (trimmed), else X-Real-IP, else
    "unknown". Every request that cannot be attributed shares the
    "unknown" bucket.
    """
    headers = request.headers
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return UNKNOWN_CLIENT


@dataclass(frozen=True)
class RateLimitEntry:
    """Counter state for one key. reset_time is epoch milliseconds."""

    count: int
    reset_time: int

    def is_expired(self, now: int) -> bool:
        return self.reset_time <= now


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one rate-limit check."""

    allowed: bool
    limit: int
    count: int
    reset_time: int
    retry_after: Optional[int] = None

    @property
    def remaining(self) -> int:
        if not self.allowed:
            return 0
        return max(0, self.limit - self.count)

    def headers(self) -> Dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(math.ceil(self.reset_time / 1000)),
        }
        if self.retry_after is not None:
            headers["Retry-After"] = str(self.retry_after)
        return headers


# ══════════════════════════════════════════════════════════════════════════
# Stores
# ══════════════════════════════════════════════════════════════════════════


class RateLimitStore(ABC):
    """Where rate-limit entries live. One live entry per key."""

    @abstractmethod
    async def get(self, key: str) -> Optional[RateLimitEntry]:
        """Return the entry for key, expired or not, or None."""

    @abstractmethod
    async def set(self, key: str, entry: RateLimitEntry) -> None:
        """Store entry for key, replacing any previous one."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    @abstractmethod
    async def sweep(self, now: int) -> int:
        """Delete every entry expired at `now`; return how many were removed."""


class InMemoryRateLimitStore(RateLimitStore):
    """Single-process store backed by a dict."""

    def __init__(self) -> None:
        self._entries: Dict[str, RateLimitEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> Optional[RateLimitEntry]:
        return self._entries.get(key)

    async def set(self, key: str, entry: RateLimitEntry) -> None:
        self._entries[key] = entry

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def sweep(self, now: int) -> int:
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)


# ══════════════════════════════════════════════════════════════════════════
# Limiter
# ══════════════════════════════════════════════════════════════════════════


class RateLimiter:
    """
    One named limiter configuration.

    Args:
        store:        shared entry store
        window_ms:    window duration in milliseconds
        max_requests: requests admitted per window
        key_prefix:   isolates this limiter's counters from other instances
        message:      client-facing rejection message
        key_func:     maps a request to a client identifier
        clock:        returns the current epoch time in milliseconds
    """

    def __init__(
        self,
        store: RateLimitStore,
        *,
        window_ms: int = 60_000,
        max_requests: int = 100,
        key_prefix: str = "default",
        message: str = "Too many requests, please try again later.",
        key_func: Callable[[Any], str] = default_client_key,
        clock: Callable[[], int] = now_ms,
    ):
        if window_ms <= 0:
            raise ValueError("window_ms must be positive")
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        self.store = store
        self.window_ms = window_ms
        self.max_requests = max_requests
        self.key_prefix = key_prefix
        self.message = message
        self.key_func = key_func
        self.clock = clock
        self._lock = asyncio.Lock()

    def key_for(self, client_id: str) -> str:
        return f"{self.key_prefix}:{client_id}"

    async def hit(self, client_id: str) -> RateLimitDecision:
        """Count one request from client_id and decide whether to admit it."""
        key = self.key_for(client_id)
        async with self._lock:
            now = self.clock()
            entry = await self.store.get(key)
            if entry is None or entry.is_expired(now):
                entry = RateLimitEntry(count=1, reset_time=now + self.window_ms)
            else:
                entry = RateLimitEntry(count=entry.count + 1, reset_time=entry.reset_time)
            await self.store.set(key, entry)

        if entry.count > self.max_requests:
            retry_after = math.ceil((entry.reset_time - now) / 1000)
            logger.warning(
                "Rate limit '%s' exceeded for %s: %d requests (max %d)",
                self.key_prefix,
                client_id,
                entry.count,
                self.max_requests,
            )
            return RateLimitDecision(
                allowed=False,
                limit=self.max_requests,
                count=entry.count,
                reset_time=entry.reset_time,
                retry_after=retry_after,
            )

        return RateLimitDecision(
            allowed=True,
            limit=self.max_requests,
            count=entry.count,
            reset_time=entry.reset_time,
        )

    async def check(self, request: Any) -> RateLimitDecision:
        return await self.hit(self.key_func(request))


# ══════════════════════════════════════════════════════════════════════════
# Background sweep
# ══════════════════════════════════════════════════════════════════════════


class RateLimitSweeper:
    """
    Periodically deletes expired entries from a store.

    Lifecycle: start() on application startup, await stop() on shutdown.
    """

    def __init__(
        self,
        store: RateLimitStore,
        interval: float = 60.0,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.interval = interval
        self.clock = clock
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="rate-limit-sweeper")
        logger.debug("Rate limit sweeper started (every %.0fs)", self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.debug("Rate limit sweeper stopped")

    async def sweep_once(self) -> int:
        removed = await self.store.sweep(self.clock())
        if removed:
            logger.debug("Swept %d expired rate limit entries", removed)
        return removed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.sweep_once()
            except Exception:
                logger.exception("Rate limit sweep failed")
