"""
Rate limiting and response caching.

Both are explicit objects handed to routes as FastAPI dependencies and keyed
by client identity and route, so tests can swap them and several server
processes can share state through redis.
"""
import asyncio
import logging
import math
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

import redis.asyncio as redis
from fastapi import Depends, Request

from tramoo.core.config import settings
from tramoo.core.exceptions import RateLimited

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    retry_after: float = 0.0


class RateLimiter(Protocol):
    async def hit(self, key: str) -> RateLimitResult:
        """Count one request against `key`."""
        ...


class MemoryRateLimiter:
    """Fixed-window counter held in this process."""

    def __init__(self, limit: int, window_seconds: float, clock: Clock = time.monotonic):
        self.limit = limit
        self.window = window_seconds
        self._clock = clock
        self._windows: dict[str, tuple[float, int]] = {}
        self._lock = asyncio.Lock()

    async def hit(self, key: str) -> RateLimitResult:
        async with self._lock:
            now = self._clock()
            started, count = self._windows.get(key, (now, 0))
            if now - started >= self.window:
                started, count = now, 0
            if count >= self.limit:
                return RateLimitResult(False, self.window - (now - started))
            self._windows[key] = (started, count + 1)
            self._evict_expired(now)
            return RateLimitResult(True)

    def _evict_expired(self, now: float) -> None:
        expired = [k for k, (started, _) in self._windows.items() if now - started >= self.window]
        for k in expired:
            del self._windows[k]

    async def reset(self) -> None:
        async with self._lock:
            self._windows.clear()


class RedisRateLimiter:
    """Fixed-window counter in redis, shared by every API process.

    The window key is created with its TTL (SET NX EX) and incremented in one
    MULTI/EXEC, so a key never exists without an expiry.
    """

    def __init__(self, client: redis.Redis, limit: int, window_seconds: float, prefix: str = "tramoo:rl"):
        self.client = client
        self.limit = limit
        self.window = window_seconds
        self.prefix = prefix

    async def hit(self, key: str) -> RateLimitResult:
        redis_key = f"{self.prefix}:{key}"
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.set(redis_key, 0, ex=math.ceil(self.window), nx=True)
            pipe.incr(redis_key)
            _, count = await pipe.execute()
        if count > self.limit:
            ttl = await self.client.ttl(redis_key)
            return RateLimitResult(False, float(ttl if ttl and ttl > 0 else self.window))
        return RateLimitResult(True)


class ResponseCache:
    """In-process cache with a per-entry TTL and LRU eviction past max_entries."""

    def __init__(self, ttl_seconds: float, max_entries: int = 1024, clock: Clock = time.monotonic):
        self.ttl = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return value

    async def set(self, key: str, value: Any) -> None:
        self._entries[key] = (self._clock() + self.ttl, value)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def delete_prefix(self, prefix: str) -> int:
        keys = [k for k in self._entries if k.startswith(prefix)]
        for k in keys:
            del self._entries[k]
        return len(keys)

    def __len__(self) -> int:
        return len(self._entries)


def _build_limiter(limit: int, window: float, prefix: str) -> RateLimiter:
    if settings.RATE_LIMIT_BACKEND == "redis":
        client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)
        return RedisRateLimiter(client, limit, window, prefix=prefix)
    return MemoryRateLimiter(limit, window)


_api_limiter: RateLimiter | None = None
_chat_limiter: RateLimiter | None = None
_chat_cache: ResponseCache | None = None


def get_api_rate_limiter() -> RateLimiter:
    global _api_limiter
    if _api_limiter is None:
        _api_limiter = _build_limiter(
            settings.RATE_LIMIT_REQUESTS, settings.RATE_LIMIT_WINDOW_SECONDS, "tramoo:rl:api"
        )
    return _api_limiter


def get_chat_rate_limiter() -> RateLimiter:
    """One chat call per CHAT_MIN_INTERVAL_SECONDS per (user, route)."""
    global _chat_limiter
    if _chat_limiter is None:
        _chat_limiter = _build_limiter(1, settings.CHAT_MIN_INTERVAL_SECONDS, "tramoo:rl:chat")
    return _chat_limiter


def get_response_cache() -> ResponseCache:
    global _chat_cache
    if _chat_cache is None:
        _chat_cache = ResponseCache(settings.CHAT_CACHE_TTL_SECONDS, settings.CHAT_CACHE_MAX_ENTRIES)
    return _chat_cache


def client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def enforce(limiter: RateLimiter, key: str) -> None:
    result = await limiter.hit(key)
    if not result.allowed:
        logger.info("Rate limit hit: %s", key)
        raise RateLimited(result.retry_after)


async def enforce_api_rate_limit(
    request: Request,
    limiter: RateLimiter = Depends(get_api_rate_limiter),
) -> None:
    """Router-level dependency: RATE_LIMIT_REQUESTS per window per client IP."""
    await enforce(limiter, f"{client_key(request)}:api")
