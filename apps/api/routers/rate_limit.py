"""Fixed-window rate limiting dependency with Redis and in-process counters."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from fastapi import HTTPException, Request
import redis.asyncio as redis

from config import settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "ytsa:rate"


@dataclass(frozen=True)
class WindowHit:
    count: int
    window_start: int
    window_seconds: int

    @property
    def reset_at(self) -> int:
        return self.window_start + self.window_seconds


def window_start_for(now: float, window_seconds: int) -> int:
    """Windows are aligned to multiples of their length, so they reset on fixed boundaries."""
    return int(now // window_seconds) * window_seconds


class MemoryRateLimitBackend:
    """Process-local counters. Correct only for single-instance deployments."""

    def __init__(self) -> None:
        self._counters: Dict[str, Tuple[int, int]] = {}
        self._lock = asyncio.Lock()

    async def hit(self, key: str, window_seconds: int, now: Optional[float] = None) -> WindowHit:
        current = time.time() if now is None else now
        window_start = window_start_for(current, window_seconds)
        async with self._lock:
            count, started = self._counters.get(key, (0, window_start))
            if started != window_start:
                count = 0
            count += 1
            self._counters[key] = (count, window_start)
            if len(self._counters) > 10000:
                self._prune(current)
        return WindowHit(count=count, window_start=window_start, window_seconds=window_seconds)

    def clear(self) -> None:
        self._counters.clear()

    def _prune(self, now: float) -> None:
        # Keys do not carry their window length, so drop anything older than the longest scope.
        horizon = now - max(
            settings.RATE_LIMIT_AUTH_WINDOW_SECONDS,
            settings.RATE_LIMIT_API_WINDOW_SECONDS,
            settings.RATE_LIMIT_GENERATION_WINDOW_SECONDS,
        )
        stale = [key for key, (_count, started) in self._counters.items() if started < horizon]
        for key in stale:
            self._counters.pop(key, None)


class RedisRateLimitBackend:
    """Counters shared by every API instance through Redis."""

    def __init__(self, redis_url: str) -> None:
        self.redis_url = redis_url

    async def hit(self, key: str, window_seconds: int, now: Optional[float] = None) -> WindowHit:
        current = time.time() if now is None else now
        window_start = window_start_for(current, window_seconds)
        window_key = f"{key}:{window_start}"
        redis_client = redis.from_url(self.redis_url, decode_responses=True)
        try:
            count = await redis_client.incr(window_key)
            if count == 1:
                await redis_client.expire(window_key, window_seconds)
        finally:
            await redis_client.aclose()
        return WindowHit(count=int(count), window_start=window_start, window_seconds=window_seconds)


_local_backend = MemoryRateLimitBackend()


def _configured_backend(request: Request):
    override = getattr(request.app.state, "rate_limit_backend", None)
    if override is not None:
        return override
    if (settings.RATE_LIMIT_BACKEND or "").strip().lower() == "memory":
        return _local_backend
    return RedisRateLimitBackend(settings.REDIS_URL)


def _client_identifier(request: Request) -> str:
    if request.client and request.client.host:
        return request.client.host
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return "unknown"


async def consume(request: Request, prefix: str, window_seconds: int) -> WindowHit:
    key = f"{KEY_PREFIX}:{prefix}:{_client_identifier(request)}"
    backend = _configured_backend(request)
    try:
        return await backend.hit(key, window_seconds)
    except Exception as exc:
        if backend is _local_backend:
            raise
        logger.warning("Rate limit store unavailable, using local counters: %s", exc)
        return await _local_backend.hit(key, window_seconds)


def rate_limit(prefix: str, limit: int, window_seconds: int) -> Callable[[Request], None]:
    """Return a FastAPI dependency that enforces per-client request quotas."""

    async def _dependency(request: Request):
        if getattr(request.app.state, "disable_rate_limits", False):
            return

        hit = await consume(request, prefix, window_seconds)
        if hit.count > limit:
            retry_after = max(int(math.ceil(hit.reset_at - time.time())), 1)
            raise HTTPException(
                status_code=429,
                detail=f"Rate limit exceeded for {prefix}. Try again later.",
                headers={"Retry-After": str(retry_after)},
            )

    return _dependency


def auth_rate_limit() -> Callable[[Request], None]:
    return rate_limit(
        "auth",
        limit=settings.RATE_LIMIT_AUTH_MAX,
        window_seconds=settings.RATE_LIMIT_AUTH_WINDOW_SECONDS,
    )


def api_rate_limit() -> Callable[[Request], None]:
    return rate_limit(
        "api",
        limit=settings.RATE_LIMIT_API_MAX,
        window_seconds=settings.RATE_LIMIT_API_WINDOW_SECONDS,
    )


def generation_rate_limit() -> Callable[[Request], None]:
    return rate_limit(
        "generation",
        limit=settings.RATE_LIMIT_GENERATION_MAX,
        window_seconds=settings.RATE_LIMIT_GENERATION_WINDOW_SECONDS,
    )
