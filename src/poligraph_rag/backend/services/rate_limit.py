# src/poligraph_rag/backend/services/rate_limit.py

"""
[Responsibility] RateLimiter: per-client sliding-window gate in front of the retrieval pipeline, backed by a
                 Redis sorted set (redis-py asyncio).
[Boundary] Fail-open: no store configured, or a store error at call time, disables the limiter for the rest
           of the process (one log line) and admits the request. Never blocks traffic on its own failure.
[Upstream] services/chat_service.py calls `limit(client_id)` before the pipeline; api resolves client ids.
[Downstream] RateLimitDecision -> RateLimitedError (429 + X-RateLimit-* headers) when denied.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Protocol

from redis import asyncio as redis_asyncio

from poligraph_rag.backend.utils.constants import CLIENT_ID_HEADERS, UNKNOWN_CLIENT_ID
from poligraph_rag.backend.utils.logging_ import get_logger, hash_text, log_event


logger = get_logger("services.rate_limit")

Clock = Callable[[], float]  # docstring: returns epoch milliseconds


def _now_ms() -> float:
    return time.time() * 1000.0


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    reset_at_ms: int  # docstring: epoch ms when the oldest counted request leaves the window

    def retry_after_s(self, now_ms: float) -> int:
        """Whole seconds until reset (at least 1 when denied)."""
        seconds = int(-(-(self.reset_at_ms - now_ms) // 1000))  # docstring: ceil division
        return max(seconds, 1 if not self.allowed else 0)


class RateLimitStore(Protocol):
    """`increment(client_id, window) -> RateLimitDecision`; may raise when the backing store is unreachable."""

    async def increment(self, client_id: str, *, limit: int, window_ms: int, now_ms: float) -> RateLimitDecision: ...


class RedisRateLimitStore:
    """
    [Responsibility] Sliding-window log: one sorted-set member per admitted request, scored by its timestamp.
    [Boundary] A denied request is removed again so it does not extend the caller's penalty.
    """

    def __init__(self, client: Any, *, prefix: str = "chat") -> None:
        self._client = client
        self._prefix = str(prefix or "chat").strip(":")

    @classmethod
    def from_url(cls, url: str, *, prefix: str = "chat") -> "RedisRateLimitStore":
        return cls(redis_asyncio.from_url(url, decode_responses=True), prefix=prefix)

    def key_for(self, client_id: str) -> str:
        return f"{self._prefix}:{client_id}"

    async def increment(self, client_id: str, *, limit: int, window_ms: int, now_ms: float) -> RateLimitDecision:
        key = self.key_for(client_id)
        now = int(now_ms)
        member = f"{now}:{uuid.uuid4().hex}"

        pipe = self._client.pipeline(transaction=True)
        pipe.zremrangebyscore(key, 0, now - window_ms)
        pipe.zadd(key, {member: now})
        pipe.zcard(key)
        pipe.zrange(key, 0, 0, withscores=True)
        pipe.pexpire(key, window_ms)
        _, _, count, oldest, _ = await pipe.execute()

        count = int(count)
        oldest_ms = int(oldest[0][1]) if oldest else now
        reset_at_ms = oldest_ms + window_ms
        if count > limit:
            await self._client.zrem(key, member)
            return RateLimitDecision(allowed=False, remaining=0, reset_at_ms=reset_at_ms)
        return RateLimitDecision(allowed=True, remaining=max(limit - count, 0), reset_at_ms=reset_at_ms)

    async def close(self) -> None:
        await self._client.aclose()


class RateLimiter:
    """
    [Responsibility] Admit/deny per client id (default 10 requests per 60 s).
    [Boundary] Built once per process; `enabled` flips to False at most once and never back.
    """

    def __init__(
        self,
        store: Optional[RateLimitStore],
        *,
        max_requests: int = 10,
        window_s: int = 60,
        clock: Optional[Clock] = None,
    ) -> None:
        self._store = store
        self._max_requests = int(max_requests)
        self._window_ms = int(window_s) * 1000
        self._clock = clock or _now_ms
        self._enabled = store is not None
        if store is None:
            log_event(logger, logging.WARNING, "rate_limit.disabled", fields={"reason": "store not configured"})

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def max_requests(self) -> int:
        return self._max_requests

    def _open_decision(self, now_ms: float) -> RateLimitDecision:
        return RateLimitDecision(allowed=True, remaining=self._max_requests, reset_at_ms=int(now_ms))

    def _disable(self, exc: Exception) -> None:
        if not self._enabled:
            return  # docstring: concurrent failures after the first stay silent
        self._enabled = False
        log_event(
            logger,
            logging.WARNING,
            "rate_limit.disabled",
            fields={"reason": "store error", "error_type": exc.__class__.__name__},
        )

    async def limit(self, client_id: str) -> RateLimitDecision:
        now_ms = self._clock()
        if not self._enabled or self._store is None:
            return self._open_decision(now_ms)
        try:
            decision = await self._store.increment(
                client_id or UNKNOWN_CLIENT_ID,
                limit=self._max_requests,
                window_ms=self._window_ms,
                now_ms=now_ms,
            )
        except Exception as exc:
            self._disable(exc)
            return self._open_decision(now_ms)

        if not decision.allowed:
            log_event(
                logger,
                logging.INFO,
                "rate_limit.denied",
                fields={"client_hash": hash_text(client_id), "reset_at_ms": decision.reset_at_ms},
            )
        return decision


def resolve_client_id(headers: Mapping[str, str]) -> str:
    """
    Client identifier from the prioritized header chain (x-forwarded-for first hop, x-real-ip,
    cf-connecting-ip); "unknown" when none is present.
    """
    for name in CLIENT_ID_HEADERS:
        raw = headers.get(name)
        if raw is None:
            raw = headers.get(name.title())
        value = str(raw or "").split(",")[0].strip()
        if value:
            return value
    return UNKNOWN_CLIENT_ID


__all__ = [
    "RateLimitDecision",
    "RateLimitStore",
    "RateLimiter",
    "RedisRateLimitStore",
    "resolve_client_id",
]
