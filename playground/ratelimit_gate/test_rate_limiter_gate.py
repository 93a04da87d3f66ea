# playground/ratelimit_gate/test_rate_limiter_gate.py

"""
[Responsibility] Gate: sliding-window RateLimiter over RedisRateLimitStore, fail-open behaviour and client
                 id resolution.
[Boundary] No Redis server: an in-memory sorted-set fake stands in for the redis.asyncio client and the
           clock is injected.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Tuple

import pytest

from poligraph_rag.backend.services.rate_limit import (
    RateLimitDecision,
    RateLimiter,
    RedisRateLimitStore,
    resolve_client_id,
)


pytestmark = pytest.mark.ratelimit_gate

T0 = 1_700_000_000_000.0


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the sliding-window log (sorted sets + MULTI pipeline)."""

    def __init__(self) -> None:
        self.zsets: Dict[str, Dict[str, float]] = {}
        self.ttl_ms: Dict[str, int] = {}
        self.closed = False

    def pipeline(self, transaction: bool = True) -> "FakePipeline":
        assert transaction is True
        return FakePipeline(self)

    async def zrem(self, key: str, *members: str) -> int:
        zset = self.zsets.get(key, {})
        return sum(1 for m in members if zset.pop(m, None) is not None)

    async def aclose(self) -> None:
        self.closed = True


class FakePipeline:
    def __init__(self, redis: FakeRedis) -> None:
        self._redis = redis
        self._ops: List[Callable[[], Any]] = []

    def _zset(self, key: str) -> Dict[str, float]:
        return self._redis.zsets.setdefault(key, {})

    def zremrangebyscore(self, key: str, low: float, high: float) -> "FakePipeline":
        def op() -> int:
            zset = self._zset(key)
            doomed = [m for m, s in zset.items() if low <= s <= high]
            for m in doomed:
                del zset[m]
            return len(doomed)

        self._ops.append(op)
        return self

    def zadd(self, key: str, mapping: Dict[str, float]) -> "FakePipeline":
        def op() -> int:
            zset = self._zset(key)
            added = sum(1 for m in mapping if m not in zset)
            zset.update(mapping)
            return added

        self._ops.append(op)
        return self

    def zcard(self, key: str) -> "FakePipeline":
        self._ops.append(lambda: len(self._zset(key)))
        return self

    def zrange(self, key: str, start: int, end: int, withscores: bool = False) -> "FakePipeline":
        def op() -> List[Tuple[str, float]]:
            ordered = sorted(self._zset(key).items(), key=lambda kv: (kv[1], kv[0]))
            return ordered[start : end + 1]

        self._ops.append(op)
        return self

    def pexpire(self, key: str, ms: int) -> "FakePipeline":
        def op() -> bool:
            self._redis.ttl_ms[key] = ms
            return True

        self._ops.append(op)
        return self

    async def execute(self) -> List[Any]:
        return [op() for op in self._ops]


class Clock:
    def __init__(self, now_ms: float = T0) -> None:
        self.now_ms = now_ms

    def __call__(self) -> float:
        return self.now_ms


class BrokenStore:
    def __init__(self) -> None:
        self.calls = 0

    async def increment(self, client_id: str, *, limit: int, window_ms: int, now_ms: float) -> RateLimitDecision:
        self.calls += 1
        raise ConnectionError("redis unreachable")


class SlowBrokenStore:
    """Every call yields to the loop before failing, so a burst is in flight when the first error lands."""

    def __init__(self) -> None:
        self.calls = 0

    async def increment(self, client_id: str, *, limit: int, window_ms: int, now_ms: float) -> RateLimitDecision:
        self.calls += 1
        await asyncio.sleep(0.01)
        raise ConnectionError("redis unreachable")


@pytest.mark.asyncio
async def test_sliding_window_denies_eleventh_request() -> None:
    redis = FakeRedis()
    clock = Clock()
    limiter = RateLimiter(RedisRateLimitStore(redis, prefix="chat"), max_requests=10, window_s=60, clock=clock)

    decisions = [await limiter.limit("client-a") for _ in range(10)]
    assert all(d.allowed for d in decisions)
    assert [d.remaining for d in decisions] == list(range(9, -1, -1))

    clock.now_ms = T0 + 1_000
    denied = await limiter.limit("client-a")
    assert not denied.allowed
    assert denied.remaining == 0
    assert denied.reset_at_ms == int(T0) + 60_000
    assert denied.retry_after_s(clock.now_ms) == 59
    assert len(redis.zsets["chat:client-a"]) == 10  # docstring: the denied request is not kept
    assert redis.ttl_ms["chat:client-a"] == 60_000

    other = await limiter.limit("client-b")
    assert other.allowed and other.remaining == 9

    clock.now_ms = T0 + 60_000
    again = await limiter.limit("client-a")
    assert again.allowed and again.remaining == 9


@pytest.mark.asyncio
async def test_missing_store_disables_with_one_log_line(log_records) -> None:
    limiter = RateLimiter(None, max_requests=10)
    assert not limiter.enabled

    for _ in range(20):
        decision = await limiter.limit("client-a")
        assert decision.allowed and decision.remaining == 10

    assert [r.getMessage() for r in log_records] == ["rate_limit.disabled"]


@pytest.mark.asyncio
async def test_store_error_fails_open_once(log_records) -> None:
    store = BrokenStore()
    limiter = RateLimiter(store, clock=Clock())
    assert limiter.enabled

    first = await limiter.limit("client-a")
    second = await limiter.limit("client-a")

    assert first.allowed and second.allowed
    assert not limiter.enabled
    assert store.calls == 1
    disabled = [r for r in log_records if r.getMessage() == "rate_limit.disabled"]
    assert len(disabled) == 1
    assert disabled[0].error_type == "ConnectionError"


@pytest.mark.asyncio
async def test_concurrent_burst_against_broken_store_logs_once(log_records) -> None:
    store = SlowBrokenStore()
    limiter = RateLimiter(store, clock=Clock())

    decisions = await asyncio.gather(*(limiter.limit("client-a") for _ in range(100)))

    assert all(d.allowed for d in decisions)
    assert store.calls == 100
    assert not limiter.enabled
    assert [r.getMessage() for r in log_records].count("rate_limit.disabled") == 1


@pytest.mark.asyncio
async def test_store_close_and_key_prefix() -> None:
    redis = FakeRedis()
    store = RedisRateLimitStore(redis, prefix="chat:")
    assert store.key_for("1.2.3.4") == "chat:1.2.3.4"
    await store.close()
    assert redis.closed


def test_retry_after_rounding() -> None:
    assert RateLimitDecision(allowed=False, remaining=0, reset_at_ms=10_500).retry_after_s(10_000) == 1
    assert RateLimitDecision(allowed=False, remaining=0, reset_at_ms=9_000).retry_after_s(10_000) == 1
    assert RateLimitDecision(allowed=True, remaining=3, reset_at_ms=9_000).retry_after_s(10_000) == 0
    assert RateLimitDecision(allowed=False, remaining=0, reset_at_ms=12_001).retry_after_s(10_000) == 3


@pytest.mark.parametrize(
    "headers, expected",
    [
        ({"x-forwarded-for": "1.1.1.1, 10.0.0.1", "x-real-ip": "2.2.2.2"}, "1.1.1.1"),
        ({"x-real-ip": "2.2.2.2", "cf-connecting-ip": "3.3.3.3"}, "2.2.2.2"),
        ({"cf-connecting-ip": "3.3.3.3"}, "3.3.3.3"),
        ({"X-Real-Ip": "4.4.4.4"}, "4.4.4.4"),
        ({"x-forwarded-for": "  "}, "unknown"),
        ({}, "unknown"),
    ],
)
def test_resolve_client_id(headers: Dict[str, str], expected: str) -> None:
    assert resolve_client_id(headers) == expected
