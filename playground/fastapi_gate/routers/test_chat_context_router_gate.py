# playground/fastapi_gate/routers/test_chat_context_router_gate.py

"""
[Responsibility] Gate: POST /chat/context and GET /health through the real app factory (ASGI in-process).
[Boundary] The DB session dependency is overridden with the seeded in-memory session; the runtime is built
           by hand (no Milvus, no Redis).
"""

from __future__ import annotations

from typing import AsyncIterator, Optional

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession

from poligraph_rag.backend.api.app import create_app
from poligraph_rag.backend.api.deps import get_session
from poligraph_rag.backend.pipelines.retrieval.types import RetrievalConfig
from poligraph_rag.backend.services.rate_limit import RateLimitDecision, RateLimiter, RateLimitStore
from poligraph_rag.backend.services.runtime import ServiceRuntime
from poligraph_rag.backend.utils.constants import NO_INFORMATION_SENTINEL


pytestmark = pytest.mark.fastapi_gate

RESET_AT_MS = 1_900_000_000_000


class DenyAllStore:
    async def increment(self, client_id: str, *, limit: int, window_ms: int, now_ms: float) -> RateLimitDecision:
        return RateLimitDecision(allowed=False, remaining=0, reset_at_ms=RESET_AT_MS)


def _build_app(session: AsyncSession, store: Optional[RateLimitStore] = None) -> FastAPI:
    runtime = ServiceRuntime(config=RetrievalConfig(), limiter=RateLimiter(store))
    app = create_app(runtime=runtime)

    async def _session_override() -> AsyncIterator[AsyncSession]:
        yield session

    app.dependency_overrides[get_session] = _session_override
    return app


@pytest_asyncio.fixture
async def client(seeded_session: AsyncSession) -> AsyncIterator[httpx.AsyncClient]:
    app = _build_app(seeded_session)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


def _user(content: str) -> dict:
    return {"messages": [{"role": "assistant", "content": "Bonjour !"}, {"role": "user", "content": content}]}


@pytest.mark.asyncio
async def test_context_from_pattern_tier(client: httpx.AsyncClient) -> None:
    resp = await client.post("/chat/context", json=_user("Qui est Jean Dupont ?"))
    assert resp.status_code == 200, resp.text

    body = resp.json()
    assert body["tier"] == "pattern"
    assert body["context"].startswith("**M. Jean Dupont**")
    assert body["trace_id"] == resp.headers["x-trace-id"]
    assert body["request_id"] == resp.headers["x-request-id"]
    assert "retrieval" in body["timing_ms"]
    assert "total_ms" in body["timing_ms"]


@pytest.mark.asyncio
async def test_trace_headers_are_echoed(client: httpx.AsyncClient) -> None:
    resp = await client.post(
        "/chat/context",
        json=_user("xyzzy plugh quux"),
        headers={"x-trace-id": "trace-abc", "x-request-id": "req-abc"},
    )
    assert resp.status_code == 200
    assert resp.headers["x-trace-id"] == "trace-abc"
    assert resp.headers["x-request-id"] == "req-abc"
    body = resp.json()
    assert body["tier"] == "sentinel"
    assert body["context"] == NO_INFORMATION_SENTINEL
    assert body["trace_id"] == "trace-abc"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload, message",
    [
        ({"messages": []}, "messages must not be empty"),
        ({"messages": [{"role": "assistant", "content": "Bonjour"}]}, "no user message"),
        ({"messages": [{"role": "user", "content": "   "}]}, "query is required"),
        ({"messages": [{"role": "robot", "content": "x"}]}, "malformed message"),
        ({"messages": [{"role": "user", "content": "x" * 2001}]}, "query too long"),
    ],
)
async def test_invalid_messages_are_400(client: httpx.AsyncClient, payload: dict, message: str) -> None:
    resp = await client.post("/chat/context", json=payload, headers={"x-trace-id": "trace-400"})
    assert resp.status_code == 400
    error = resp.json()["error"]
    assert error["code"] == "bad_request"
    assert error["message"] == message
    assert error["trace_id"] == "trace-400"


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{"messages": "nope"}, {"prompt": "hello"}, {"messages": [{"role": "user"}]}])
async def test_malformed_body_is_400(client: httpx.AsyncClient, payload: dict) -> None:
    resp = await client.post("/chat/context", json=payload)
    assert resp.status_code == 400
    error = resp.json()["error"]
    assert error["code"] == "bad_request"
    assert error["message"] == "malformed request body"
    assert error["trace_id"] == resp.headers["x-trace-id"]


@pytest.mark.asyncio
async def test_rate_limited_is_429_with_headers(seeded_session: AsyncSession) -> None:
    app = _build_app(seeded_session, store=DenyAllStore())
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        resp = await c.post("/chat/context", json=_user("Qui est Jean Dupont ?"), headers={"x-real-ip": "9.9.9.9"})

    assert resp.status_code == 429
    assert resp.headers["x-ratelimit-remaining"] == "0"
    assert resp.headers["x-ratelimit-reset"] == str(RESET_AT_MS)
    assert int(resp.headers["retry-after"]) >= 1
    error = resp.json()["error"]
    assert error["code"] == "rate_limited"
    assert error["detail"]["reset_at_ms"] == RESET_AT_MS


@pytest.mark.asyncio
async def test_invalid_request_does_not_reach_the_limiter(seeded_session: AsyncSession) -> None:
    app = _build_app(seeded_session, store=DenyAllStore())
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        resp = await c.post("/chat/context", json={"messages": []})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_health_reports_features(client: httpx.AsyncClient) -> None:
    resp = await client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["db"] == {"ok": True}
    assert body["features"] == {"semantic": False, "rerank": False, "rate_limit": False}
    assert body["version"] == "0.1.0"
