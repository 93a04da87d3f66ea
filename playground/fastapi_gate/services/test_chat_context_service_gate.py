# playground/fastapi_gate/services/test_chat_context_service_gate.py

"""
[Responsibility] Gate: chat_service validation order and the ChatContextResult it returns.
[Boundary] Service level only (no HTTP); the seeded in-memory session stands in for the knowledge store.
"""

from __future__ import annotations

from typing import Any, List

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from poligraph_rag.backend.pipelines.retrieval.types import RetrievalConfig
from poligraph_rag.backend.services.chat_service import build_chat_context, extract_user_query
from poligraph_rag.backend.services.rate_limit import RateLimitDecision, RateLimiter
from poligraph_rag.backend.services.runtime import ServiceRuntime
from poligraph_rag.backend.utils.constants import NO_INFORMATION_SENTINEL
from poligraph_rag.backend.utils.errors import BadRequestError, RateLimitedError


pytestmark = pytest.mark.fastapi_gate


class CountingStore:
    def __init__(self, *, allow: bool = True) -> None:
        self.allow = allow
        self.clients: List[str] = []

    async def increment(self, client_id: str, *, limit: int, window_ms: int, now_ms: float) -> RateLimitDecision:
        self.clients.append(client_id)
        return RateLimitDecision(
            allowed=self.allow,
            remaining=limit - 1 if self.allow else 0,
            reset_at_ms=int(now_ms) + window_ms,
        )


def test_last_user_message_is_the_query() -> None:
    messages = [
        {"role": "system", "content": "Tu es un assistant civique."},
        {"role": "user", "content": "première question"},
        {"role": "assistant", "content": "réponse"},
        {"role": "user", "content": "  Qui est Jean Dupont ?  "},
    ]
    assert extract_user_query(messages, max_length=2000) == "Qui est Jean Dupont ?"


@pytest.mark.parametrize(
    "messages, message",
    [
        (None, "messages must be a list"),
        ("qui est", "messages must be a list"),
        ([], "messages must not be empty"),
        ([{"role": "user"}], "malformed message"),
        ([{"role": "assistant", "content": "x"}], "no user message"),
        ([{"role": "user", "content": "\n\t "}], "query is required"),
        ([{"role": "user", "content": "abcdef"}], "query too long"),
    ],
)
def test_invalid_messages(messages: Any, message: str) -> None:
    with pytest.raises(BadRequestError) as info:
        extract_user_query(messages, max_length=5)
    assert info.value.message == message
    assert info.value.http_status == 400


@pytest.mark.asyncio
async def test_validation_runs_before_rate_limit(seeded_session: AsyncSession) -> None:
    store = CountingStore()
    runtime = ServiceRuntime(config=RetrievalConfig(), limiter=RateLimiter(store))

    with pytest.raises(BadRequestError):
        await build_chat_context(session=seeded_session, runtime=runtime, messages=[], client_id="1.2.3.4")
    assert store.clients == []


@pytest.mark.asyncio
async def test_rate_limited_before_retrieval(seeded_session: AsyncSession) -> None:
    runtime = ServiceRuntime(config=RetrievalConfig(), limiter=RateLimiter(CountingStore(allow=False)))

    with pytest.raises(RateLimitedError) as info:
        await build_chat_context(
            session=seeded_session,
            runtime=runtime,
            messages=[{"role": "user", "content": "Qui est Jean Dupont ?"}],
            client_id="1.2.3.4",
        )
    assert info.value.http_status == 429
    assert info.value.remaining == 0
    assert info.value.retry_after_s >= 1


@pytest.mark.asyncio
async def test_result_carries_ids_tier_and_timing(seeded_session: AsyncSession, log_records) -> None:
    store = CountingStore()
    runtime = ServiceRuntime(config=RetrievalConfig(), limiter=RateLimiter(store))

    result = await build_chat_context(
        session=seeded_session,
        runtime=runtime,
        messages=[{"role": "user", "content": "xyzzy plugh quux"}],
        client_id="1.2.3.4",
        trace_id="trace-9",
        request_id="req-9",
    )

    assert result.context == NO_INFORMATION_SENTINEL
    assert result.tier == "sentinel"
    assert (result.trace_id, result.request_id) == ("trace-9", "req-9")
    assert {"retrieval", "total_ms"} <= set(result.timing_ms)
    assert store.clients == ["1.2.3.4"]

    events = [r.getMessage() for r in log_records]
    assert events[0] == "chat.start"
    assert events[-1] == "chat.context.ready"
    assert "xyzzy" not in " ".join(str(getattr(r, "query_hash", "")) for r in log_records)
