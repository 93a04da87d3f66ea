# src/poligraph_rag/backend/services/chat_service.py

"""
[Responsibility] chat_service: service entry for the chat endpoint (message validation + rate limit +
                 retrieval orchestration), returning the context handed to the language model.
[Boundary] No HTTP semantics; no SDK calls; no persistence. Input errors and rate limiting are the only
           failures raised to callers; retrieval itself always yields a non-empty context.
[Upstream] api/routers/chat.py calls build_chat_context(...) with an injected session and ServiceRuntime.
[Downstream] pipelines/retrieval/pipeline.py run_retrieval; services/rate_limit.py RateLimiter.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from poligraph_rag.backend.pipelines.base.context import PipelineContext
from poligraph_rag.backend.pipelines.retrieval.pipeline import run_retrieval
from poligraph_rag.backend.utils.constants import (
    ROLE_ASSISTANT,
    ROLE_USER,
    TIMING_MS_KEY,
    TIMING_TOTAL_MS_KEY,
)
from poligraph_rag.backend.utils.errors import BadRequestError, RateLimitedError
from poligraph_rag.backend.utils.logging_ import get_logger, hash_text, log_event

from .runtime import ServiceRuntime


ALLOWED_ROLES = {ROLE_USER, ROLE_ASSISTANT, "system"}


@dataclass(frozen=True)
class ChatContextResult:
    context: str
    tier: str
    trace_id: str
    request_id: str
    timing_ms: Dict[str, float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "context": self.context,
            "tier": self.tier,
            "trace_id": self.trace_id,
            "request_id": self.request_id,
            TIMING_MS_KEY: dict(self.timing_ms),
        }


def _message_field(message: Any, key: str) -> Any:
    if isinstance(message, Mapping):
        return message.get(key)
    return getattr(message, key, None)


def extract_user_query(messages: Optional[Sequence[Any]], *, max_length: int) -> str:
    """
    [Responsibility] Validate the message list and return the last user message content.
    [Boundary] Raises BadRequestError for: missing/empty list, malformed entries, no user message,
               blank content, content longer than `max_length` characters.
    """
    if messages is None or isinstance(messages, (str, bytes)) or not isinstance(messages, Sequence):
        raise BadRequestError(message="messages must be a list")
    if len(messages) == 0:
        raise BadRequestError(message="messages must not be empty")

    last_user: Optional[str] = None
    for index, message in enumerate(messages):
        role = _message_field(message, "role")
        content = _message_field(message, "content")
        if not isinstance(role, str) or role not in ALLOWED_ROLES or not isinstance(content, str):
            raise BadRequestError(message="malformed message", detail={"index": index})
        if role == ROLE_USER:
            last_user = content

    if last_user is None:
        raise BadRequestError(message="no user message")
    query = last_user.strip()
    if not query:
        raise BadRequestError(message="query is required")
    if len(query) > int(max_length):
        raise BadRequestError(
            message="query too long",
            detail={"max_length": int(max_length), "length": len(query)},
        )
    return query


async def check_rate_limit(runtime: ServiceRuntime, client_id: str) -> None:
    """Raise RateLimitedError when the client's window is exhausted (no-op while the limiter is disabled)."""
    decision = await runtime.limiter.limit(client_id)
    if decision.allowed:
        return
    now_ms = time.time() * 1000.0
    raise RateLimitedError(
        remaining=decision.remaining,
        reset_at_ms=decision.reset_at_ms,
        retry_after_s=decision.retry_after_s(now_ms),
    )


async def build_chat_context(
    *,
    session: AsyncSession,
    runtime: ServiceRuntime,
    messages: Optional[Sequence[Any]],
    client_id: str,
    trace_id: Optional[str] = None,
    request_id: Optional[str] = None,
) -> ChatContextResult:
    """
    [Responsibility] validate -> rate limit -> retrieval, in that order.
    [Boundary] Validation runs before the limiter so malformed requests do not consume the caller's budget.
    """
    logger = get_logger("services.chat")

    query = extract_user_query(messages, max_length=runtime.max_query_length)
    await check_rate_limit(runtime, client_id)

    ctx = PipelineContext.from_session(
        session,
        trace_id=trace_id,
        request_id=request_id,
        client_id=client_id,
    )
    log_event(
        logger,
        logging.INFO,
        "chat.start",
        context=ctx,
        fields={"query_hash": hash_text(query), "client_hash": hash_text(client_id)},
    )

    with ctx.timing.stage("retrieval"):
        result = await run_retrieval(ctx, query, config=runtime.config, semantic=runtime.semantic)

    timing = ctx.timing_ms(include_total=True, total_key=TIMING_TOTAL_MS_KEY)
    log_event(
        logger,
        logging.INFO,
        "chat.context.ready",
        context=ctx,
        fields={"tier": result.tier, "length": len(result.text), TIMING_MS_KEY: timing},
    )
    return ChatContextResult(
        context=result.text,
        tier=result.tier,
        trace_id=ctx.trace_id,
        request_id=ctx.request_id,
        timing_ms=timing,
    )


__all__ = [
    "ChatContextResult",
    "build_chat_context",
    "check_rate_limit",
    "extract_user_query",
]
