# src/poligraph_rag/backend/api/routers/chat.py

"""
[Responsibility] Chat router: POST /chat/context maps the HTTP request onto chat_service and back.
[Boundary] Never calls pipelines directly; no transaction control; input/output mapping only.
[Upstream] Chat frontend (before every LLM completion).
[Downstream] services/chat_service.build_chat_context.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from poligraph_rag.backend.api.deps import (
    TraceIds,
    get_client_id,
    get_runtime,
    get_session,
    get_trace_ids,
)
from poligraph_rag.backend.api.errors import to_json_response
from poligraph_rag.backend.api.schemas_http.chat import ChatContextRequest, ChatContextResponse
from poligraph_rag.backend.services.chat_service import build_chat_context
from poligraph_rag.backend.services.runtime import ServiceRuntime
from poligraph_rag.backend.utils.errors import DomainError


router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("/context", response_model=ChatContextResponse)
async def chat_context_endpoint(
    payload: ChatContextRequest,
    session: AsyncSession = Depends(get_session),
    runtime: ServiceRuntime = Depends(get_runtime),
    trace: TraceIds = Depends(get_trace_ids),
    client_id: str = Depends(get_client_id),
) -> ChatContextResponse:
    """
    [Responsibility] Build the retrieval context for the conversation's last user message.
    [Boundary] DomainErrors (400 / 429) become ErrorResponse; anything else is left to the app handler.
    """
    try:
        result = await build_chat_context(
            session=session,
            runtime=runtime,
            messages=[m.model_dump() for m in payload.messages],
            client_id=client_id,
            trace_id=trace.trace_id,
            request_id=trace.request_id,
        )
    except DomainError as exc:
        return to_json_response(  # type: ignore[return-value]
            exc,
            trace_id=trace.trace_id,
            request_id=trace.request_id,
        )

    return ChatContextResponse.model_validate(result.to_dict())
