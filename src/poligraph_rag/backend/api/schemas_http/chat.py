# src/poligraph_rag/backend/api/schemas_http/chat.py

"""
[Responsibility] HTTP chat schema: request/response contract of POST /chat/context.
[Boundary] No orchestration and no DB semantics; message validation beyond shape lives in chat_service.
[Upstream] Chat frontend posts the running conversation.
[Downstream] routers/chat.py maps ChatContextResult into ChatContextResponse.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field

from ._common import RequestId, TraceId


RetrievalTier = Literal["pattern", "semantic", "keyword", "sentinel"]


class ChatMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    role: str = Field(...)  # docstring: user / assistant / system
    content: str = Field(...)


class ChatContextRequest(BaseModel):
    """
    [Responsibility] The conversation so far; only the last user message is used as the query.
    [Boundary] Emptiness/blank checks are left to the service so they surface as 400 bad_request.
    """

    model_config = ConfigDict(extra="forbid")

    messages: List[ChatMessage] = Field(default_factory=list)


class ChatContextResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    context: str = Field(..., min_length=1)  # docstring: rendered context or the no-information sentinel
    tier: RetrievalTier = Field(...)
    trace_id: TraceId = Field(...)
    request_id: RequestId = Field(...)
    timing_ms: Dict[str, Any] = Field(default_factory=dict)
