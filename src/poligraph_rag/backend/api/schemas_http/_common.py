# src/poligraph_rag/backend/api/schemas_http/_common.py

"""
[Responsibility] Shared HTTP schema pieces: ErrorResponse and the id aliases used by every endpoint contract.
[Boundary] HTTP input/output shapes only; no trace injection, error mapping or business logic.
[Upstream] api/middleware injects trace/request ids; api/errors maps DomainError into ErrorResponse.
[Downstream] api/schemas_http/chat.py and the routers reuse these models.
"""

from __future__ import annotations

from typing import Any, Dict, Literal, NewType

from pydantic import BaseModel, ConfigDict, Field


TraceId = NewType("TraceId", str)  # docstring: trace_id (cross-request chain)
RequestId = NewType("RequestId", str)  # docstring: request_id (single request)

ErrorCode = Literal[
    "bad_request",
    "not_found",
    "rate_limited",
    "external_dependency",
    "pipeline_error",
    "internal_error",
]  # docstring: HTTP-level standard error codes

ErrorDetail = Dict[str, Any]  # docstring: must stay JSON-safe


class ErrorInfo(BaseModel):
    """
    [Responsibility] Unified error body (code/message/trace_id/detail).
    [Boundary] No HTTP status or retryable flag; api/errors.py decides those.
    """

    model_config = ConfigDict(extra="forbid")

    code: ErrorCode = Field(...)
    message: str = Field(..., min_length=1)
    trace_id: TraceId = Field(...)
    detail: ErrorDetail = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Top-level error wrapper; trace/request ids are echoed in headers as well."""

    model_config = ConfigDict(extra="forbid")

    error: ErrorInfo = Field(...)
