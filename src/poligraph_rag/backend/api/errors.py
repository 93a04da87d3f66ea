# src/poligraph_rag/backend/api/errors.py

"""
[Responsibility] API error mapping: any exception -> ErrorResponse + HTTP status (+ rate-limit headers).
[Boundary] No logging; trace/request injection belongs to middleware/deps.
[Upstream] routers and the app-level exception handlers call into this module.
[Downstream] Frontend consumes the unified `{error: {code, message, trace_id, detail}}` body.
"""

from __future__ import annotations

import uuid
from typing import Any, Dict, Optional, Tuple

from fastapi.responses import JSONResponse

from poligraph_rag.backend.api.schemas_http._common import ErrorResponse
from poligraph_rag.backend.utils.constants import (
    RATE_LIMIT_REMAINING_HEADER,
    RATE_LIMIT_RESET_HEADER,
    REQUEST_HEADER,
    RETRY_AFTER_HEADER,
    TRACE_HEADER,
)
from poligraph_rag.backend.utils.errors import RateLimitedError, to_http_error


def _ensure_trace_id(trace_id: Optional[str]) -> str:
    raw = str(trace_id or "").strip()
    if raw:
        return raw
    return str(uuid.uuid4())  # docstring: ErrorInfo.trace_id is mandatory


def to_error_response(
    error: Exception,
    *,
    trace_id: Optional[str] = None,
) -> Tuple[int, ErrorResponse]:
    """(status_code, ErrorResponse); no headers, no logging."""
    resolved_trace_id = _ensure_trace_id(trace_id)
    status_code, payload = to_http_error(error, trace_id=resolved_trace_id)
    return status_code, ErrorResponse.model_validate(payload)


def rate_limit_headers(error: RateLimitedError) -> Dict[str, str]:
    """X-RateLimit-Remaining / X-RateLimit-Reset (epoch ms) / Retry-After (seconds)."""
    return {
        RATE_LIMIT_REMAINING_HEADER: str(error.remaining),
        RATE_LIMIT_RESET_HEADER: str(error.reset_at_ms),
        RETRY_AFTER_HEADER: str(error.retry_after_s),
    }


def to_json_response(
    error: Exception,
    *,
    trace_id: Optional[str] = None,
    request_id: Optional[str] = None,
) -> JSONResponse:
    """
    [Responsibility] Exception -> JSONResponse with trace/request headers echoed back.
    [Boundary] Does not change error semantics; 429 responses additionally carry the rate-limit headers.
    """
    status_code, response = to_error_response(error, trace_id=trace_id)
    content: Dict[str, Any] = response.model_dump()

    headers: Dict[str, str] = {}
    if trace_id:
        headers[TRACE_HEADER] = str(trace_id)
    if request_id:
        headers[REQUEST_HEADER] = str(request_id)
    if isinstance(error, RateLimitedError):
        headers.update(rate_limit_headers(error))

    return JSONResponse(status_code=status_code, content=content, headers=headers)
