# src/poligraph_rag/backend/api/middleware.py

"""
[Responsibility] API middleware: inject trace_id/request_id and measure the request duration.
[Boundary] No business logic and no exception handling; pipeline timing is not recomputed here.
[Upstream] api/app.py registers it.
[Downstream] deps/routers read request.state.trace_id / request_id / timing_ms.
"""

from __future__ import annotations

import time
import uuid
from typing import Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from poligraph_rag.backend.utils.constants import (
    PARENT_REQUEST_HEADER,
    REQUEST_HEADER,
    TIMING_TOTAL_MS_KEY,
    TRACE_HEADER,
)


def _resolve_header_id(value: Optional[str]) -> Optional[str]:
    """String cleanup only; ids are opaque (no UUID validation)."""
    raw = str(value or "").strip()
    return raw or None


class TraceContextMiddleware(BaseHTTPMiddleware):
    """
    [Responsibility] Resolve (header) or mint trace/request ids and echo them back as response headers.
    [Boundary] Does not catch exceptions; routers map errors through api/errors.py.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start_ts = time.perf_counter()

        trace_id = _resolve_header_id(request.headers.get(TRACE_HEADER)) or str(uuid.uuid4())
        request_id = _resolve_header_id(request.headers.get(REQUEST_HEADER)) or str(uuid.uuid4())
        parent_request_id = _resolve_header_id(request.headers.get(PARENT_REQUEST_HEADER))

        request.state.trace_id = trace_id
        request.state.request_id = request_id
        request.state.parent_request_id = parent_request_id

        try:
            response = await call_next(request)
        finally:
            total_ms = (time.perf_counter() - start_ts) * 1000.0
            request.state.timing_ms = {TIMING_TOTAL_MS_KEY: total_ms}

        response.headers[TRACE_HEADER] = trace_id
        response.headers[REQUEST_HEADER] = request_id
        return response
