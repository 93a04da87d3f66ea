# src/poligraph_rag/backend/api/deps.py

"""
[Responsibility] API dependency wiring: session, trace ids, client id and the process ServiceRuntime.
[Boundary] No business logic; never commits; the session is read-only for the retrieval pipeline.
[Upstream] FastAPI dependency injection in routers.
[Downstream] services receive the resolved objects.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from poligraph_rag.backend.db.engine import SessionLocal
from poligraph_rag.backend.services.rate_limit import resolve_client_id
from poligraph_rag.backend.services.runtime import ServiceRuntime
from poligraph_rag.backend.utils.errors import InternalError


@dataclass(frozen=True)
class TraceIds:
    trace_id: str
    request_id: str
    parent_request_id: Optional[str] = None


async def get_session() -> AsyncIterator[AsyncSession]:
    """One session per request; created and closed here, never committed."""
    async with SessionLocal() as session:
        yield session


def get_trace_ids(request: Request) -> TraceIds:
    """
    Prefer the ids injected by TraceContextMiddleware; mint them when the middleware is absent
    (bare routers in tests) and write them back to request.state for reuse.
    """
    trace_id = str(getattr(request.state, "trace_id", "") or "").strip() or str(uuid.uuid4())
    request_id = str(getattr(request.state, "request_id", "") or "").strip() or str(uuid.uuid4())
    parent = str(getattr(request.state, "parent_request_id", "") or "").strip() or None

    request.state.trace_id = trace_id
    request.state.request_id = request_id
    return TraceIds(trace_id=trace_id, request_id=request_id, parent_request_id=parent)


def get_client_id(request: Request) -> str:
    return resolve_client_id(request.headers)


def get_runtime(request: Request) -> ServiceRuntime:
    runtime = getattr(request.app.state, "runtime", None)
    if not isinstance(runtime, ServiceRuntime):
        raise InternalError(message="service runtime not initialized")
    return runtime
