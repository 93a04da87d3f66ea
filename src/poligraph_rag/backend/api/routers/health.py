# src/poligraph_rag/backend/api/routers/health.py

"""
[Responsibility] Health router: knowledge-store probe plus which optional features are active.
[Boundary] No pipeline run; only lightweight checks.
[Upstream] Ops probes / CI.
[Downstream] DB session (SELECT 1), MilvusClient.healthcheck (when configured) and ServiceRuntime.features().
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from poligraph_rag.backend.api.deps import get_runtime, get_session
from poligraph_rag.backend.services.runtime import ServiceRuntime


router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health_check(
    session: AsyncSession = Depends(get_session),
    runtime: ServiceRuntime = Depends(get_runtime),
) -> Dict[str, Any]:
    status = "ok"
    db_status: Dict[str, Any] = {"ok": True}

    try:
        await session.execute(text("SELECT 1"))
    except Exception as exc:
        db_status["ok"] = False
        db_status["error"] = exc.__class__.__name__

    if not db_status["ok"]:
        status = "degraded"

    body: Dict[str, Any] = {"db": db_status}
    if runtime.milvus_client is not None:
        milvus_status: Dict[str, Any] = {"ok": True}
        try:
            await runtime.milvus_client.healthcheck()
        except Exception as exc:
            milvus_status = {"ok": False, "error": exc.__class__.__name__}
            status = "degraded"
        body["milvus"] = milvus_status

    return {
        "status": status,
        **body,
        "features": runtime.features(),
        "version": runtime.version,
    }
