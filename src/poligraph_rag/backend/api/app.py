# src/poligraph_rag/backend/api/app.py

"""
[Responsibility] FastAPI app factory: middleware, routers, exception mapping and the ServiceRuntime lifespan.
[Boundary] Wiring only. The runtime is built once per process and closed on shutdown.
[Upstream] ASGI server (`uvicorn poligraph_rag.backend.api.app:app --factory` style) or tests.
[Downstream] routers/chat.py, routers/health.py.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from poligraph_rag.backend.api.errors import to_json_response
from poligraph_rag.backend.api.middleware import TraceContextMiddleware
from poligraph_rag.backend.api.routers import chat as chat_router
from poligraph_rag.backend.api.routers import health as health_router
from poligraph_rag.backend.services.runtime import ServiceRuntime
from poligraph_rag.backend.utils.errors import BadRequestError, DomainError
from poligraph_rag.backend.utils.logging_ import configure_logging, resolve_level
from poligraph_rag.config import settings


def _request_ids(request: Request) -> dict:
    return {
        "trace_id": getattr(request.state, "trace_id", None),
        "request_id": getattr(request.state, "request_id", None),
    }


async def _on_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = BadRequestError(message="malformed request body", detail={"errors": len(exc.errors())})
    return to_json_response(error, **_request_ids(request))


async def _on_domain_error(request: Request, exc: DomainError) -> JSONResponse:
    return to_json_response(exc, **_request_ids(request))


def create_app(runtime: Optional[ServiceRuntime] = None) -> FastAPI:
    """
    Build the API. Tests pass a ready `runtime` (fake index / limiter); otherwise it is built from
    settings at startup and closed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = runtime is None
        if owned:
            configure_logging(level=resolve_level(settings.LOG_LEVEL))
            app.state.runtime = ServiceRuntime.from_settings(settings)
        try:
            yield
        finally:
            if owned:
                await app.state.runtime.aclose()

    app = FastAPI(title="Poligraph context API", lifespan=lifespan)
    if runtime is not None:
        app.state.runtime = runtime

    app.add_middleware(TraceContextMiddleware)
    app.add_exception_handler(RequestValidationError, _on_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(DomainError, _on_domain_error)  # type: ignore[arg-type]
    app.include_router(chat_router.router)
    app.include_router(health_router.router)
    return app
