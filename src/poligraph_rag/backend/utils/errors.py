# src/poligraph_rag/backend/utils/errors.py

"""
[Responsibility] Domain error contract (error_code/message/detail/cause) plus the minimal HTTP mapping hints
                 (http_status/retryable).
[Boundary] No FastAPI dependency; no logging. Retrieval tiers never raise these past the orchestrator:
           only the request boundary (input validation, rate limiting) produces them for callers.
[Upstream] services raise DomainError subclasses; adapters wrap third-party failures.
[Downstream] api/errors.py maps them to ErrorResponse + HTTP status.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Optional, Tuple


ErrorDetail = Dict[str, Any]  # docstring: JSON-safe error detail

ERROR_CODE_PATTERN_DOT = re.compile(r"^[a-z][a-z0-9]*(?:\.[a-z0-9_]+)+$")  # docstring: area.reason style

STANDARD_ERROR_CODES = {
    "bad_request",
    "not_found",
    "rate_limited",
    "pipeline_error",
    "external_dependency",
    "internal_error",
}

ERROR_HTTP_STATUS_BY_CODE = {
    "bad_request": 400,
    "not_found": 404,
    "rate_limited": 429,
    "pipeline_error": 500,
    "external_dependency": 503,
    "internal_error": 500,
}

ERROR_RETRYABLE_BY_CODE = {
    "bad_request": False,
    "not_found": False,
    "rate_limited": True,
    "pipeline_error": False,
    "external_dependency": True,
    "internal_error": False,
}

INTERNAL_ERROR_CODE = "internal_error"
INTERNAL_ERROR_MESSAGE = "internal error"


def is_valid_error_code(error_code: str) -> bool:
    """Accept the standard HTTP-level codes or an `area.reason` code."""

    if not error_code:
        return False
    if error_code in STANDARD_ERROR_CODES:
        return True
    return bool(ERROR_CODE_PATTERN_DOT.match(error_code))


def ensure_json_safe_detail(detail: ErrorDetail) -> ErrorDetail:
    """
    [Responsibility] Reject details that cannot be serialized into an ErrorResponse.
    [Boundary] No truncation or coercion; the caller decides what to keep.
    """

    if not isinstance(detail, dict):
        raise ValueError("detail must be a dict")
    try:
        json.dumps(detail)
    except TypeError as exc:
        raise ValueError("detail must be JSON-serializable") from exc
    return detail


class DomainError(Exception):
    """
    [Responsibility] Base domain error: stable code, readable message, JSON-safe detail, optional cause.
    [Boundary] Expresses semantics only; logging and HTTP output happen elsewhere.
    """

    def __init__(
        self,
        *,
        error_code: str,
        message: str,
        detail: Optional[ErrorDetail] = None,
        cause: Optional[Exception] = None,
        http_status: Optional[int] = None,
        retryable: Optional[bool] = None,
    ) -> None:
        if not is_valid_error_code(error_code):
            raise ValueError(f"invalid error_code: {error_code}")
        normalized_detail = detail or {}
        ensure_json_safe_detail(normalized_detail)

        resolved_http_status = (
            http_status if http_status is not None else ERROR_HTTP_STATUS_BY_CODE.get(error_code, 500)
        )
        resolved_retryable = (
            retryable if retryable is not None else ERROR_RETRYABLE_BY_CODE.get(error_code, False)
        )

        super().__init__(message)
        self.error_code = error_code  # docstring: stable error code
        self.message = message  # docstring: user-readable message
        self.detail = normalized_detail
        self.cause = cause
        self.http_status = resolved_http_status
        self.retryable = resolved_retryable

        if cause is not None:
            self.__cause__ = cause  # docstring: keep exception chain

    def to_dict(self) -> Dict[str, Any]:
        """ErrorResponse.error body (trace_id is added by the API layer)."""

        return {
            "code": self.error_code,
            "message": self.message,
            "detail": self.detail,
        }


class BadRequestError(DomainError):
    """
    [Responsibility] 400: caller input rejected at the boundary (empty or malformed message list, blank query).
    [Downstream] api/errors.py maps to 400.
    """

    def __init__(
        self,
        *,
        message: str = "bad request",
        detail: Optional[ErrorDetail] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(
            error_code="bad_request",
            message=message,
            detail=detail,
            cause=cause,
            http_status=400,
            retryable=False,
        )


class RateLimitedError(DomainError):
    """
    [Responsibility] 429: the per-client sliding window is exhausted.
    [Boundary] Carries remaining/reset/retry_after in detail; never raised when the limiter is disabled.
    [Upstream] services/chat_service.py after RateLimiter.limit(...) denies.
    [Downstream] api/routers/chat.py adds X-RateLimit-* headers.
    """

    def __init__(
        self,
        *,
        message: str = "Trop de requêtes. Veuillez réessayer dans quelques instants.",
        remaining: int = 0,
        reset_at_ms: int = 0,
        retry_after_s: int = 0,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(
            error_code="rate_limited",
            message=message,
            detail={
                "remaining": int(remaining),
                "reset_at_ms": int(reset_at_ms),
                "retry_after": int(retry_after_s),
            },
            cause=cause,
            http_status=429,
            retryable=True,
        )
        self.remaining = int(remaining)
        self.reset_at_ms = int(reset_at_ms)
        self.retry_after_s = int(retry_after_s)


class ExternalDependencyError(DomainError):
    """
    [Responsibility] 503: an external collaborator (vector index, reranker, embedder, rate-limit store) failed.
    [Boundary] Never carries provider keys or endpoints with credentials.
    [Upstream] kb/*, pipelines/retrieval/rerank.py, services/rate_limit.py wrap third-party exceptions.
    [Downstream] Caught at stage boundaries inside the pipeline; reaches HTTP only outside the core.
    """

    def __init__(
        self,
        *,
        message: str = "external dependency error",
        detail: Optional[ErrorDetail] = None,
        cause: Optional[Exception] = None,
        retryable: Optional[bool] = None,
    ) -> None:
        super().__init__(
            error_code="external_dependency",
            message=message,
            detail=detail,
            cause=cause,
            http_status=503,
            retryable=retryable if retryable is not None else True,
        )


class InternalError(DomainError):
    """500 wrapper for unknown exceptions (never exposes the original traceback)."""

    def __init__(
        self,
        *,
        message: str = INTERNAL_ERROR_MESSAGE,
        detail: Optional[ErrorDetail] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(
            error_code=INTERNAL_ERROR_CODE,
            message=message,
            detail=detail,
            cause=cause,
            http_status=500,
            retryable=False,
        )


def to_http_error(
    error: Exception,
    *,
    trace_id: Optional[str] = None,
) -> Tuple[int, Dict[str, Any]]:
    """
    [Responsibility] Convert any exception into (HTTP status, ErrorResponse payload), framework-free.
    [Boundary] Unknown exceptions collapse into internal_error without leaking their message.
    """

    if isinstance(error, DomainError):
        status_code = error.http_status
        payload = {"error": error.to_dict()}
    else:
        status_code = ERROR_HTTP_STATUS_BY_CODE[INTERNAL_ERROR_CODE]
        payload = {
            "error": {
                "code": INTERNAL_ERROR_CODE,
                "message": INTERNAL_ERROR_MESSAGE,
                "detail": {},
            }
        }

    if trace_id:
        payload["error"]["trace_id"] = trace_id

    return status_code, payload
