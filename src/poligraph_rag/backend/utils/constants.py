# src/poligraph_rag/backend/utils/constants.py

"""
[Responsibility] Stable constants shared across pipelines/services/api: the sentinel answer, section separator,
                 tier names, header names and timing keys.
[Boundary] No runtime configuration (see config.py); no environment reads.
[Upstream] pipelines/services/api import these instead of hard-coding strings.
[Downstream] tests and the downstream language-model caller rely on the exact sentinel/separator values.
"""

from __future__ import annotations


NO_INFORMATION_SENTINEL = "no information found for this query"  # docstring: orchestrator last-resort answer

SECTION_SEPARATOR = "\n\n---\n\n"  # docstring: visible separator between context sections

TIER_PATTERN = "pattern"
TIER_SEMANTIC = "semantic"
TIER_KEYWORD = "keyword"
TIER_SENTINEL = "sentinel"
TIER_ORDER = (TIER_PATTERN, TIER_SEMANTIC, TIER_KEYWORD, TIER_SENTINEL)  # docstring: fixed fallback order

TRACE_ID_KEY = "trace_id"
REQUEST_ID_KEY = "request_id"
PARENT_REQUEST_ID_KEY = "parent_request_id"

TRACE_HEADER = "x-trace-id"
REQUEST_HEADER = "x-request-id"
PARENT_REQUEST_HEADER = "x-parent-request-id"

CLIENT_ID_HEADERS = ("x-forwarded-for", "x-real-ip", "cf-connecting-ip")  # docstring: client id priority chain
UNKNOWN_CLIENT_ID = "unknown"  # docstring: shared bucket when no identifying header exists

RATE_LIMIT_REMAINING_HEADER = "X-RateLimit-Remaining"
RATE_LIMIT_RESET_HEADER = "X-RateLimit-Reset"
RETRY_AFTER_HEADER = "Retry-After"

TIMING_MS_KEY = "timing_ms"
TIMING_TOTAL_KEY = "total"
TIMING_TOTAL_MS_KEY = "total_ms"

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
