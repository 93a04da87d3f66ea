# src/poligraph_rag/backend/utils/logging_.py

"""
[Responsibility] Structured logging conventions: one JSON object per record, a shared project logger
                 root, and helpers that keep raw citizen questions out of log lines.
[Boundary] Does not pick a log backend; does not decide what is business-relevant to log.
[Upstream] services/pipelines/api obtain loggers through get_logger and emit through log_event.
[Downstream] stdout collectors / log search consume the JSON fields (trace_id, tier, query_hash ...).
"""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional


DEFAULT_LOGGER_NAME = "poligraph_rag"  # docstring: project logger root
DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_MAX_TEXT_LEN = 160  # docstring: preview length for user text

TRACE_FIELD_KEYS = (
    "trace_id",
    "request_id",
    "parent_request_id",
    "client_id",
)  # docstring: correlation fields lifted from a context object

_LOG_RECORD_RESERVED = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "message",
    "asctime",
    "taskName",
}  # docstring: built-in LogRecord attributes (never emitted as extra fields)


class StructuredLogFormatter(logging.Formatter):
    """
    [Responsibility] Render a LogRecord as a single JSON line (base fields + extra).
    [Boundary] No redaction; callers are expected to hash/truncate user text first.
    """

    def __init__(self, *, ensure_ascii: bool = True) -> None:
        super().__init__()
        self._ensure_ascii = ensure_ascii

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extras = {k: v for k, v in record.__dict__.items() if k not in _LOG_RECORD_RESERVED}
        for key, value in list(extras.items()):
            if value is None:
                extras.pop(key)  # docstring: drop empty fields to reduce noise
        payload.update(extras)

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_info"] = record.stack_info

        return json.dumps(payload, ensure_ascii=self._ensure_ascii, default=str)


def configure_logging(
    *,
    logger_name: str = DEFAULT_LOGGER_NAME,
    level: int = DEFAULT_LOG_LEVEL,
    ensure_ascii: bool = True,
) -> logging.Logger:
    """
    [Responsibility] Attach the JSON stream handler to the project root logger (idempotent).
    [Boundary] Never touches the root logger; does not add file/remote handlers.
    [Upstream] Process entry points and get_logger.
    [Downstream] Every `poligraph_rag.*` logger inherits the handler.
    """

    logger = logging.getLogger(logger_name)
    logger.setLevel(level)

    has_handler = any(
        isinstance(h, logging.StreamHandler) and getattr(h, "name", "") == "structured_json" for h in logger.handlers
    )
    if not has_handler:
        handler = logging.StreamHandler()
        handler.name = "structured_json"  # docstring: marker against double registration
        handler.setLevel(level)
        handler.setFormatter(StructuredLogFormatter(ensure_ascii=ensure_ascii))
        logger.addHandler(handler)

    logger.propagate = False
    return logger


def resolve_level(value: Optional[str]) -> int:
    """Map a level name from settings to a logging constant (unknown -> INFO)."""
    raw = str(value or "").strip().upper()
    level = logging.getLevelName(raw) if raw else DEFAULT_LOG_LEVEL
    return level if isinstance(level, int) else DEFAULT_LOG_LEVEL


def get_logger(name: Optional[str] = None, *, level: Optional[int] = None) -> logging.Logger:
    """
    [Responsibility] Return a project logger, mounted under the `poligraph_rag` root.
    [Boundary] Does not override external logging configuration beyond the project root.
    """

    configure_logging()
    full_name = name or DEFAULT_LOGGER_NAME
    if name and not name.startswith(DEFAULT_LOGGER_NAME):
        full_name = f"{DEFAULT_LOGGER_NAME}.{name}"
    logger = logging.getLogger(full_name)
    if level is not None:
        logger.setLevel(level)
    return logger


def build_log_fields(
    *,
    context: Optional[Any] = None,
    trace_id: Optional[str] = None,
    request_id: Optional[str] = None,
    extra: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """
    [Responsibility] Merge correlation fields from a context object with explicit extras.
    [Boundary] Never generates a missing trace_id.
    """

    fields: Dict[str, Any] = {}
    if context is not None:
        fields.update(_extract_fields_from_context(context))

    if trace_id is not None:
        fields["trace_id"] = str(trace_id)
    if request_id is not None:
        fields["request_id"] = str(request_id)

    if extra:
        for key, value in extra.items():
            if value is not None:
                fields[key] = value

    return fields


def log_event(
    logger: logging.Logger,
    level: int,
    message: str,
    *,
    context: Optional[Any] = None,
    fields: Optional[Mapping[str, Any]] = None,
    exc_info: Optional[Any] = None,
) -> None:
    """Single entry point for structured log lines (message = stable event name)."""

    extra = build_log_fields(context=context, extra=fields)
    logger.log(level, message, extra=extra, exc_info=exc_info)


def truncate_text(text: Optional[str], *, max_len: int = DEFAULT_MAX_TEXT_LEN) -> Optional[str]:
    """
    [Responsibility] Bound a text preview before it reaches a log line.
    [Boundary] Length control only; no PII detection.
    """

    if text is None:
        return None
    s = str(text)
    if len(s) <= max_len:
        return s
    return f"{s[:max_len]}...(truncated)"


def hash_text(text: Optional[str]) -> Optional[str]:
    """sha256 digest used in place of raw query text (dedup/correlation only, not a security control)."""

    if text is None:
        return None
    s = str(text)
    if not s:
        return ""
    return hashlib.sha256(s.encode("utf-8")).hexdigest()


def _extract_fields_from_context(context: Any) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    for key in TRACE_FIELD_KEYS:
        value = _read_context_value(context, key)
        if value is not None:
            fields[key] = str(value)
    return fields


def _read_context_value(context: Any, key: str) -> Optional[Any]:
    if isinstance(context, Mapping):
        return context.get(key)
    return getattr(context, key, None)
