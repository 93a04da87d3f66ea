# src/poligraph_rag/backend/pipelines/base/context.py

"""
[Responsibility] PipelineContext: per-request runtime context of the retrieval pipeline (knowledge store,
                 trace ids, timing, tier call counts).
[Boundary] Holds no cross-request state; never commits or closes the session; no business logic.
[Upstream] services/chat_service.py (or tests) build it from an AsyncSession via `from_session`.
[Downstream] pipelines/retrieval/* read `ctx.store`; the orchestrator writes timing and call counts.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from poligraph_rag.backend.db.repo.knowledge_store import KnowledgeStore

from .timing import TimingCollector


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class PipelineContext:
    """
    [Responsibility] Dependency aggregation plus lightweight observability for one pipeline run.
    [Boundary] `calls` counts tier invocations so tests can assert tier precedence without mocks.
    """

    store: KnowledgeStore

    trace_id: str = field(default_factory=_new_id)
    request_id: str = field(default_factory=_new_id)
    client_id: Optional[str] = None

    timing: TimingCollector = field(default_factory=TimingCollector)
    calls: Dict[str, int] = field(default_factory=dict)
    meta: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_session(
        cls,
        session: AsyncSession,
        *,
        trace_id: Optional[str] = None,
        request_id: Optional[str] = None,
        client_id: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> "PipelineContext":
        return cls(
            store=KnowledgeStore.from_session(session),
            trace_id=str(trace_id) if trace_id else _new_id(),
            request_id=str(request_id) if request_id else _new_id(),
            client_id=client_id,
            timing=TimingCollector(),
            meta=meta or {},
        )

    def record_call(self, tier: str) -> None:
        self.calls[tier] = self.calls.get(tier, 0) + 1

    def call_count(self, tier: str) -> int:
        return self.calls.get(tier, 0)

    def timing_ms(self, *, include_total: bool = True, total_key: str = "total") -> Dict[str, float]:
        return self.timing.to_dict(include_total=include_total, total_key=total_key)
