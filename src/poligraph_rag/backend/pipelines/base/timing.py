# src/poligraph_rag/backend/pipelines/base/timing.py

"""
[Responsibility] Stage timing for the retrieval pipeline: collect per-tier durations (ms) and export them
                 as a flat JSON-safe dict.
[Boundary] No tracing/profiling and no log output; single request, single coroutine.
[Upstream] pipelines/retrieval/pipeline.py wraps each tier in `with timing.stage(...)`.
[Downstream] PipelineContext.timing_ms(), the chat service debug payload and log fields.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional


def _now_ms() -> float:
    return time.perf_counter() * 1000.0


@dataclass
class TimingCollector:
    """
    Collects `stage -> ms`. Repeated stages overwrite unless `accumulate=True`.

    The total is measured from construction (or the last reset), so it may exceed the sum of stages.
    """

    _stages_ms: Dict[str, float] = field(default_factory=dict)
    _start_ms: float = field(default_factory=_now_ms)

    def reset(self) -> None:
        self._stages_ms.clear()
        self._start_ms = _now_ms()

    def add_ms(self, key: str, ms: float, *, accumulate: bool = True) -> None:
        k = str(key).strip()
        if not k:
            return
        v = max(float(ms), 0.0)
        if accumulate:
            self._stages_ms[k] = self._stages_ms.get(k, 0.0) + v
        else:
            self._stages_ms[k] = v

    @contextmanager
    def stage(self, key: str, *, accumulate: bool = False) -> Iterator[None]:
        """`with timing.stage("keyword"): ...` records the block duration, even when it raises."""
        start = _now_ms()
        try:
            yield
        finally:
            self.add_ms(key, _now_ms() - start, accumulate=accumulate)

    def total_ms(self) -> float:
        return _now_ms() - self._start_ms

    def to_dict(self, *, include_total: bool = True, total_key: str = "total") -> Dict[str, float]:
        out = dict(self._stages_ms)
        if include_total:
            out[total_key] = float(self.total_ms())
        return out

    def get(self, key: str, default: Optional[float] = None) -> Optional[float]:
        return self._stages_ms.get(key, default)
