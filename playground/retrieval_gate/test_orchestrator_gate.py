# playground/retrieval_gate/test_orchestrator_gate.py

"""
[Responsibility] Gate: Pattern -> Semantic -> Keyword -> Sentinel orchestration over the seeded store.
[Boundary] The vector index and reranker are in-process fakes; tier precedence is asserted through
           PipelineContext.calls rather than mocks of the tiers themselves.
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional, Sequence

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from poligraph_rag.backend.pipelines.base.context import PipelineContext
from poligraph_rag.backend.pipelines.retrieval import pipeline as pipeline_mod
from poligraph_rag.backend.pipelines.retrieval.pipeline import SemanticBackend, context_for_query, run_retrieval
from poligraph_rag.backend.pipelines.retrieval.types import AffairMeta, Candidate, DossierMeta, EntityKind, RetrievalConfig
from poligraph_rag.backend.utils.constants import (
    NO_INFORMATION_SENTINEL,
    TIER_KEYWORD,
    TIER_PATTERN,
    TIER_SEMANTIC,
    TIER_SENTINEL,
)
from poligraph_rag.backend.utils.labels import PRESUMPTION_MARKER


pytestmark = pytest.mark.retrieval_gate

CONFIG = RetrievalConfig(reference_date=date(2025, 6, 1))


def _dossier(entity_id: str, similarity: float, *, content: Optional[str] = None) -> Candidate:
    return Candidate(
        kind=EntityKind.DOSSIER,
        entity_id=entity_id,
        content=content or f"Résumé du dossier {entity_id}.",
        metadata=DossierMeta(title=f"Dossier {entity_id}", status="EN_COURS", slug=entity_id),
        similarity=similarity,
        canonical_link=f"/assemblee/{entity_id}",
    )


class FakeIndex:
    def __init__(self, candidates: Sequence[Candidate] = (), *, error: Optional[Exception] = None):
        self._candidates = list(candidates)
        self._error = error
        self.queries: List[str] = []

    async def search(self, query: str, *, limit: int, threshold: float) -> List[Candidate]:
        self.queries.append(query)
        if self._error is not None:
            raise self._error
        return [c for c in self._candidates if c.similarity >= threshold][:limit]


class FailingReranker:
    async def rerank(self, query: str, candidates: Sequence[Candidate], *, top_k: int) -> List[Candidate]:
        raise TimeoutError("rerank timeout")


@pytest.fixture
def ctx(seeded_session: AsyncSession) -> PipelineContext:
    return PipelineContext.from_session(seeded_session, trace_id="trace-1", request_id="req-1")


@pytest.mark.asyncio
async def test_pattern_tier_wins_and_skips_semantic(ctx: PipelineContext) -> None:
    index = FakeIndex([_dossier("a", 0.9)])
    result = await run_retrieval(ctx, "Qui est Jean Dupont ?", config=CONFIG, semantic=SemanticBackend(index=index))

    assert result.tier == TIER_PATTERN
    assert result.text.startswith("**M. Jean Dupont**")
    assert ctx.calls == {TIER_PATTERN: 1}
    assert index.queries == []
    assert TIER_PATTERN in ctx.timing_ms()


@pytest.mark.asyncio
async def test_pattern_tier_resolves_accented_capital_name(ctx: PipelineContext) -> None:
    result = await run_retrieval(ctx, "Qui est  Élodie Sénéchal ?", config=CONFIG)

    assert result.tier == TIER_PATTERN
    assert result.text.startswith("**Mme Élodie Sénéchal**")
    assert ctx.calls == {TIER_PATTERN: 1}


@pytest.mark.asyncio
async def test_semantic_tier_when_no_pattern(ctx: PipelineContext) -> None:
    index = FakeIndex([_dossier("low", 0.2), _dossier("a", 0.9)])
    result = await run_retrieval(ctx, "le logement des jeunes", config=CONFIG, semantic=SemanticBackend(index=index))

    assert result.tier == TIER_SEMANTIC
    assert result.text.startswith("[DOSSIER] **Dossier a**")
    assert "Dossier low" not in result.text
    assert index.queries == ["le logement des jeunes"]
    assert ctx.meta["rerank"] == "skipped"
    assert ctx.calls == {TIER_PATTERN: 1, TIER_SEMANTIC: 1}


@pytest.mark.asyncio
async def test_semantic_failure_falls_back_to_keyword(ctx: PipelineContext, log_records) -> None:
    index = FakeIndex(error=ConnectionError("milvus down"))
    result = await run_retrieval(ctx, "dupont", config=CONFIG, semantic=SemanticBackend(index=index))

    assert result.tier == TIER_KEYWORD
    assert "/politiques/jean-dupont" in result.text
    assert ctx.calls == {TIER_PATTERN: 1, TIER_SEMANTIC: 1, TIER_KEYWORD: 1}
    assert "retrieval.semantic.failed" in [r.getMessage() for r in log_records]


@pytest.mark.asyncio
async def test_empty_semantic_recall_falls_back_to_keyword(ctx: PipelineContext) -> None:
    result = await run_retrieval(ctx, "dupont", config=CONFIG, semantic=SemanticBackend(index=FakeIndex()))
    assert result.tier == TIER_KEYWORD


@pytest.mark.asyncio
async def test_semantic_absent_is_not_called(ctx: PipelineContext) -> None:
    result = await run_retrieval(ctx, "dupont", config=CONFIG)
    assert result.tier == TIER_KEYWORD
    assert TIER_SEMANTIC not in ctx.calls


@pytest.mark.asyncio
async def test_sentinel_when_every_tier_is_empty(ctx: PipelineContext) -> None:
    result = await run_retrieval(ctx, "xyzzy plugh quux", config=CONFIG, semantic=SemanticBackend(index=FakeIndex()))
    assert result.tier == TIER_SENTINEL
    assert result.text == NO_INFORMATION_SENTINEL
    assert ctx.calls == {TIER_PATTERN: 1, TIER_SEMANTIC: 1, TIER_KEYWORD: 1, TIER_SENTINEL: 1}


@pytest.mark.asyncio
async def test_blank_query_goes_straight_to_sentinel(ctx: PipelineContext) -> None:
    assert await context_for_query(ctx, "   \n ", config=CONFIG) == NO_INFORMATION_SENTINEL
    assert ctx.calls == {TIER_SENTINEL: 1}


@pytest.mark.asyncio
async def test_keyword_error_yields_sentinel(ctx: PipelineContext, log_records, monkeypatch) -> None:
    async def broken(store, query, *, today=None):
        raise RuntimeError("database is locked")

    monkeypatch.setattr(pipeline_mod, "search_by_keywords", broken)
    result = await run_retrieval(ctx, "dupont", config=CONFIG)

    assert result.tier == TIER_SENTINEL
    failed = [r for r in log_records if r.getMessage() == "retrieval.tier.failed"]
    assert len(failed) == 1
    assert failed[0].tier == TIER_KEYWORD
    assert failed[0].error_type == "RuntimeError"
    assert failed[0].trace_id == "trace-1"


@pytest.mark.asyncio
async def test_pattern_error_falls_through(ctx: PipelineContext, monkeypatch) -> None:
    async def broken(store, query, **kwargs):
        raise RuntimeError("handler bug")

    monkeypatch.setattr(pipeline_mod, "match_pattern", broken)
    result = await run_retrieval(ctx, "dupont", config=CONFIG)

    assert result.tier == TIER_KEYWORD
    assert ctx.calls == {TIER_PATTERN: 1, TIER_KEYWORD: 1}


@pytest.mark.asyncio
async def test_failing_reranker_keeps_vector_order(ctx: PipelineContext) -> None:
    index = FakeIndex([_dossier("a", 0.9), _dossier("b", 0.8)])
    backend = SemanticBackend(index=index, reranker=FailingReranker())
    result = await run_retrieval(ctx, "le logement des jeunes", config=CONFIG, semantic=backend)

    assert result.tier == TIER_SEMANTIC
    assert result.text.index("Dossier a") < result.text.index("Dossier b")
    assert ctx.meta["rerank"] == "failed"


@pytest.mark.asyncio
async def test_identical_queries_are_deterministic(seeded_session: AsyncSession) -> None:
    texts = []
    for _ in range(2):
        ctx = PipelineContext.from_session(seeded_session)
        texts.append(await context_for_query(ctx, "dossier sur le budget 2024", config=CONFIG))
    assert texts[0] == texts[1]
    assert "Budget 2024" in texts[0]


@pytest.mark.asyncio
async def test_context_respects_character_budget(ctx: PipelineContext) -> None:
    index = FakeIndex([_dossier(f"d{i}", 0.9 - i * 0.01, content="x" * 200) for i in range(10)])
    config = RetrievalConfig(max_context_length=700, reference_date=date(2025, 6, 1))
    result = await run_retrieval(ctx, "le logement des jeunes", config=config, semantic=SemanticBackend(index=index))

    assert result.tier == TIER_SEMANTIC
    assert 0 < len(result.text) <= 700
    assert result.text.startswith("[DOSSIER] **Dossier d0**")


@pytest.mark.asyncio
async def test_affair_candidates_carry_disclaimer(ctx: PipelineContext) -> None:
    affair = Candidate(
        kind=EntityKind.AFFAIR,
        entity_id="aff-1",
        content="Soupçons d'emplois fictifs.",
        metadata=AffairMeta(title="Emplois fictifs", status="PROCES_EN_COURS", politician_name="Jean Dupont"),
        similarity=0.8,
    )
    result = await run_retrieval(
        ctx,
        "emplois fictifs assistants",
        config=CONFIG,
        semantic=SemanticBackend(index=FakeIndex([affair])),
    )
    assert result.tier == TIER_SEMANTIC
    assert PRESUMPTION_MARKER in result.text


@pytest.mark.asyncio
async def test_broad_query_leads_with_statistics(ctx: PipelineContext) -> None:
    index = FakeIndex([_dossier("a", 0.9)])
    result = await run_retrieval(
        ctx,
        "combien de textes sur le logement",
        config=CONFIG,
        semantic=SemanticBackend(index=index),
    )
    assert result.tier == TIER_SEMANTIC
    assert result.text.startswith("[STATISTIQUES]\n**Statistiques de Poligraph :**")
    assert "[DOSSIER] **Dossier a**" in result.text
