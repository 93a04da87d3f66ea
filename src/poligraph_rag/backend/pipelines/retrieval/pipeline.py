# src/poligraph_rag/backend/pipelines/retrieval/pipeline.py

"""
[Responsibility] RetrievalOrchestrator: Pattern -> Semantic -> Keyword -> Sentinel tiered fallback producing
                 the context string handed to the language model (`context_for_query`).
[Boundary] Never raises and never returns an empty value: tier failures are logged, the session is rolled
           back and the next tier runs. No commits, no persistence, no LLM call.
[Upstream] services/chat_service.py (PipelineContext + RetrievalConfig + optional SemanticBackend).
[Downstream] patterns / vector+rerank+temporal+assemble / keyword; ctx.calls and ctx.timing record the run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Tuple

from poligraph_rag.backend.pipelines.base.context import PipelineContext
from poligraph_rag.backend.utils.constants import (
    NO_INFORMATION_SENTINEL,
    TIER_KEYWORD,
    TIER_PATTERN,
    TIER_SEMANTIC,
    TIER_SENTINEL,
)
from poligraph_rag.backend.utils.logging_ import get_logger, hash_text, log_event, truncate_text
from poligraph_rag.backend.utils.text import normalize_query

from . import temporal as temporal_mod
from .assemble import ContextAssembler
from .keyword import search_by_keywords
from .patterns import match_pattern
from .rerank import Reranker, rerank_candidates
from .types import Candidate, RetrievalConfig
from .vector import VectorIndex, retrieve_candidates


logger = get_logger("retrieval.pipeline")


@dataclass(frozen=True)
class SemanticBackend:
    """Semantic tier collaborators; absent backend = tier skipped (not failed)."""

    index: VectorIndex
    reranker: Optional[Reranker] = None


@dataclass(frozen=True)
class RetrievalResult:
    """Non-empty context text plus the tier that produced it."""

    text: str
    tier: str


async def semantic_context(
    ctx: PipelineContext,
    query: str,
    *,
    semantic: SemanticBackend,
    config: RetrievalConfig,
) -> Optional[str]:
    """
    Recall -> rerank (best-effort) -> temporal boost -> assemble.

    Returns None when recall fails or finds nothing (the caller falls through to keyword search).
    """
    with ctx.timing.stage("semantic.recall"):
        recalled = await retrieve_candidates(
            semantic.index,
            query,
            limit=config.semantic_limit,
            threshold=config.semantic_threshold,
        )
    if not recalled.ok or not recalled.value:
        return None

    candidates: List[Candidate] = list(recalled.value)
    with ctx.timing.stage("semantic.rerank"):
        reranked = await rerank_candidates(semantic.reranker, query, candidates, top_k=config.rerank_top_k)
    if reranked.ok and reranked.value:
        candidates = list(reranked.value)
    ctx.meta["rerank"] = "applied" if reranked.ok else ("skipped" if reranked.skipped else "failed")

    boosted = temporal_mod.boost(candidates, today=config.today())
    text = await ContextAssembler(ctx.store, max_length=config.max_context_length).assemble(boosted, query)
    return text or None


def _tiers(
    ctx: PipelineContext,
    query: str,
    config: RetrievalConfig,
    semantic: Optional[SemanticBackend],
) -> List[Tuple[str, Callable[[], Awaitable[Optional[str]]]]]:
    tiers: List[Tuple[str, Callable[[], Awaitable[Optional[str]]]]] = [
        (TIER_PATTERN, lambda: match_pattern(ctx.store, query)),
    ]
    if semantic is not None:
        tiers.append((TIER_SEMANTIC, lambda: semantic_context(ctx, query, semantic=semantic, config=config)))
    tiers.append((TIER_KEYWORD, lambda: search_by_keywords(ctx.store, query, today=config.today())))
    return tiers


async def run_retrieval(
    ctx: PipelineContext,
    query: str,
    *,
    config: Optional[RetrievalConfig] = None,
    semantic: Optional[SemanticBackend] = None,
) -> RetrievalResult:
    """
    [Responsibility] Drive the tiers in fixed order; the first non-empty text wins.
    [Boundary] Semantic is skipped entirely (no call recorded) when `semantic` is None.
    """
    cfg = config or RetrievalConfig()
    q = normalize_query(query)
    log_ctx = {"query_hash": hash_text(q), "query_preview": truncate_text(q)}

    if q:
        for tier, run in _tiers(ctx, q, cfg, semantic):
            ctx.record_call(tier)
            text: Optional[str] = None
            with ctx.timing.stage(tier):
                try:
                    text = await run()
                except Exception as exc:
                    log_event(
                        logger,
                        logging.WARNING,
                        "retrieval.tier.failed",
                        context=ctx,
                        fields={**log_ctx, "tier": tier, "error_type": exc.__class__.__name__},
                        exc_info=exc,
                    )
                    await _reset_session(ctx, tier)
            if text:
                log_event(
                    logger,
                    logging.INFO,
                    "retrieval.tier.resolved",
                    context=ctx,
                    fields={**log_ctx, "tier": tier, "length": len(text)},
                )
                return RetrievalResult(text=text, tier=tier)

    ctx.record_call(TIER_SENTINEL)
    log_event(logger, logging.INFO, "retrieval.tier.resolved", context=ctx, fields={**log_ctx, "tier": TIER_SENTINEL})
    return RetrievalResult(text=NO_INFORMATION_SENTINEL, tier=TIER_SENTINEL)


async def _reset_session(ctx: PipelineContext, tier: str) -> None:
    try:
        await ctx.store.rollback()
    except Exception as exc:
        log_event(
            logger,
            logging.ERROR,
            "retrieval.session.rollback_failed",
            context=ctx,
            fields={"tier": tier, "error_type": exc.__class__.__name__},
        )


async def context_for_query(
    ctx: PipelineContext,
    query: str,
    *,
    config: Optional[RetrievalConfig] = None,
    semantic: Optional[SemanticBackend] = None,
) -> str:
    """Exposed contract: always a non-empty string (rendered context or NO_INFORMATION_SENTINEL)."""
    result = await run_retrieval(ctx, query, config=config, semantic=semantic)
    return result.text


__all__ = [
    "RetrievalResult",
    "SemanticBackend",
    "context_for_query",
    "run_retrieval",
    "semantic_context",
]
