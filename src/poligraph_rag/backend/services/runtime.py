# src/poligraph_rag/backend/services/runtime.py

"""
[Responsibility] ServiceRuntime: process-wide client handles (vector index, reranker, rate limiter) and the
                 normalized RetrievalConfig, built once at startup from Settings.
[Boundary] No per-request state. Missing configuration turns a feature off (one startup log line);
           it is never an error.
[Upstream] api/app.py lifespan (or tests) calls `ServiceRuntime.from_settings`.
[Downstream] chat_service passes `config`/`semantic` into the orchestrator and calls `limiter.limit`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Optional

from poligraph_rag.backend.kb.client import MilvusClient
from poligraph_rag.backend.kb.embed import QueryEmbedder
from poligraph_rag.backend.kb.repo import MilvusRepo
from poligraph_rag.backend.pipelines.retrieval.pipeline import SemanticBackend
from poligraph_rag.backend.pipelines.retrieval.rerank import build_reranker
from poligraph_rag.backend.pipelines.retrieval.types import RetrievalConfig
from poligraph_rag.backend.pipelines.retrieval.vector import MilvusVectorIndex
from poligraph_rag.backend.utils.logging_ import get_logger, log_event
from poligraph_rag.config import Settings

from .rate_limit import RateLimiter, RedisRateLimitStore


logger = get_logger("services.runtime")


def retrieval_config_from_settings(s: Settings, *, reference_date: Optional[date] = None) -> RetrievalConfig:
    return RetrievalConfig(
        max_context_length=int(s.MAX_CONTEXT_LENGTH),
        semantic_limit=int(s.SEMANTIC_LIMIT),
        semantic_threshold=float(s.SEMANTIC_THRESHOLD),
        rerank_top_k=int(s.RERANK_TOP_K),
        reference_date=reference_date,
    )


def _build_semantic(s: Settings) -> tuple[Optional[SemanticBackend], Optional[MilvusClient]]:
    if not s.semantic_enabled:
        log_event(logger, logging.INFO, "semantic.disabled", fields={"reason": "not configured"})
        return None, None
    try:
        embedder = QueryEmbedder.from_config(
            provider=s.EMBED_PROVIDER,
            model=s.EMBED_MODEL,
            dim=s.EMBED_DIM,
        )
        client = MilvusClient(uri=s.MILVUS_URI, host=s.MILVUS_HOST, port=s.MILVUS_PORT, token=s.MILVUS_TOKEN)
        reranker = build_reranker(
            s.RERANK_PROVIDER,
            model=s.RERANK_MODEL,
            api_key=s.VOYAGE_API_KEY,
            base_url=s.VOYAGE_API_BASE,
            timeout_s=s.RERANK_TIMEOUT_S,
            model_path=s.RERANKER_MODEL_PATH,
            device=s.RERANKER_DEVICE,
        )
    except (ImportError, TypeError, ValueError) as exc:
        log_event(
            logger,
            logging.WARNING,
            "semantic.disabled",
            fields={"reason": "init failed", "error_type": exc.__class__.__name__},
        )
        return None, None

    index = MilvusVectorIndex(
        embedder=embedder,
        repo=MilvusRepo(client),
        collection=s.MILVUS_COLLECTION,
        metric_type=s.MILVUS_METRIC_TYPE,
    )
    log_event(
        logger,
        logging.INFO,
        "semantic.enabled",
        fields={
            "embed_provider": embedder.provider,
            "embed_model": embedder.model,
            "collection": s.MILVUS_COLLECTION,
            "rerank": str(s.RERANK_PROVIDER or "none"),
        },
    )
    return SemanticBackend(index=index, reranker=reranker), client


@dataclass
class ServiceRuntime:
    """
    [Responsibility] Explicit holder for "initialize once, reuse" collaborators.
    [Boundary] Safe for concurrent reads; mutated only by `aclose`.
    """

    config: RetrievalConfig
    limiter: RateLimiter
    semantic: Optional[SemanticBackend] = None
    max_query_length: int = 2000
    milvus_client: Optional[MilvusClient] = None
    rate_limit_store: Optional[RedisRateLimitStore] = None
    version: str = "0.1.0"
    extras: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_settings(cls, s: Settings) -> "ServiceRuntime":
        semantic, client = _build_semantic(s)
        store: Optional[RedisRateLimitStore] = None
        if s.rate_limit_enabled:
            store = RedisRateLimitStore.from_url(str(s.RATE_LIMIT_REDIS_URL), prefix=s.RATE_LIMIT_PREFIX)
        limiter = RateLimiter(store, max_requests=s.RATE_LIMIT_MAX_REQUESTS, window_s=s.RATE_LIMIT_WINDOW_S)
        return cls(
            config=retrieval_config_from_settings(s),
            limiter=limiter,
            semantic=semantic,
            max_query_length=int(s.MAX_QUERY_LENGTH),
            milvus_client=client,
            rate_limit_store=store,
        )

    def features(self) -> Dict[str, bool]:
        return {
            "semantic": self.semantic is not None,
            "rerank": self.semantic is not None and self.semantic.reranker is not None,
            "rate_limit": self.limiter.enabled,
        }

    async def aclose(self) -> None:
        if self.rate_limit_store is not None:
            await self.rate_limit_store.close()
        if self.milvus_client is not None:
            self.milvus_client.disconnect()
