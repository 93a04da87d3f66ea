# src/poligraph_rag/backend/pipelines/retrieval/rerank.py

"""
[Responsibility] Reranker: optional secondary scoring of semantic candidates (Voyage rerank API or a local
                 bge cross-encoder via LlamaIndex), exposed as a best-effort stage.
[Boundary] Never raises past `rerank_candidates`: on any failure the stage reports an error outcome and the
           caller keeps the vector-search order.
[Upstream] pipeline.py semantic tier after recall.
[Downstream] temporal.py boosts whatever order comes out of this stage.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence

import httpx

from poligraph_rag.backend.utils.errors import ExternalDependencyError
from poligraph_rag.backend.utils.logging_ import get_logger, log_event

from .types import Candidate, StageOutcome


logger = get_logger("retrieval.rerank")


class Reranker(Protocol):
    """`rerank(query, candidates, top_k) -> Candidate[]`; may raise, callers treat failure as non-fatal."""

    async def rerank(self, query: str, candidates: Sequence[Candidate], *, top_k: int) -> List[Candidate]: ...


def _reorder(candidates: Sequence[Candidate], ranked: Sequence[Dict[str, Any]]) -> List[Candidate]:
    """Apply `[{index, relevance_score}]` to the candidate list (unknown/duplicate indexes are ignored)."""
    out: List[Candidate] = []
    seen: set[int] = set()
    for item in ranked:
        idx = item.get("index")
        if not isinstance(idx, int) or idx < 0 or idx >= len(candidates) or idx in seen:
            continue
        seen.add(idx)
        score = item.get("relevance_score")
        cand = candidates[idx]
        out.append(cand.with_similarity(float(score)) if score is not None else cand)
    return out


class VoyageReranker:
    """
    [Responsibility] POST `{base}/rerank` with `{query, documents, model, top_k}`; read `data[{index,
                     relevance_score}]`.
    [Boundary] The API key travels only in the Authorization header; it is never logged.
    """

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "rerank-2.5-lite",
        base_url: str = "https://api.voyageai.com/v1",
        timeout_s: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not str(api_key or "").strip():
            raise ValueError("VOYAGE_API_KEY is required for the voyage reranker")
        self._api_key = str(api_key).strip()
        self._model = str(model)
        self._url = str(base_url).rstrip("/") + "/rerank"
        self._timeout_s = float(timeout_s)
        self._client = client

    @property
    def model(self) -> str:
        return self._model

    async def _post(self, body: Dict[str, Any]) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self._api_key}", "Content-Type": "application/json"}
        if self._client is not None:
            return await self._client.post(self._url, json=body, headers=headers, timeout=self._timeout_s)
        async with httpx.AsyncClient(timeout=self._timeout_s) as client:
            return await client.post(self._url, json=body, headers=headers)

    async def rerank(self, query: str, candidates: Sequence[Candidate], *, top_k: int) -> List[Candidate]:
        if len(candidates) <= 1:
            return list(candidates)
        body = {
            "query": query,
            "documents": [c.content for c in candidates],
            "model": self._model,
            "top_k": min(int(top_k), len(candidates)),
        }
        resp = await self._post(body)
        if resp.status_code >= 400:
            raise ExternalDependencyError(
                message="rerank request failed",
                detail={"status_code": resp.status_code, "model": self._model},
            )
        data = resp.json().get("data") or []
        if not data:
            return list(candidates)  # docstring: empty answer keeps the original order
        return _reorder(candidates, data)


class BgeReranker:
    """
    [Responsibility] Local cross-encoder rerank (bge-reranker-v2-m3 by default) through LlamaIndex's
                     SentenceTransformerRerank postprocessor.
    [Boundary] The model loads lazily on first use and scoring runs in a worker thread.
    """

    def __init__(self, *, model_path: str, device: str = "cpu") -> None:
        self._model_path = str(model_path)
        self._device = str(device)
        self._postprocessor: Any = None

    def _load(self, top_n: int) -> Any:
        if self._postprocessor is None:
            from llama_index.core.postprocessor import SentenceTransformerRerank  # type: ignore

            self._postprocessor = SentenceTransformerRerank(
                model=self._model_path,
                top_n=top_n,
                device=self._device,
            )
        self._postprocessor.top_n = top_n
        return self._postprocessor

    def _score(self, query: str, candidates: Sequence[Candidate], top_n: int) -> List[Dict[str, Any]]:
        from llama_index.core.schema import NodeWithScore, QueryBundle, TextNode  # type: ignore

        post = self._load(top_n)
        nodes = [
            NodeWithScore(node=TextNode(text=c.content, id_=str(i)), score=c.similarity)
            for i, c in enumerate(candidates)
        ]
        ranked = post.postprocess_nodes(nodes, query_bundle=QueryBundle(query_str=query))
        return [{"index": int(n.node.node_id), "relevance_score": n.score} for n in ranked]

    async def rerank(self, query: str, candidates: Sequence[Candidate], *, top_k: int) -> List[Candidate]:
        if len(candidates) <= 1:
            return list(candidates)
        top_n = min(int(top_k), len(candidates))
        ranked = await asyncio.to_thread(self._score, query, list(candidates), top_n)
        return _reorder(candidates, ranked)


def build_reranker(
    provider: Optional[str],
    *,
    model: Optional[str] = None,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout_s: float = 10.0,
    model_path: Optional[str] = None,
    device: str = "cpu",
) -> Optional[Reranker]:
    """Provider name -> reranker instance; `none`/empty disables the stage."""
    p = str(provider or "none").strip().lower()
    if p in {"", "none", "off"}:
        return None
    if p in {"voyage", "voyageai"}:
        return VoyageReranker(
            api_key=str(api_key or ""),
            model=model or "rerank-2.5-lite",
            base_url=base_url or "https://api.voyageai.com/v1",
            timeout_s=timeout_s,
        )
    if p in {"bge", "bge_reranker", "local"}:
        return BgeReranker(model_path=model_path or "BAAI/bge-reranker-v2-m3", device=device)
    raise ValueError(f"unsupported rerank provider: {provider}")


async def rerank_candidates(
    reranker: Optional[Reranker],
    query: str,
    candidates: Sequence[Candidate],
    *,
    top_k: int,
) -> StageOutcome[List[Candidate]]:
    """
    Best-effort rerank stage.

    Returns:
      - skip when no reranker is configured,
      - success with the reranked list (top_k at most),
      - failure when the reranker raised; callers keep `candidates` as-is.
    """
    if reranker is None:
        return StageOutcome.skip("rerank disabled")
    if not candidates:
        return StageOutcome.success([])
    try:
        ranked = await reranker.rerank(query, list(candidates), top_k=top_k)
    except Exception as exc:
        log_event(
            logger,
            logging.WARNING,
            "retrieval.rerank.skipped",
            fields={"error_type": exc.__class__.__name__, "candidates": len(candidates)},
        )
        return StageOutcome.failure(exc)
    if not ranked:
        return StageOutcome.success(list(candidates))
    return StageOutcome.success(list(ranked)[:top_k])


__all__ = [
    "BgeReranker",
    "Reranker",
    "VoyageReranker",
    "build_reranker",
    "rerank_candidates",
]
