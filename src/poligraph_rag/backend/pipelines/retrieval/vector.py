# src/poligraph_rag/backend/pipelines/retrieval/vector.py

"""
[Responsibility] SemanticRetriever: embed the query, search the Milvus index and map hits to typed Candidates.
[Boundary] Recall + score normalization + threshold only; rerank/boost/assembly live in sibling modules.
           Failures are returned as StageOutcome values, never raised to the orchestrator.
[Upstream] pipeline.py semantic tier (only when a semantic backend is configured).
[Downstream] rerank.py / temporal.py / assemble.py consume the Candidate list.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Literal, Mapping, Optional, Protocol, Sequence, cast

from poligraph_rag.backend.kb.embed import QueryEmbedder
from poligraph_rag.backend.kb.repo import MilvusRepo
from poligraph_rag.backend.kb.schema import (
    CONTENT_FIELD,
    DEFAULT_OUTPUT_FIELDS,
    ENTITY_ID_FIELD,
    ENTITY_TYPE_FIELD,
    METADATA_FIELD,
    build_expr_for_entity_types,
)
from poligraph_rag.backend.utils.links import (
    dossier_link,
    external_link,
    factcheck_link,
    party_link,
    politician_link,
    scrutin_link,
)
from poligraph_rag.backend.utils.logging_ import get_logger, log_event

from .types import (
    AffairMeta,
    Candidate,
    CandidateMetadata,
    DossierMeta,
    EntityKind,
    FactCheckMeta,
    PartyMeta,
    PoliticianMeta,
    PressMeta,
    ScrutinMeta,
    StageOutcome,
    as_date,
)


logger = get_logger("retrieval.vector")

MetricType = Literal["IP", "L2", "COSINE"]  # docstring: aligned with Milvus metric names


class VectorIndex(Protocol):
    """External similarity index: `search(query, limit, threshold) -> Candidate[]`."""

    async def search(self, query: str, *, limit: int, threshold: float) -> List[Candidate]: ...


def _normalize_metric_type(metric_type: Optional[str]) -> MetricType:
    mt = str(metric_type or "COSINE").strip().upper()
    if mt in {"IP", "L2", "COSINE"}:
        return cast(MetricType, mt)
    return cast(MetricType, "COSINE")


def normalize_vector_score(raw_score: float, metric_type: MetricType) -> float:
    """Map distance/similarity to "higher is better" in [0, 1]."""
    if metric_type == "L2":
        dist = float(raw_score) if raw_score >= 0 else 0.0
        return 1.0 / (1.0 + dist)
    return min(max(float(raw_score), 0.0), 1.0)


def _pick(meta: Mapping[str, Any], *keys: str) -> Optional[Any]:
    """First non-empty value among snake_case / camelCase aliases."""
    for k in keys:
        v = meta.get(k)
        if v not in (None, ""):
            return v
    return None


def _text(meta: Mapping[str, Any], *keys: str) -> Optional[str]:
    v = _pick(meta, *keys)
    return str(v) if v is not None else None


def _source_urls(meta: Mapping[str, Any]) -> tuple:
    raw = meta.get("source_urls") or meta.get("sources") or ()
    urls: List[str] = []
    for item in raw if isinstance(raw, (list, tuple)) else ():
        url = item.get("url") if isinstance(item, Mapping) else item
        if url:
            urls.append(str(url))
    return tuple(urls)


def build_metadata(kind: EntityKind, meta: Mapping[str, Any]) -> CandidateMetadata:
    """
    [Responsibility] Stored JSON metadata -> the typed record of `kind` (exhaustive over EntityKind).
    [Boundary] Unknown keys are dropped; missing titles fall back to a generic French label.
    """
    if kind is EntityKind.POLITICIAN:
        return PoliticianMeta(
            name=_text(meta, "name", "full_name", "fullName") or "Inconnu",
            slug=_text(meta, "slug"),
            party=_text(meta, "party"),
        )
    if kind is EntityKind.PARTY:
        return PartyMeta(
            name=_text(meta, "name") or "Parti politique",
            short_name=_text(meta, "short_name", "shortName"),
            slug=_text(meta, "slug"),
        )
    if kind is EntityKind.AFFAIR:
        return AffairMeta(
            title=_text(meta, "title") or "Affaire judiciaire",
            status=_text(meta, "status"),
            slug=_text(meta, "slug"),
            politician_name=_text(meta, "politician_name", "politicianName"),
            politician_slug=_text(meta, "politician_slug", "politicianSlug"),
            facts_date=as_date(_pick(meta, "facts_date", "factsDate")),
            source_urls=_source_urls(meta),
        )
    if kind is EntityKind.DOSSIER:
        return DossierMeta(
            title=_text(meta, "title", "short_title", "shortTitle") or "Dossier législatif",
            status=_text(meta, "status"),
            slug=_text(meta, "slug"),
            dossier_id=_text(meta, "id", "dossier_id"),
            source_url=_text(meta, "source_url", "sourceUrl"),
            filing_date=as_date(_pick(meta, "filing_date", "filingDate")),
        )
    if kind is EntityKind.SCRUTIN:
        return ScrutinMeta(
            title=_text(meta, "title") or "Scrutin",
            result=_text(meta, "result"),
            slug=_text(meta, "slug"),
            scrutin_id=_text(meta, "id", "scrutin_id"),
            source_url=_text(meta, "source_url", "sourceUrl"),
            voting_date=as_date(_pick(meta, "voting_date", "votingDate")),
        )
    if kind is EntityKind.PRESS_ARTICLE:
        return PressMeta(
            title=_text(meta, "title") or "Article de presse",
            url=_text(meta, "url"),
            feed_source=_text(meta, "feed_source", "feedSource"),
            published_at=as_date(_pick(meta, "published_at", "publishedAt")),
        )
    if kind is EntityKind.FACTCHECK:
        return FactCheckMeta(
            title=_text(meta, "title") or "Fact-check",
            verdict=_text(meta, "verdict"),
            slug=_text(meta, "slug"),
            source_name=_text(meta, "source_name", "sourceName"),
            published_at=as_date(_pick(meta, "published_at", "publishedAt")),
        )
    raise ValueError(f"unsupported entity kind: {kind!r}")


def canonical_link_for(metadata: CandidateMetadata) -> Optional[str]:
    """Internal route (or http(s) URL for press) built from stored identifiers only."""
    if isinstance(metadata, PoliticianMeta):
        return politician_link(metadata.slug)
    if isinstance(metadata, PartyMeta):
        return party_link(metadata.slug)
    if isinstance(metadata, AffairMeta):
        return politician_link(metadata.politician_slug)
    if isinstance(metadata, DossierMeta):
        return dossier_link(metadata.slug, metadata.dossier_id)
    if isinstance(metadata, ScrutinMeta):
        return scrutin_link(metadata.slug, metadata.scrutin_id)
    if isinstance(metadata, PressMeta):
        return external_link(metadata.url)
    if isinstance(metadata, FactCheckMeta):
        return factcheck_link(metadata.slug)
    return None


def candidate_from_payload(payload: Mapping[str, Any], *, similarity: float) -> Optional[Candidate]:
    """Index payload -> Candidate; hits with an unknown entity type or no content are dropped."""
    try:
        kind = EntityKind(str(payload.get(ENTITY_TYPE_FIELD) or "").strip().upper())
    except ValueError:
        return None
    content = str(payload.get(CONTENT_FIELD) or "").strip()
    if not content:
        return None
    raw_meta = payload.get(METADATA_FIELD) or {}
    meta = build_metadata(kind, raw_meta if isinstance(raw_meta, Mapping) else {})
    return Candidate(
        kind=kind,
        entity_id=str(payload.get(ENTITY_ID_FIELD) or ""),
        content=content,
        metadata=meta,
        similarity=float(similarity),
        canonical_link=canonical_link_for(meta),
    )


class MilvusVectorIndex:
    """
    [Responsibility] VectorIndex over a Milvus collection (QueryEmbedder + MilvusRepo).
    [Boundary] Client handles are injected (built once per process by the service runtime).
    """

    def __init__(
        self,
        *,
        embedder: QueryEmbedder,
        repo: MilvusRepo,
        collection: str,
        metric_type: Optional[str] = None,
        entity_types: Optional[Sequence[str]] = None,
    ) -> None:
        self._embedder = embedder
        self._repo = repo
        self._collection = str(collection).strip()
        self._metric_type = _normalize_metric_type(metric_type)
        self._expr = build_expr_for_entity_types(entity_types)

    async def search(self, query: str, *, limit: int, threshold: float) -> List[Candidate]:
        vector = await self._embedder.embed_query(query)
        results = await self._repo.search(
            collection=self._collection,
            query_vectors=[vector],
            top_k=int(limit),
            expr=self._expr,
            output_fields=list(DEFAULT_OUTPUT_FIELDS),
            metric_type=self._metric_type,
        )
        hits: List[Dict[str, Any]] = results[0] if results else []

        out: List[Candidate] = []
        for hit in hits:
            score = normalize_vector_score(float(hit.get("score") or 0.0), self._metric_type)
            if score < threshold:
                continue
            cand = candidate_from_payload(hit.get("payload") or {}, similarity=score)
            if cand is not None:
                out.append(cand)
        out.sort(key=lambda c: c.similarity, reverse=True)  # docstring: stable; ties keep index order
        return out[:limit]


async def retrieve_candidates(
    index: VectorIndex,
    query: str,
    *,
    limit: int,
    threshold: float,
) -> StageOutcome[List[Candidate]]:
    """Semantic recall as a value: success (possibly empty) or failure (backend unavailable)."""
    try:
        candidates = await index.search(query, limit=limit, threshold=threshold)
    except Exception as exc:
        log_event(
            logger,
            logging.WARNING,
            "retrieval.semantic.failed",
            fields={"error_type": exc.__class__.__name__},
            exc_info=exc,
        )
        return StageOutcome.failure(exc)
    return StageOutcome.success(list(candidates))


__all__ = [
    "MilvusVectorIndex",
    "VectorIndex",
    "build_metadata",
    "candidate_from_payload",
    "canonical_link_for",
    "normalize_vector_score",
    "retrieve_candidates",
]
