# src/poligraph_rag/backend/pipelines/retrieval/types.py
"""
[Responsibility] Retrieval types shared by every tier: entity kinds, one typed metadata record per kind,
                 the Candidate, stage outcomes and the normalized RetrievalConfig.
[Boundary] Data structures only; no I/O and no rendering.
[Upstream] vector/rerank/temporal produce and transform Candidates; services build RetrievalConfig.
[Downstream] assemble.py renders Candidates by exhaustive dispatch on `kind`.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum
from typing import Generic, Optional, Tuple, TypeVar, Union


class EntityKind(str, Enum):
    """Values are the `entity_type` strings stored in the vector index."""

    POLITICIAN = "POLITICIAN"
    PARTY = "PARTY"
    AFFAIR = "AFFAIR"
    DOSSIER = "DOSSIER"
    SCRUTIN = "SCRUTIN"
    PRESS_ARTICLE = "PRESS_ARTICLE"
    FACTCHECK = "FACTCHECK"


@dataclass(frozen=True)
class PoliticianMeta:
    name: str
    slug: Optional[str] = None
    party: Optional[str] = None


@dataclass(frozen=True)
class PartyMeta:
    name: str
    short_name: Optional[str] = None
    slug: Optional[str] = None


@dataclass(frozen=True)
class AffairMeta:
    title: str
    status: Optional[str] = None
    slug: Optional[str] = None
    politician_name: Optional[str] = None
    politician_slug: Optional[str] = None
    facts_date: Optional[date] = None
    source_urls: Tuple[str, ...] = ()


@dataclass(frozen=True)
class DossierMeta:
    title: str
    status: Optional[str] = None
    slug: Optional[str] = None
    dossier_id: Optional[str] = None
    source_url: Optional[str] = None
    filing_date: Optional[date] = None


@dataclass(frozen=True)
class ScrutinMeta:
    title: str
    result: Optional[str] = None
    slug: Optional[str] = None
    scrutin_id: Optional[str] = None
    source_url: Optional[str] = None
    voting_date: Optional[date] = None


@dataclass(frozen=True)
class PressMeta:
    title: str
    url: Optional[str] = None
    feed_source: Optional[str] = None
    published_at: Optional[date] = None


@dataclass(frozen=True)
class FactCheckMeta:
    title: str
    verdict: Optional[str] = None
    slug: Optional[str] = None
    source_name: Optional[str] = None
    published_at: Optional[date] = None


CandidateMetadata = Union[
    PoliticianMeta,
    PartyMeta,
    AffairMeta,
    DossierMeta,
    ScrutinMeta,
    PressMeta,
    FactCheckMeta,
]

METADATA_TYPE_BY_KIND = {
    EntityKind.POLITICIAN: PoliticianMeta,
    EntityKind.PARTY: PartyMeta,
    EntityKind.AFFAIR: AffairMeta,
    EntityKind.DOSSIER: DossierMeta,
    EntityKind.SCRUTIN: ScrutinMeta,
    EntityKind.PRESS_ARTICLE: PressMeta,
    EntityKind.FACTCHECK: FactCheckMeta,
}


def event_date_of(metadata: CandidateMetadata) -> Optional[date]:
    """Publication or event date used for the recency boost (None = no boost)."""
    if isinstance(metadata, AffairMeta):
        return metadata.facts_date
    if isinstance(metadata, DossierMeta):
        return metadata.filing_date
    if isinstance(metadata, ScrutinMeta):
        return metadata.voting_date
    if isinstance(metadata, (PressMeta, FactCheckMeta)):
        return metadata.published_at
    return None


@dataclass(frozen=True)
class Candidate:
    """
    [Responsibility] One retrievable fact: kind + text + typed metadata + score + safe canonical link.
    [Boundary] `canonical_link` is built by utils/links.py from stored identifiers, or None; never from query text.
    """

    kind: EntityKind
    entity_id: str
    content: str
    metadata: CandidateMetadata
    similarity: float
    canonical_link: Optional[str] = None

    def __post_init__(self) -> None:
        expected = METADATA_TYPE_BY_KIND[self.kind]
        if not isinstance(self.metadata, expected):
            raise TypeError(f"{self.kind.value} candidate needs {expected.__name__} metadata")

    @property
    def event_date(self) -> Optional[date]:
        return event_date_of(self.metadata)

    def with_similarity(self, similarity: float) -> "Candidate":
        return replace(self, similarity=float(similarity))


T = TypeVar("T")


@dataclass(frozen=True)
class StageOutcome(Generic[T]):
    """
    Result of a best-effort stage: exactly one of `value`, `error` or `skipped` describes what happened.

    Stages return outcomes instead of raising so callers (and tests) can branch on the failure path.
    """

    value: Optional[T] = None
    error: Optional[str] = None
    skipped: bool = False
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.skipped

    @classmethod
    def success(cls, value: T) -> "StageOutcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, exc: BaseException) -> "StageOutcome[T]":
        return cls(error=f"{exc.__class__.__name__}: {exc}")

    @classmethod
    def skip(cls, reason: str) -> "StageOutcome[T]":
        return cls(skipped=True, reason=reason)


@dataclass(frozen=True)
class RetrievalConfig:
    """Normalized pipeline config (built from settings by the service layer; tests build their own)."""

    max_context_length: int = 8000
    semantic_limit: int = 12
    semantic_threshold: float = 0.4
    rerank_top_k: int = 8
    reference_date: Optional[date] = None  # docstring: "today" for temporal math; None = date.today()

    def today(self) -> date:
        return self.reference_date or date.today()


def as_date(value: Union[date, datetime, str, None]) -> Optional[date]:
    """Coerce stored/JSON date values (ISO strings, datetimes) to a date; unparsable -> None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = str(value).strip()
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
    except ValueError:
        return None


@dataclass(frozen=True)
class IntentMatch:
    """Capture set of an intent predicate (1-based groups, like `re.Match.group`)."""

    name: str
    text: str
    groups: Tuple[Optional[str], ...] = ()

    def group(self, index: int) -> Optional[str]:
        if index < 1 or index > len(self.groups):
            return None
        value = self.groups[index - 1]
        return value.strip() if value is not None else None
