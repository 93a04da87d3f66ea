# src/poligraph_rag/backend/pipelines/retrieval/assemble.py

"""
[Responsibility] ContextAssembler: render each Candidate with its kind template and accumulate sections
                 under the character budget (optionally led by a fresh statistics section).
[Boundary] Links come from Candidate.canonical_link or utils/links.py only; nothing is derived from the query.
[Upstream] pipeline.py semantic tier (after rerank + temporal boost).
[Downstream] The rendered context string returned by context_for_query.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from poligraph_rag.backend.db.repo import KnowledgeStore
from poligraph_rag.backend.utils.constants import SECTION_SEPARATOR
from poligraph_rag.backend.utils.labels import (
    PRESUMPTION_NOTICE,
    affair_status_label,
    dossier_status_label,
    presumption_notice_for,
    requires_presumption_notice,
    scrutin_result_label,
)
from poligraph_rag.backend.utils.links import external_link, link_line
from poligraph_rag.backend.utils.text import format_date_fr

from .keyword import render_statistics
from .types import (
    AffairMeta,
    Candidate,
    DossierMeta,
    EntityKind,
    FactCheckMeta,
    PartyMeta,
    PoliticianMeta,
    PressMeta,
    ScrutinMeta,
)


BROAD_QUERY_MARKERS = ("combien", "nombre", "statistique", "chiffre", "total", "bilan", "en général")
STATS_TAG = "[STATISTIQUES]"
MAX_AFFAIR_SOURCES = 2


def is_broad_query(query: str) -> bool:
    lower = str(query or "").lower()
    return any(m in lower for m in BROAD_QUERY_MARKERS)


def _header(kind: EntityKind, title: str) -> str:
    return f"[{kind.value}] **{title}**\n"


def _politician(c: Candidate, m: PoliticianMeta) -> str:
    title = f"{m.name} ({m.party})" if m.party else m.name
    return _header(c.kind, title) + c.content + "\n" + link_line(c.canonical_link, label="Fiche complète")


def _party(c: Candidate, m: PartyMeta) -> str:
    name = f"{m.name} ({m.short_name})" if m.short_name else m.name
    return _header(c.kind, f"Parti : {name}") + c.content + "\n" + link_line(c.canonical_link, label="Page parti")


def _affair(c: Candidate, m: AffairMeta) -> str:
    out = _header(c.kind, f"Affaire : {m.title}")
    if m.status:
        out += f"Statut : {affair_status_label(m.status)}\n"
    out += c.content + "\n"
    if requires_presumption_notice(m.status):
        out += (presumption_notice_for(m.politician_name) if m.politician_name else PRESUMPTION_NOTICE) + "\n"
    for url in m.source_urls[:MAX_AFFAIR_SOURCES]:
        out += link_line(external_link(url), label="Source")
    return out + link_line(c.canonical_link, label="Fiche")


def _dossier(c: Candidate, m: DossierMeta) -> str:
    out = _header(c.kind, m.title)
    if m.status:
        out += f"Statut : {dossier_status_label(m.status)}\n"
    out += c.content + "\n"
    out += link_line(c.canonical_link, label="Dossier")
    return out + link_line(external_link(m.source_url), label="Source")


def _scrutin(c: Candidate, m: ScrutinMeta) -> str:
    out = _header(c.kind, f"Vote : {m.title}")
    if m.result:
        when = f"{format_date_fr(m.voting_date)} — " if m.voting_date else ""
        out += f"{when}{scrutin_result_label(m.result)}\n"
    out += c.content + "\n"
    out += link_line(c.canonical_link, label="Scrutin")
    return out + link_line(external_link(m.source_url), label="Source")


def _factcheck(c: Candidate, m: FactCheckMeta) -> str:
    out = _header(c.kind, m.title)
    if m.verdict:
        out += f"Verdict : {m.verdict}" + (f" ({m.source_name})" if m.source_name else "") + "\n"
    out += c.content + "\n"
    return out + link_line(c.canonical_link, label="Fact-check")


def _press(c: Candidate, m: PressMeta) -> str:
    out = _header(c.kind, m.title)
    if m.feed_source or m.published_at:
        out += " — ".join(x for x in (m.feed_source or "", format_date_fr(m.published_at)) if x) + "\n"
    out += c.content + "\n"
    return out + link_line(c.canonical_link, label="Article")


def render_candidate(c: Candidate) -> str:
    """Exhaustive dispatch over the metadata variant (Candidate guarantees kind/metadata agree)."""
    m = c.metadata
    if isinstance(m, PoliticianMeta):
        text = _politician(c, m)
    elif isinstance(m, PartyMeta):
        text = _party(c, m)
    elif isinstance(m, AffairMeta):
        text = _affair(c, m)
    elif isinstance(m, DossierMeta):
        text = _dossier(c, m)
    elif isinstance(m, ScrutinMeta):
        text = _scrutin(c, m)
    elif isinstance(m, FactCheckMeta):
        text = _factcheck(c, m)
    elif isinstance(m, PressMeta):
        text = _press(c, m)
    else:
        raise TypeError(f"unsupported candidate metadata: {type(m).__name__}")
    return text.rstrip("\n")


def fit_sections(sections: Sequence[str], max_length: int) -> str:
    """
    Join sections with SECTION_SEPARATOR while the total stays within `max_length`.

    The first section is always kept, even alone over budget; accumulation stops at the first section
    that would overflow (later, shorter sections are not tried).
    """
    out = ""
    for section in sections:
        if not section:
            continue
        if not out:
            out = section
            continue
        candidate = out + SECTION_SEPARATOR + section
        if len(candidate) > max_length:
            break
        out = candidate
    return out


class ContextAssembler:
    """
    [Responsibility] Candidates (+ optional statistics lead) -> one bounded context string.
    [Boundary] The statistics section is computed fresh per call; no caching.
    """

    def __init__(self, store: Optional[KnowledgeStore], *, max_length: int):
        self._store = store
        self._max_length = int(max_length)

    async def sections(self, candidates: Sequence[Candidate], query: str) -> List[str]:
        out: List[str] = []
        if self._store is not None and is_broad_query(query):
            out.append(f"{STATS_TAG}\n" + await render_statistics(self._store))
        out.extend(render_candidate(c) for c in candidates)
        return out

    async def assemble(self, candidates: Sequence[Candidate], query: str) -> str:
        return fit_sections(await self.sections(candidates, query), self._max_length)


__all__ = [
    "ContextAssembler",
    "fit_sections",
    "is_broad_query",
    "render_candidate",
]
