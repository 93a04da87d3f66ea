# src/poligraph_rag/backend/pipelines/retrieval/keyword.py

"""
[Responsibility] StructuredKeywordSearch: multi-entity substring search (politicians, parties, dossiers/votes,
                 declarations, press, geography, statistics, institutions) built on the thematic expander.
[Boundary] Read-only lookups through KnowledgeStore; no ranking beyond per-query ORDER BY; no vector recall.
[Upstream] pipeline.py keyword tier.
[Downstream] One text block: non-empty snippet groups joined by SECTION_SEPARATOR, or None.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence

from poligraph_rag.backend.db.models import LegislativeDossierModel, PartyModel, PoliticianModel, ScrutinModel
from poligraph_rag.backend.db.repo import DateRange, KnowledgeStore
from poligraph_rag.backend.utils.constants import SECTION_SEPARATOR
from poligraph_rag.backend.utils.departments import find_department_code, get_department
from poligraph_rag.backend.utils.labels import PARLIAMENT_MANDATE_TYPES, dossier_status_label, scrutin_result_label
from poligraph_rag.backend.utils.links import (
    ROUTE_INSTITUTIONS,
    ROUTE_MAP,
    ROUTE_PRESS,
    ROUTE_STATISTICS,
    dossier_link,
    external_link,
    link_line,
    party_link,
    politician_link,
    scrutin_link,
)
from poligraph_rag.backend.utils.text import clip, format_currency, format_date_fr

from .themes import expand, extract_temporal, is_thematic, tokenize


SUB_SEARCH_LIMIT = 3
DECLARATION_LIMIT = 5
MIN_THEMATIC_TERM_LEN = 4  # docstring: dossier/scrutin terms must be longer than 3 chars

PARTY_MARKERS = ("parti", "groupe", "politique")
VOTE_MARKERS = ("vote", "scrutin", "loi")
WEALTH_MARKERS = ("patrimoine", "déclaration", "fortune", "plus riche", "hatvp")
PRESS_MARKERS = ("presse", "actualité", "article", "journal", "médias")
GEOGRAPHY_MARKERS = ("département", "région", "élus de", "élus du", "élus des")
STATISTICS_MARKERS = ("combien", "nombre", "statistique", "chiffre", "total")
INSTITUTION_MARKERS = ("assemblée", "sénat", "gouvernement", "institution")


def _mentions(lower_query: str, markers: Sequence[str]) -> bool:
    return any(m in lower_query for m in markers)


@dataclass(frozen=True)
class KeywordQuery:
    """Pre-computed query facets shared by every sub-search."""

    lower: str
    words: List[str]
    date_range: Optional[DateRange]

    @classmethod
    def parse(cls, query: str, *, today: Optional[date] = None) -> "KeywordQuery":
        lower = str(query or "").lower()
        temporal = extract_temporal(lower, today=today)
        return cls(
            lower=lower,
            words=expand(lower, tokenize(lower)),
            date_range=temporal.date_range if temporal else None,
        )

    @property
    def thematic_terms(self) -> List[str]:
        return [w for w in self.words if len(w) >= MIN_THEMATIC_TERM_LEN]

    @property
    def since(self) -> Optional[date]:
        return self.date_range.start if self.date_range else None


# --- snippet renderers ---


def render_politician(p: PoliticianModel, first_mandate_title: Optional[str]) -> str:
    display = f"{p.civility} {p.full_name}" if p.civility else p.full_name
    info = f"**{display}**"
    party = p.current_party
    if party is not None:
        info += f" ({party.short_name or party.name})"
    if first_mandate_title:
        info += f" — {first_mandate_title}"
    link = politician_link(p.slug)
    return info + (f"\n→ {link}" if link else "")


def render_party(party: PartyModel, members: int) -> str:
    out = f"**{party.name}** ({party.short_name or ''}) — {members} membre(s)"
    link = party_link(party.slug)
    return out + (f"\n→ {link}" if link else "")


def render_dossier(d: LegislativeDossierModel) -> str:
    out = f"**{d.short_title or d.title[:80]}**\nStatut : {dossier_status_label(d.status)}"
    if d.category:
        out += f" | Catégorie : {d.category}"
    if d.filing_date:
        out += f"\nDate : {format_date_fr(d.filing_date)}"
    link = dossier_link(d.slug, d.id)
    return out + (f"\n→ {link}" if link else "")


def render_scrutin(s: ScrutinModel) -> str:
    out = (
        f"**Vote : {clip(s.title, 100)}**\n"
        f"Date : {format_date_fr(s.voting_date)} — {scrutin_result_label(s.result)}\n"
        f"Pour : {s.votes_for}, Contre : {s.votes_against}, Abstention : {s.votes_abstain}"
    )
    link = scrutin_link(s.slug, s.id)
    return out + (f"\n→ {link}" if link else "")


class StructuredKeywordSearch:
    """
    [Responsibility] Run the fixed sequence of sub-searches and concatenate their snippets.
    [Boundary] Sub-searches share one session and run sequentially, in category order; output order
               never depends on completion order.
    """

    def __init__(self, store: KnowledgeStore, *, today: Optional[date] = None):
        self._store = store
        self._today = today

    async def search(self, query: str) -> Optional[str]:
        q = KeywordQuery.parse(query, today=self._today)
        groups: List[str] = []
        for sub_search in (
            self.politicians,
            self.parties,
            self.legislation,
            self.wealth,
            self.press,
            self.geography,
            self.statistics,
            self.institutions,
        ):
            groups.extend(await sub_search(q))
        if not groups:
            return None
        return SECTION_SEPARATOR.join(groups)

    async def politicians(self, q: KeywordQuery) -> List[str]:
        if not q.words:
            return []
        repo = self._store.politicians
        found = await repo.search_by_terms(q.words, limit=SUB_SEARCH_LIMIT)
        out: List[str] = []
        for p in found:
            mandates = await repo.current_mandates(p.id, limit=1)
            out.append(render_politician(p, mandates[0].title if mandates else None))
        return out

    async def parties(self, q: KeywordQuery) -> List[str]:
        if not _mentions(q.lower, PARTY_MARKERS):
            return []
        found = await self._store.parties.search_by_terms(q.words, limit=SUB_SEARCH_LIMIT)
        if not found:
            return []
        counts = await self._store.parties.member_counts([p.id for p in found])
        return [render_party(p, counts.get(p.id, 0)) for p in found]

    async def legislation(self, q: KeywordQuery) -> List[str]:
        if not (is_thematic(q.lower) or _mentions(q.lower, VOTE_MARKERS)):
            return []
        terms = q.thematic_terms
        if not terms:
            return []
        repo = self._store.legislation
        dossiers = await repo.find_dossiers(terms=terms, date_range=q.date_range, limit=SUB_SEARCH_LIMIT)
        scrutins = await repo.find_scrutins(terms=terms, date_range=q.date_range, limit=SUB_SEARCH_LIMIT)
        return [render_dossier(d) for d in dossiers] + [render_scrutin(s) for s in scrutins]

    async def wealth(self, q: KeywordQuery) -> List[str]:
        if not _mentions(q.lower, WEALTH_MARKERS):
            return []
        declarations = await self._store.politicians.top_declarations_by_net_worth(limit=DECLARATION_LIMIT)
        if not declarations:
            return []
        out = "**Déclarations de patrimoine les plus élevées :**\n"
        for d in declarations:
            amount = format_currency(d.total_net) if d.total_net is not None else "Non communiqué"
            out += f"• {d.politician.full_name} : {amount}\n"
            out += link_line(politician_link(d.politician.slug), indent="  ")
        return [out.rstrip("\n")]

    async def press(self, q: KeywordQuery) -> List[str]:
        if not _mentions(q.lower, PRESS_MARKERS):
            return []
        articles = await self._store.press.find_articles(since=q.since, limit=SUB_SEARCH_LIMIT)
        if not articles:
            return []
        out = "**Articles de presse récents :**\n"
        for a in articles:
            out += f"• **{a.title}** — {a.feed_source} ({format_date_fr(a.published_at)})\n"
            out += link_line(external_link(a.url), indent="  ")
        return [out + f"→ Revue de presse : {ROUTE_PRESS}"]

    async def geography(self, q: KeywordQuery) -> List[str]:
        if not _mentions(q.lower, GEOGRAPHY_MARKERS):
            return []
        for word in q.words:
            code = find_department_code(word)
            if code is None:
                continue
            dept = get_department(code)
            count = await self._store.politicians.count_current_mandates(
                PARLIAMENT_MANDATE_TYPES,
                department_code=code,
            )
            name = dept.name if dept else code
            return [f"**{name}** ({code}) : {count} élu(s) en exercice\n→ Carte des élus : {ROUTE_MAP}"]
        return []

    async def statistics(self, q: KeywordQuery) -> List[str]:
        if not _mentions(q.lower, STATISTICS_MARKERS):
            return []
        return [await render_statistics(self._store)]

    async def institutions(self, q: KeywordQuery) -> List[str]:
        if not _mentions(q.lower, INSTITUTION_MARKERS):
            return []
        return [f"Pour comprendre le fonctionnement des institutions françaises :\n→ {ROUTE_INSTITUTIONS}"]


async def render_statistics(store: KnowledgeStore) -> str:
    """Aggregate counts, computed fresh per call (shared with the broad-query section of the assembler)."""
    c = await store.stats.global_counts()
    return (
        "**Statistiques de Poligraph :**\n"
        f"• {c.deputies} députés en exercice (577 sièges)\n"
        f"• {c.senators} sénateurs en exercice (348 sièges)\n"
        f"• {c.meps} eurodéputés français (81 sièges)\n"
        f"• {c.government_members} membres du gouvernement\n"
        f"• {c.parties} partis politiques référencés\n"
        f"• {c.affairs} affaires judiciaires référencées ({c.definitive_convictions} condamnations définitives)\n"
        f"• {c.dossiers} dossiers législatifs\n"
        f"• {c.scrutins} scrutins enregistrés\n"
        f"• {c.declarations} déclarations HATVP\n"
        f"• {c.fact_checks} fact-checks référencés\n\n"
        f"→ Statistiques détaillées : {ROUTE_STATISTICS}\n"
        f"→ Carte des élus : {ROUTE_MAP}"
    )


async def search_by_keywords(store: KnowledgeStore, query: str, *, today: Optional[date] = None) -> Optional[str]:
    """Keyword tier entry point: concatenated snippets, or None when every sub-search is empty."""
    return await StructuredKeywordSearch(store, today=today).search(query)


__all__ = [
    "KeywordQuery",
    "StructuredKeywordSearch",
    "render_statistics",
    "search_by_keywords",
]
