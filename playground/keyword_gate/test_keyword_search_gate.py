# playground/keyword_gate/test_keyword_search_gate.py

"""
[Responsibility] Gate: thematic expansion, temporal modifiers and the structured keyword search.
[Boundary] Pure helpers are tested without a store; search runs over the seeded in-memory DB.
"""

from __future__ import annotations

from datetime import date

import pytest

from poligraph_rag.backend.db.repo import DateRange, KnowledgeStore
from poligraph_rag.backend.pipelines.retrieval.keyword import KeywordQuery, search_by_keywords
from poligraph_rag.backend.pipelines.retrieval.themes import expand, extract_temporal, first_matching_topic, tokenize
from poligraph_rag.backend.utils.constants import SECTION_SEPARATOR
from poligraph_rag.backend.utils.text import format_currency


pytestmark = pytest.mark.keyword_gate

TODAY = date(2025, 6, 1)


def test_tokenize_drops_short_words_and_punctuation() -> None:
    assert tokenize("Quel est le budget (2024) de la santé ? santé !") == ["quel", "est", "budget", "2024", "santé"]


def test_expand_uses_first_topic_only() -> None:
    assert expand("budget de la santé") == ["budget", "santé", "hôpital", "médecin", "soin"]
    assert first_matching_topic("budget de la santé") == "santé"
    assert expand("xyzzy") == ["xyzzy"]


@pytest.mark.parametrize(
    "query, expected",
    [
        ("votes en 2024", DateRange.for_year(2024)),
        ("les lois de cette année", DateRange.since(date(2025, 1, 1))),
        ("votes récents", DateRange.since(date(2025, 3, 1))),
        ("les derniers textes", DateRange.since(date(2025, 3, 1))),
    ],
)
def test_extract_temporal(query: str, expected: DateRange) -> None:
    modifier = extract_temporal(query, today=TODAY)
    assert modifier is not None
    assert modifier.date_range == expected


def test_explicit_year_wins_over_recent() -> None:
    modifier = extract_temporal("derniers votes de 2023", today=TODAY)
    assert modifier is not None and modifier.date_range == DateRange.for_year(2023)
    assert extract_temporal("le logement", today=TODAY) is None


def test_keyword_query_facets() -> None:
    q = KeywordQuery.parse("dossier sur le budget 2024", today=TODAY)
    assert q.date_range == DateRange.for_year(2024)
    assert q.since == date(2024, 1, 1)
    assert "fiscalité" in q.words
    assert "sur" not in q.thematic_terms


@pytest.mark.asyncio
async def test_thematic_dossier_search_with_year(store: KnowledgeStore) -> None:
    text = await search_by_keywords(store, "dossier sur le budget 2024", today=TODAY)
    assert text is not None
    assert "**Budget 2024**\nStatut : Adopté | Catégorie : Économie\nDate : 10/03/2024\n→ /assemblee/plf-2024" in text
    assert "/votes/scrutin-plf-2024" in text
    assert "Logement" not in text


@pytest.mark.asyncio
async def test_year_filter_excludes_other_years(store: KnowledgeStore) -> None:
    assert await search_by_keywords(store, "loi de finances 2023", today=TODAY) is None
    text = await search_by_keywords(store, "loi de finances 2024", today=TODAY)
    assert text is not None and "Budget 2024" in text


@pytest.mark.asyncio
async def test_politician_snippet(store: KnowledgeStore) -> None:
    text = await search_by_keywords(store, "dupont", today=TODAY)
    assert text == "**M. Jean Dupont** (HOR) — Député de la 1re circonscription de l'Isère\n→ /politiques/jean-dupont"


@pytest.mark.asyncio
async def test_party_snippet(store: KnowledgeStore) -> None:
    text = await search_by_keywords(store, "parti horizons", today=TODAY)
    assert text is not None
    assert "**Horizons** (HOR) — 2 membre(s)\n→ /partis/horizons" in text.split(SECTION_SEPARATOR)


@pytest.mark.asyncio
async def test_wealth_ranking(store: KnowledgeStore) -> None:
    text = await search_by_keywords(store, "plus riche", today=TODAY)
    assert text is not None
    assert text.startswith("**Déclarations de patrimoine les plus élevées :**")
    assert f"• Jean Dupont : {format_currency(1234567)}" in text


@pytest.mark.asyncio
async def test_statistics(store: KnowledgeStore) -> None:
    text = await search_by_keywords(store, "combien", today=TODAY)
    assert text is not None
    assert text.startswith("**Statistiques de Poligraph :**\n• 1 députés en exercice (577 sièges)")
    assert "• 2 affaires judiciaires référencées (1 condamnations définitives)" in text


@pytest.mark.asyncio
async def test_press_since_recent(store: KnowledgeStore) -> None:
    text = await search_by_keywords(store, "presse", today=TODAY)
    assert text is not None
    assert "Libération" in text and "Le Monde" in text

    recent = await search_by_keywords(store, "presse cette année", today=date(2026, 3, 1))
    assert recent is None


@pytest.mark.asyncio
async def test_nothing_found(store: KnowledgeStore) -> None:
    assert await search_by_keywords(store, "xyzzy plugh quux", today=TODAY) is None
