# playground/sql_gate/test_knowledge_store_gate.py

"""
[Responsibility] Gate: read-only repositories over the seeded in-memory knowledge store.
[Boundary] Verifies filtering (published affairs only, current mandates only), deterministic ordering,
           LIKE escaping and half-open date ranges. No rendering.
"""

from __future__ import annotations

from datetime import date

import pytest

from poligraph_rag.backend.db.repo import DateRange, KnowledgeStore
from poligraph_rag.backend.db.repo.filters import contains_pattern


pytestmark = pytest.mark.sql_gate


@pytest.mark.asyncio
async def test_find_politician_by_last_name_case_insensitive(store: KnowledgeStore) -> None:
    p = await store.politicians.find_by_name("DUPONT")
    assert p is not None
    assert p.slug == "jean-dupont"
    assert p.current_party is not None and p.current_party.short_name == "HOR"


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["", "   ", "zorglub", "%", "_"])
async def test_find_politician_misses(store: KnowledgeStore, name: str) -> None:
    assert await store.politicians.find_by_name(name) is None


def test_contains_pattern_escapes_wildcards() -> None:
    assert contains_pattern("50%_x") == "%50\\%\\_x%"


@pytest.mark.asyncio
async def test_published_affairs_exclude_drafts(store: KnowledgeStore) -> None:
    p = await store.politicians.find_by_name("jean dupont")
    affairs = await store.politicians.published_affairs(p.id)
    assert [a.title for a in affairs] == ["Affaire des emplois fictifs"]
    assert [s.position for s in affairs[0].sources] == [0, 1]


@pytest.mark.asyncio
async def test_current_mandates_skip_past_ones(store: KnowledgeStore) -> None:
    p = await store.politicians.find_by_name("bernard")
    mandates = await store.politicians.current_mandates(p.id)
    assert [m.type for m in mandates] == ["MINISTRE"]


@pytest.mark.asyncio
async def test_department_mandates_ordered_by_type_then_name(store: KnowledgeStore) -> None:
    mandates = await store.politicians.current_mandates_by_department("38", types=("DEPUTE", "SENATEUR"))
    assert [(m.type, m.politician.full_name) for m in mandates] == [
        ("DEPUTE", "Jean Dupont"),
        ("SENATEUR", "Marie Martin"),
    ]
    assert mandates[0].politician.current_party.short_name == "HOR"
    assert await store.politicians.current_mandates_by_department("69", types=("DEPUTE",)) == []


@pytest.mark.asyncio
async def test_votes_filtered_by_topic_newest_first(store: KnowledgeStore) -> None:
    p = await store.politicians.find_by_name("dupont")
    all_votes = await store.politicians.votes(p.id)
    assert [v.scrutin.slug for v in all_votes] == ["motion-censure-2025", "scrutin-plf-2024"]

    topical = await store.politicians.votes(p.id, topic="finances")
    assert [v.position for v in topical] == ["POUR"]


@pytest.mark.asyncio
async def test_party_lookup_prefers_exact_acronym(store: KnowledgeStore) -> None:
    party = await store.parties.find_by_name("uc")
    assert party is not None and party.slug == "union-civique"

    hor = await store.parties.find_by_name("horizons")
    counts = await store.parties.member_counts([hor.id, "missing"])
    assert counts == {hor.id: 2, "missing": 0}
    assert await store.parties.current_mandate_breakdown(hor.id) == [("DEPUTE", 1), ("MINISTRE", 1)]


@pytest.mark.asyncio
async def test_dossiers_status_and_date_filters(store: KnowledgeStore) -> None:
    in_progress = await store.legislation.find_dossiers(status="EN_COURS")
    assert [d.slug for d in in_progress] == ["logement-etudiant"]

    by_year = await store.legislation.find_dossiers(terms=["loi"], date_range=DateRange.for_year(2024))
    assert [d.slug for d in by_year] == ["plf-2024"]

    none_in_2023 = await store.legislation.find_dossiers(terms=["finances"], date_range=DateRange.for_year(2023))
    assert none_in_2023 == []

    newest_first = await store.legislation.find_dossiers(terms=["loi"])
    assert [d.slug for d in newest_first] == ["logement-etudiant", "plf-2024"]


@pytest.mark.asyncio
async def test_scrutins_need_terms(store: KnowledgeStore) -> None:
    assert await store.legislation.find_scrutins(terms=[]) == []
    found = await store.legislation.find_scrutins(terms=["censure"])
    assert [s.slug for s in found] == ["motion-censure-2025"]
    latest = await store.legislation.latest_scrutins(limit=5)
    assert [s.slug for s in latest] == ["motion-censure-2025", "scrutin-plf-2024"]


@pytest.mark.asyncio
async def test_press_since_filter(store: KnowledgeStore) -> None:
    everything = await store.press.find_articles()
    assert [a.feed_source for a in everything] == ["Libération", "Le Monde"]

    recent = await store.press.find_articles(since=date(2025, 2, 1))
    assert [a.feed_source for a in recent] == ["Libération"]

    topical = await store.press.find_articles(terms=["censure"])
    assert [a.feed_source for a in topical] == ["Le Monde"]


@pytest.mark.asyncio
async def test_global_counts(store: KnowledgeStore) -> None:
    counts = await store.stats.global_counts()
    assert counts.deputies == 1
    assert counts.senators == 1
    assert counts.government_members == 2
    assert counts.parties == 2
    assert counts.affairs == 2  # docstring: the draft affair is not counted
    assert counts.definitive_convictions == 1
    assert counts.dossiers == 2
    assert counts.scrutins == 2
    assert counts.declarations == 1
    assert counts.fact_checks == 1


@pytest.mark.asyncio
async def test_wealth_ranking_loads_declarant(store: KnowledgeStore) -> None:
    top = await store.politicians.top_declarations_by_net_worth(limit=5)
    assert [(d.politician.full_name, d.total_net) for d in top] == [("Jean Dupont", 1234567)]
