# playground/pattern_gate/test_intent_patterns_gate.py

"""
[Responsibility] Gate: intent predicates + handlers over the seeded store.
[Boundary] Exercises match_pattern end to end (normalization, ordering, None-means-continue); no orchestrator.
"""

from __future__ import annotations

import re
from typing import Optional

import pytest

from poligraph_rag.backend.db.repo import KnowledgeStore
from poligraph_rag.backend.pipelines.retrieval.lookups import FIND_REPRESENTATIVE_TEXT, HATVP_TEXT
from poligraph_rag.backend.pipelines.retrieval.patterns import (
    IntentPattern,
    match_pattern,
    matching_patterns,
    regex_predicate,
)
from poligraph_rag.backend.pipelines.retrieval.types import IntentMatch
from poligraph_rag.backend.utils.labels import PRESUMPTION_MARKER
from poligraph_rag.backend.utils.text import format_currency, normalize_query


pytestmark = pytest.mark.pattern_gate


def test_matching_patterns_is_pure_and_ordered() -> None:
    assert matching_patterns("Qui est Jean Dupont ?")[0] == "fiche_politicien"
    assert "trouver_elu" in matching_patterns("mon député 38000")
    assert matching_patterns("xyzzy") == ()


@pytest.mark.asyncio
async def test_profile_resolves_with_disclaimer(store: KnowledgeStore) -> None:
    text = await match_pattern(store, "Qui est Jean Dupont ?")
    assert text is not None
    assert text.startswith("**M. Jean Dupont**")
    assert "Parti : Horizons (HOR)" in text
    assert "Député de la 1re circonscription de l'Isère" in text
    assert PRESUMPTION_MARKER in text
    assert "Affaire brouillon" not in text
    assert text.endswith("→ Fiche complète : /politiques/jean-dupont")


def test_normalized_query_keeps_case_and_accents() -> None:
    assert normalize_query("  Qui   est Élodie Sénéchal ?") == "Qui est Élodie Sénéchal ?"
    assert normalize_query("l’élue d`Isère") == "l'élue d'Isère"


@pytest.mark.asyncio
async def test_profile_resolves_accented_capital_name(store: KnowledgeStore) -> None:
    text = await match_pattern(store, "Qui est Élodie Sénéchal ?")
    assert text is not None
    assert text.startswith("**Mme Élodie Sénéchal**\nNé(e) le : 03/02/1981")
    assert PRESUMPTION_MARKER not in text
    assert text.endswith("→ Fiche complète : /politiques/elodie-senechal")


@pytest.mark.asyncio
async def test_unknown_person_falls_through(store: KnowledgeStore) -> None:
    assert await match_pattern(store, "qui est zorglub") is None


@pytest.mark.asyncio
async def test_representatives_by_postal_code(store: KnowledgeStore) -> None:
    text = await match_pattern(store, "mon député 38000")
    assert text is not None
    assert text.startswith("**Élus du département Isère (38) :**")
    assert "**Députés (1) :**" in text
    assert "• Jean Dupont (HOR) — Député de la 1re circonscription de l'Isère" in text
    assert "**Sénateurs (1) :**" in text
    assert "• Marie Martin (UC) — Sénatrice de l'Isère" in text
    assert "  → /politiques/marie-martin" in text


@pytest.mark.asyncio
async def test_representatives_by_department_name_without_holders(store: KnowledgeStore) -> None:
    text = await match_pattern(store, "députés du Cantal")
    assert text is not None
    assert text.startswith("Aucun élu trouvé pour le département Cantal (15)")
    assert "→ Carte des élus : /carte" in text


@pytest.mark.asyncio
async def test_representatives_without_location(store: KnowledgeStore) -> None:
    assert await match_pattern(store, "qui me représente") == FIND_REPRESENTATIVE_TEXT


@pytest.mark.asyncio
async def test_open_affair_carries_notice_and_safe_sources(store: KnowledgeStore) -> None:
    text = await match_pattern(store, "affaires de jean dupont")
    assert text is not None
    assert "**Affaires judiciaires de Jean Dupont** (1)" in text
    assert "Mis(e) en examen" in text
    assert "Source : https://example.org/emplois-fictifs" in text
    assert "javascript:" not in text
    assert PRESUMPTION_MARKER in text


@pytest.mark.asyncio
async def test_definitive_affair_has_no_notice(store: KnowledgeStore) -> None:
    text = await match_pattern(store, "affaires de marie martin")
    assert text is not None
    assert "Condamnation définitive" in text
    assert PRESUMPTION_MARKER not in text


@pytest.mark.asyncio
async def test_declarations(store: KnowledgeStore) -> None:
    text = await match_pattern(store, "patrimoine de jean dupont")
    assert text is not None
    assert "**Déclarations HATVP de Jean Dupont** :" in text
    assert f"Patrimoine net : {format_currency(1234567)}" in text
    assert "Immobilier" in text

    assert await match_pattern(store, "patrimoine") == HATVP_TEXT


@pytest.mark.asyncio
async def test_votes_on_topic(store: KnowledgeStore) -> None:
    text = await match_pattern(store, "comment a voté jean dupont sur la motion")
    assert text is not None
    assert '**Votes de Jean Dupont sur "motion" :**' in text
    assert "❌ Contre — Motion de censure du gouvernement" in text
    assert "/votes/motion-censure-2025" in text
    assert "scrutin-plf-2024" not in text


@pytest.mark.asyncio
async def test_compare_needs_both_politicians(store: KnowledgeStore) -> None:
    text = await match_pattern(store, "comparer jean dupont et marie martin")
    assert text is not None
    assert "→ Comparer : /comparer?a=jean-dupont&b=marie-martin" in text

    assert await match_pattern(store, "comparer jean dupont et zorglub") is None


@pytest.mark.asyncio
async def test_party_members(store: KnowledgeStore) -> None:
    text = await match_pattern(store, "membres du parti Horizons")
    assert text is not None
    assert text.startswith("**Horizons** (HOR) — 2 membres référencés")
    assert "• Députés : 1" in text
    assert "• Ministres : 1" in text
    assert text.endswith("→ Page du parti : /partis/horizons")


@pytest.mark.asyncio
async def test_government(store: KnowledgeStore) -> None:
    text = await match_pattern(store, "composition du gouvernement")
    assert text is not None
    assert text.startswith("**Gouvernement actuel** (2 membres)")
    assert text.index("Paul Bernard") < text.index("Claire Petit")


@pytest.mark.asyncio
async def test_legislation_in_progress(store: KnowledgeStore) -> None:
    text = await match_pattern(store, "projets de loi logement")
    assert text is not None
    assert '**Dossiers en cours sur "logement" :**' in text
    assert "**Logement étudiant**" in text
    assert "/assemblee/logement-etudiant" in text
    assert "Budget 2024" not in text


@pytest.mark.asyncio
async def test_recent_votes_newest_first(store: KnowledgeStore) -> None:
    text = await match_pattern(store, "derniers votes")
    assert text is not None
    assert text.startswith("**Derniers scrutins :**")
    assert text.index("Motion de censure") < text.index("projet de loi de finances")
    assert "❌ Rejeté" in text and "✅ Adopté" in text


@pytest.mark.asyncio
async def test_press_review(store: KnowledgeStore) -> None:
    text = await match_pattern(store, "revue de presse")
    assert text is not None
    assert text.startswith("**Derniers articles de presse :**")
    assert text.index("Libération") < text.index("Le Monde")


@pytest.mark.asyncio
async def test_none_handler_continues_with_next_pattern(store: KnowledgeStore) -> None:
    calls = []

    async def miss(store: KnowledgeStore, query: str, match: IntentMatch) -> Optional[str]:
        calls.append("miss")
        return None

    async def hit(store: KnowledgeStore, query: str, match: IntentMatch) -> Optional[str]:
        calls.append("hit")
        return f"hit:{query}"

    patterns = (
        IntentPattern("first", regex_predicate("first", re.compile("bonjour", re.IGNORECASE)), miss),
        IntentPattern("second", regex_predicate("second", re.compile("bonjour", re.IGNORECASE)), hit),
    )
    assert await match_pattern(store, "  BONJOUR \n tout  le monde ", patterns=patterns) == "hit:BONJOUR tout le monde"
    assert calls == ["miss", "hit"]


@pytest.mark.asyncio
async def test_handler_errors_propagate(store: KnowledgeStore) -> None:
    async def boom(store: KnowledgeStore, query: str, match: IntentMatch) -> Optional[str]:
        raise RuntimeError("lookup failed")

    patterns = (IntentPattern("boom", regex_predicate("boom", re.compile("x")), boom),)
    with pytest.raises(RuntimeError):
        await match_pattern(store, "x", patterns=patterns)
