# src/poligraph_rag/backend/pipelines/retrieval/themes.py

"""
[Responsibility] Thematic keyword expander: topic -> synonym taxonomy, query tokenizer, first-topic expansion
                 and temporal modifiers (explicit year, "cette année", "récent").
[Boundary] Pure functions over the query text; the knowledge store is never touched here.
[Upstream] keyword.py (StructuredKeywordSearch).
[Downstream] Search terms and the shared DateRange applied by every dated sub-search.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

from poligraph_rag.backend.db.repo.filters import DateRange


THEME_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "agriculture": ("agricole", "agriculteur", "paysan", "ferme", "exploitation", "pac", "élevage", "culture"),
    "santé": ("santé", "hôpital", "médecin", "soin", "maladie", "sécu", "médical", "pandémie"),
    "éducation": (
        "éducation",
        "école",
        "enseignant",
        "professeur",
        "étudiant",
        "université",
        "scolaire",
        "formation",
    ),
    "environnement": (
        "environnement",
        "écologie",
        "climat",
        "carbone",
        "énergie",
        "pollution",
        "vert",
        "biodiversité",
    ),
    "économie": ("économie", "entreprise", "emploi", "travail", "chômage", "salaire", "fiscal", "croissance"),
    "retraite": ("retraite", "pension", "âge", "cotisation", "réforme"),
    "logement": ("logement", "loyer", "locataire", "propriétaire", "hlm", "immobilier", "logis"),
    "sécurité": ("sécurité", "police", "gendarmerie", "délinquance", "criminalité", "terrorisme"),
    "immigration": ("immigration", "migrant", "asile", "frontière", "étranger", "nationalité"),
    "transport": ("transport", "train", "sncf", "route", "autoroute", "mobilité", "vélo", "métro"),
    "numérique": ("numérique", "internet", "données", "intelligence artificielle", "ia", "cyber", "tech"),
    "défense": ("défense", "armée", "militaire", "otan", "soldat", "guerre"),
    "international": ("international", "diplomatie", "europe", "onu", "traité", "coopération"),
    "culture": ("culture", "art", "patrimoine culturel", "musée", "cinéma", "livre", "spectacle"),
    "justice": ("justice", "tribunal", "magistrat", "prison", "peine", "droit", "judiciaire"),
    "outremer": (
        "outre-mer",
        "dom-tom",
        "guadeloupe",
        "martinique",
        "réunion",
        "guyane",
        "mayotte",
        "polynésie",
        "calédonie",
    ),
    "collectivités": (
        "collectivité",
        "commune",
        "mairie",
        "région",
        "département",
        "décentralisation",
        "maire",
    ),
    "démocratie": (
        "démocratie",
        "référendum",
        "citoyen",
        "participation",
        "représentation",
        "élection",
        "suffrage",
    ),
    "social": ("social", "solidarité", "pauvreté", "minima sociaux", "rsa", "allocation", "handicap"),
    "fiscalité": ("fiscalité", "impôt", "taxe", "tva", "isf", "dette", "budget", "dépense publique"),
    "europe": ("europe", "union européenne", "bruxelles", "directive", "eurodéputé", "parlement européen"),
}

EXPANSION_SIZE = 4  # docstring: synonyms appended from the first matching topic
MIN_TOKEN_LEN = 3
RECENT_MONTHS = 3

_STRIP_RE = re.compile(r"[?!.,;:'\"()]")
_YEAR_RE = re.compile(r"(?:\ben\s+)?\b(20\d{2})\b")
_RECENT_MARKERS = ("récen", "recen", "dernier", "dernièr")


def tokenize(query: str) -> List[str]:
    """Lower-cased words longer than 2 chars, punctuation stripped, first occurrence order kept."""
    cleaned = _STRIP_RE.sub("", str(query or "").lower())
    words = [w for w in cleaned.split() if len(w) >= MIN_TOKEN_LEN]
    return list(dict.fromkeys(words))


def first_matching_topic(query: str) -> Optional[str]:
    """
    First topic (taxonomy order) with a synonym contained in the query.

    Only one topic is ever expanded per query, even when several match.
    """
    lower = str(query or "").lower()
    for topic, keywords in THEME_KEYWORDS.items():
        if any(kw in lower for kw in keywords):
            return topic
    return None


def is_thematic(query: str) -> bool:
    return first_matching_topic(query) is not None


def expand(query: str, words: Optional[Sequence[str]] = None) -> List[str]:
    """Tokens of `query` plus the first EXPANSION_SIZE synonyms of its first matching topic (deduplicated)."""
    tokens = list(words) if words is not None else tokenize(query)
    topic = first_matching_topic(query)
    if topic is None:
        return tokens
    return list(dict.fromkeys([*tokens, *THEME_KEYWORDS[topic][:EXPANSION_SIZE]]))


@dataclass(frozen=True)
class TemporalModifier:
    date_range: DateRange
    label: str


def _months_ago(today: date, months: int) -> date:
    month_index = today.year * 12 + (today.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    return date(year, month, min(today.day, calendar.monthrange(year, month)[1]))


def extract_temporal(query: str, *, today: Optional[date] = None) -> Optional[TemporalModifier]:
    """
    Temporal filter shared by every dated sub-search, or None.

    Priority: explicit year (`2024`, `en 2024`) > "cette année" > recent/dernier (trailing 3 months).
    """
    lower = str(query or "").lower()
    ref = today or date.today()

    m = _YEAR_RE.search(lower)
    if m:
        year = int(m.group(1))
        return TemporalModifier(date_range=DateRange.for_year(year), label=f"en {year}")

    if "cette ann" in lower:
        return TemporalModifier(date_range=DateRange.since(date(ref.year, 1, 1)), label=f"en {ref.year}")

    if any(marker in lower for marker in _RECENT_MARKERS):
        return TemporalModifier(
            date_range=DateRange.since(_months_ago(ref, RECENT_MONTHS)),
            label=f"depuis {RECENT_MONTHS} mois",
        )
    return None
