# src/poligraph_rag/backend/pipelines/retrieval/patterns.py

"""
[Responsibility] IntentPatternMatcher: ordered registry of (predicate, handler) pairs and `match_pattern`.
[Boundary] Predicates are pure functions over the normalized query (no I/O); handlers do targeted lookups.
           A handler returning None is a miss for that pattern only: matching continues in order.
[Upstream] pipeline.py pattern tier.
[Downstream] lookups.py handlers over KnowledgeStore.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Pattern, Tuple

from poligraph_rag.backend.db.repo import KnowledgeStore
from poligraph_rag.backend.utils.logging_ import get_logger, log_event
from poligraph_rag.backend.utils.text import normalize_query

from . import lookups
from .types import IntentMatch


logger = get_logger("retrieval.patterns")

Predicate = Callable[[str], Optional[IntentMatch]]
Handler = Callable[[KnowledgeStore, str, IntentMatch], Awaitable[Optional[str]]]


@dataclass(frozen=True)
class IntentPattern:
    name: str
    test: Predicate
    handler: Handler


def regex_predicate(name: str, regex: Pattern[str]) -> Predicate:
    """Wrap a compiled regex as a predicate returning the capture set (or None)."""

    def _test(query: str) -> Optional[IntentMatch]:
        m = regex.search(query)
        if m is None:
            return None
        return IntentMatch(name=name, text=m.group(0), groups=m.groups())

    return _test


def _rx(source: str) -> Pattern[str]:
    return re.compile(source, re.IGNORECASE)


INSTITUTIONS_RE = _rx(
    r"(?:c'?est quoi|qu'?est[- ]ce que?|comment fonctionne|[àa] quoi sert|r[oô]le d[eu])\s+"
    r"(?:l'?assembl[ée]e|le s[ée]nat|le parlement|le gouvernement|le pr[ée]sident|les institutions"
    r"|l'?[ée]lys[ée]e|matignon)"
)
LEGISLATIVE_PROCESS_RE = _rx(
    r"(?:comment (?:est vot[ée]e|se fait|se vote|fonctionne)|processus l[ée]gislatif"
    r"|c'?est quoi (?:la navette|une loi|un projet de loi|une proposition de loi)"
    r"|comment (?:on fait|on vote) une loi)"
)
JUSTICE_RE = _rx(
    r"(?:c'?est quoi|qu'?est[- ]ce que?|(?:ça|ca) veut dire quoi|diff[ée]rence entre)\s+"
    r"(?:(?:la |une )?mise en examen|(?:la )?pr[ée]somption d'?innocence|(?:la )?relaxe|(?:l'?)?acquittement"
    r"|(?:un )?non[- ]lieu|(?:la )?prescription|(?:un )?appel|(?:le )?pourvoi|condamn)"
)
FIND_REPRESENTATIVE_RE = _rx(
    r"(?:mon d[ée]put[ée]|qui me repr[ée]sente|d[ée]put[ée]s? (?:de |du |des |d')|[ée]lus? (?:de |du |des |d')"
    r"|\b(\d{5})\b|[ée]lus? (?:dans le |en |dans l[ea] ))(.+)?"
)
PROFILE_RE = _rx(
    r"(?:qui est|informations? sur|fiche (?:de |d')|parle[z-]?\s*moi (?:de |d')|pr[ée]sente[z-]?\s*moi"
    r"|(?:tu |vous )(?:connais|connaissez))\s+(.+)"
)
AFFAIRS_RE = _rx(
    r"(?:affaires?|condamn[ée]|mis(?:e)? en examen|casier|jug[ée]|poursuivi|inculp[ée])\s+"
    r"(?:de |d'|contre |concernant |judiciaires? (?:de |d'))?(.+)"
    r"|(.+?)(?:\s+(?:a[- ]?t[- ]?il|a[- ]?t[- ]?elle|a [ée]t[ée]|est[- ]il|est[- ]elle)\s+"
    r"(?:condamn[ée]|mis(?:e)? en examen|jug[ée]|poursuivi))"
)
REPORT_RE = _rx(
    r"(?:signaler|corriger|il manque|erreur|information (?:manquante|incorrecte|fausse)"
    r"|pourquoi.+(?:pas d'affaire|pas r[ée]f[ée]renc[ée]|n'appara[iî]t pas))"
)
DECLARATIONS_RE = _rx(
    r"(?:patrimoine|d[ée]claration(?:s)?\s+(?:hatvp|de patrimoine|d'int[ée]r[eê]ts?)|que d[ée]clare"
    r"|combien (?:gagne|poss[èe]de|a d[ée]clar[ée])|fortune|plus riche|hatvp)\s*(?:de |d')?(.+)?"
)
VOTES_RE = _rx(r"(?:comment a vot[ée]|votes? (?:de |d')|a[- ]?t[- ]?il vot[ée]|a[- ]?t[- ]?elle vot[ée])\s+(.+)")
COMPARE_RE = _rx(r"(?:compar(?:er|aison)|diff[ée]rence(?:s)? entre)\s+(.+?)\s+(?:et|vs|versus|avec)\s+(.+)")
PARTY_MEMBERS_RE = _rx(
    r"(?:membres?|d[ée]put[ée]s?|s[ée]nateurs?|[ée]lus?|qui est)\s+"
    r"(?:du |de |des |au |à |chez (?:le |la )?)?(?:parti )?"
    r"(RN|LFI|PS|LR|EELV|RE|Renaissance|Rassemblement National|France Insoumise|R[ée]publicains"
    r"|Parti Socialiste|Écologistes?|Modem|MoDem|PCF|Horizons|UDI|LIOT|Nouveau Front Populaire|NFP)\b"
)
GOVERNMENT_RE = _rx(
    r"(?:ministre(?:s)?|composition du gouvernement|qui est au gouvernement|gouvernement actuel|premier ministre)"
)
LEGISLATION_RE = _rx(
    r"(?:projets? de loi|dossiers? l[ée]gislatifs?|(?:lois?|textes?) en (?:cours|discussion)|derniers? dossiers?"
    r"|loi sur|dossier sur)\s*(.+)?"
)
RECENT_VOTES_RE = _rx(
    r"(?:derniers? votes?|derniers? scrutins?|qu'?a[- ]?t[- ]?on vot[ée]|scrutins? r[ée]cents?|votes? r[ée]cents?)"
)
PRESS_RE = _rx(
    r"(?:actualit[ée]s?|presse|articles?|dans les m[ée]dias|dans la presse|journal|revue de presse)\s*"
    r"(?:sur |de |d'|concernant )?(.+)?"
)


def _pattern(name: str, regex: Pattern[str], handler: Handler) -> IntentPattern:
    return IntentPattern(name=name, test=regex_predicate(name, regex), handler=handler)


# docstring: evaluation order is part of the contract (first non-None handler result wins)
INTENT_PATTERNS: Tuple[IntentPattern, ...] = (
    _pattern("institutions", INSTITUTIONS_RE, lookups.institutions),
    _pattern("processus_legislatif", LEGISLATIVE_PROCESS_RE, lookups.legislative_process),
    _pattern("justice_pedagogie", JUSTICE_RE, lookups.justice_explainer),
    _pattern("trouver_elu", FIND_REPRESENTATIVE_RE, lookups.find_representatives),
    _pattern("fiche_politicien", PROFILE_RE, lookups.politician_profile),
    _pattern("affaires_politicien", AFFAIRS_RE, lookups.politician_affairs),
    _pattern("signaler", REPORT_RE, lookups.report_issue),
    _pattern("patrimoine", DECLARATIONS_RE, lookups.politician_declarations),
    _pattern("votes_politicien", VOTES_RE, lookups.politician_votes),
    _pattern("comparer", COMPARE_RE, lookups.compare_politicians),
    _pattern("membres_parti", PARTY_MEMBERS_RE, lookups.party_members),
    _pattern("gouvernement", GOVERNMENT_RE, lookups.government),
    _pattern("legislation", LEGISLATION_RE, lookups.legislation),
    _pattern("votes_recents", RECENT_VOTES_RE, lookups.recent_votes),
    _pattern("presse", PRESS_RE, lookups.press),
)


def matching_patterns(query: str) -> Tuple[str, ...]:
    """Names of every pattern whose predicate accepts the normalized query (no lookups run)."""
    q = normalize_query(query)
    return tuple(p.name for p in INTENT_PATTERNS if p.test(q) is not None)


async def match_pattern(
    store: KnowledgeStore,
    query: str,
    *,
    patterns: Tuple[IntentPattern, ...] = INTENT_PATTERNS,
) -> Optional[str]:
    """
    Run the registry in order; return the first handler text, or None when no pattern resolves.

    Handler errors propagate: the orchestrator owns the whole-tier failure policy.
    """
    q = normalize_query(query)
    if not q:
        return None
    for pattern in patterns:
        match = pattern.test(q)
        if match is None:
            continue
        text = await pattern.handler(store, q, match)
        if text:
            log_event(logger, logging.DEBUG, "retrieval.pattern.resolved", fields={"pattern": pattern.name})
            return text
        log_event(logger, logging.DEBUG, "retrieval.pattern.unresolved", fields={"pattern": pattern.name})
    return None


__all__ = [
    "INTENT_PATTERNS",
    "IntentPattern",
    "match_pattern",
    "matching_patterns",
    "regex_predicate",
]
