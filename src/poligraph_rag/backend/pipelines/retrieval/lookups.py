# src/poligraph_rag/backend/pipelines/retrieval/lookups.py

"""
[Responsibility] Intent handlers: targeted single-entity / small-set lookups behind each intent pattern,
                 rendered as French context text with safe links and inline disclaimers.
[Boundary] No open-ended fuzzy search (keyword.py owns that). A handler that cannot resolve its entity
           returns None so matching continues with the next pattern.
[Upstream] patterns.py registry (handler(store, query, match)).
[Downstream] RetrievalOrchestrator pattern tier.
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence

from poligraph_rag.backend.db.models import AffairModel, MandateModel, PoliticianModel
from poligraph_rag.backend.db.repo import KnowledgeStore
from poligraph_rag.backend.utils.departments import department_from_postal_code, find_department_code, get_department
from poligraph_rag.backend.utils.labels import (
    GOVERNMENT_MANDATE_TYPES,
    PARLIAMENT_MANDATE_TYPES,
    affair_status_label,
    mandate_type_label,
    presumption_notice_for,
    requires_presumption_notice,
    scrutin_result_label,
    vote_position_label,
)
from poligraph_rag.backend.utils.links import (
    ROUTE_AFFAIRS,
    ROUTE_CONTACT,
    ROUTE_DOSSIER,
    ROUTE_INSTITUTIONS,
    ROUTE_MAP,
    ROUTE_POLITICIAN,
    ROUTE_PRESS,
    ROUTE_SCRUTIN,
    compare_link,
    dossier_link,
    external_link,
    link_line,
    party_link,
    politician_link,
    scrutin_link,
)
from poligraph_rag.backend.utils.text import clip, extract_person_name, format_currency, format_date_fr

from .types import IntentMatch


_POSTAL_RE = re.compile(r"\b(\d{5})\b")
_DEPT_NAME_RE = re.compile(
    r"(?:d[ée]put[ée]s?|[ée]lus?|s[ée]nateurs?)\s+(?:de |du |des |d'|en |dans (?:le |la |l')?)([a-zA-ZÀ-ÿ\s'-]+)",
    re.IGNORECASE,
)
_NAME_TOPIC_RE = re.compile(r"^(.+?)\s+(?:sur|pour|contre)\s+(.+)", re.IGNORECASE)

MIN_TOPIC_LEN = 3


# --- static explainers ---

INSTITUTIONS_TEXT = (
    "RÉPONSE PÉDAGOGIQUE SUR LES INSTITUTIONS :\n\n"
    "L'Assemblée nationale (577 députés) et le Sénat (348 sénateurs) forment le Parlement.\n"
    "Les députés sont élus au suffrage universel direct pour 5 ans ; les sénateurs au suffrage indirect pour 6 ans.\n"
    "Le gouvernement est nommé par le Président sur proposition du Premier ministre et est responsable "
    "devant l'Assemblée.\n"
    "Le Président est élu pour 5 ans (2 mandats consécutifs max).\n"
    "La France dispose aussi de 81 eurodéputés au Parlement européen.\n\n"
    f"→ En savoir plus : {ROUTE_INSTITUTIONS}"
)

LEGISLATIVE_PROCESS_TEXT = (
    "RÉPONSE PÉDAGOGIQUE SUR LE PROCESSUS LÉGISLATIF :\n\n"
    "Voici les grandes étapes du vote d'une loi en France :\n"
    "1. Dépôt du texte (projet de loi par le gouvernement ou proposition de loi par un parlementaire)\n"
    "2. Examen en commission parlementaire (amendements, auditions)\n"
    "3. Débat et vote en séance publique (hémicycle)\n"
    "4. Navette entre l'Assemblée et le Sénat (le texte fait des allers-retours)\n"
    "5. En cas de désaccord, une commission mixte paritaire (7 députés + 7 sénateurs) tente un compromis\n"
    "6. L'Assemblée a le dernier mot en cas de désaccord persistant\n"
    "7. Promulgation par le Président de la République\n\n"
    f"→ Suivre les dossiers en cours : {ROUTE_DOSSIER}"
)

JUSTICE_TEXT = (
    "RÉPONSE PÉDAGOGIQUE SUR LA JUSTICE :\n\n"
    "Voici les principaux termes du parcours judiciaire :\n\n"
    "• **Mise en examen** : une personne est soupçonnée d'un crime ou délit grave. "
    "Elle bénéficie de la présomption d'innocence.\n"
    "• **Procès** : audience devant un tribunal où les faits sont examinés.\n"
    "• **Relaxe** (tribunal) / **Acquittement** (cour d'assises) : la personne est déclarée non coupable.\n"
    "• **Condamnation** : le tribunal déclare la personne coupable.\n"
    "• **Appel** : la personne conteste le jugement devant une cour supérieure. "
    "La condamnation n'est pas définitive.\n"
    "• **Pourvoi en cassation** : dernier recours, la Cour de cassation vérifie que la loi a été "
    "correctement appliquée.\n"
    "• **Non-lieu** : les charges sont insuffisantes, la procédure s'arrête.\n"
    "• **Prescription** : le délai pour poursuivre est dépassé.\n\n"
    "⚠️ La présomption d'innocence signifie que toute personne est considérée innocente tant qu'elle "
    "n'a pas été définitivement condamnée.\n\n"
    f"→ Voir les affaires référencées : {ROUTE_AFFAIRS}"
)

REPORT_TEXT = (
    "Si vous souhaitez signaler une information manquante, incorrecte ou si vous disposez de sources fiables "
    "sur un sujet non couvert, vous pouvez nous contacter via la page mentions légales.\n\n"
    "Notre équipe vérifie systématiquement toute information avant publication pour garantir la fiabilité "
    "des données.\n\n"
    f"→ Page de contact : {ROUTE_CONTACT}"
)

HATVP_TEXT = (
    "Les déclarations de patrimoine et d'intérêts des élus sont publiées par la Haute Autorité pour la "
    "Transparence de la Vie Publique (HATVP).\n\n"
    "Sur Poligraph, vous pouvez consulter ces déclarations sur la fiche de chaque élu qui en dispose.\n\n"
    f"→ Chercher un élu : {ROUTE_POLITICIAN}"
)

FIND_REPRESENTATIVE_TEXT = (
    "Pour trouver votre député ou sénateur, vous pouvez :\n"
    f"• Chercher par nom sur {ROUTE_POLITICIAN}\n"
    f"• Explorer la carte des élus par département sur {ROUTE_MAP}\n\n"
    f"→ Carte des élus : {ROUTE_MAP}\n"
    f"→ Liste des élus : {ROUTE_POLITICIAN}"
)


async def institutions(store: KnowledgeStore, query: str, match: IntentMatch) -> Optional[str]:
    return INSTITUTIONS_TEXT


async def legislative_process(store: KnowledgeStore, query: str, match: IntentMatch) -> Optional[str]:
    return LEGISLATIVE_PROCESS_TEXT


async def justice_explainer(store: KnowledgeStore, query: str, match: IntentMatch) -> Optional[str]:
    return JUSTICE_TEXT


async def report_issue(store: KnowledgeStore, query: str, match: IntentMatch) -> Optional[str]:
    return REPORT_TEXT


# --- representatives by department ---


def _mandate_holder_line(mandate: MandateModel) -> str:
    p = mandate.politician
    party = p.current_party.short_name if p.current_party is not None else None
    party_part = f" ({party})" if party else ""
    line = f"• {p.full_name}{party_part} — {mandate.title}\n"
    return line + link_line(politician_link(p.slug), indent="  ")


async def render_department_representatives(store: KnowledgeStore, code: str, name: str) -> str:
    mandates = await store.politicians.current_mandates_by_department(code, types=PARLIAMENT_MANDATE_TYPES)
    if not mandates:
        return (
            f"Aucun élu trouvé pour le département {name} ({code}).\n\n"
            f"→ Carte des élus : {ROUTE_MAP}\n"
            f"→ Liste des élus : {ROUTE_POLITICIAN}"
        )

    deputies = [m for m in mandates if m.type == "DEPUTE"]
    senators = [m for m in mandates if m.type == "SENATEUR"]

    out = f"**Élus du département {name} ({code}) :**\n\n"
    if deputies:
        out += f"**Députés ({len(deputies)}) :**\n"
        out += "".join(_mandate_holder_line(m) for m in deputies)
        out += "\n"
    if senators:
        out += f"**Sénateurs ({len(senators)}) :**\n"
        out += "".join(_mandate_holder_line(m) for m in senators)
    out += f"\n→ Carte des élus : {ROUTE_MAP}"
    return out


def resolve_department(query: str) -> Optional[str]:
    """Postal code first (5 digits), then a department name after député/élu/sénateur + preposition."""
    postal = _POSTAL_RE.search(query)
    if postal:
        code = department_from_postal_code(postal.group(1))
        if code:
            return code
    named = _DEPT_NAME_RE.search(query)
    if named:
        return find_department_code(named.group(1).strip())
    return None


async def find_representatives(store: KnowledgeStore, query: str, match: IntentMatch) -> Optional[str]:
    code = resolve_department(query)
    if code is None:
        return FIND_REPRESENTATIVE_TEXT
    dept = get_department(code)
    return await render_department_representatives(store, code, dept.name if dept else code)


# --- politician profile / affairs / declarations / votes ---


def _affairs_need_notice(affairs: Sequence[AffairModel]) -> bool:
    return any(requires_presumption_notice(a.status) for a in affairs)


async def render_profile(store: KnowledgeStore, politician: PoliticianModel) -> str:
    repo = store.politicians
    mandates = await repo.current_mandates(politician.id, limit=5)
    declarations = await repo.latest_declarations(politician.id, limit=1)
    affairs = await repo.published_affairs(politician.id, limit=5)

    civility = f"{politician.civility} " if politician.civility else ""
    out = f"**{civility}{politician.full_name}**\n"
    party = politician.current_party
    if party is not None:
        out += f"Parti : {party.name}"
        if party.short_name:
            out += f" ({party.short_name})"
        out += "\n"
    if politician.birth_date:
        out += f"Né(e) le : {format_date_fr(politician.birth_date)}\n"
    if politician.death_date:
        out += f"Décédé(e) le : {format_date_fr(politician.death_date)}\n"

    if mandates:
        out += "\n**Mandats actuels :**\n"
        out += "".join(f"• {m.title}\n" for m in mandates)

    if declarations:
        decl = declarations[0]
        out += f"\n**Déclaration HATVP** ({decl.year}) :\n"
        if decl.total_net:
            out += f"• Patrimoine net déclaré : {format_currency(decl.total_net)}\n"

    if affairs:
        out += f"\n⚠️ **{len(affairs)} affaire(s) judiciaire(s) référencée(s)** :\n"
        out += "".join(f"• {a.title} — {affair_status_label(a.status)}\n" for a in affairs)
        if _affairs_need_notice(affairs):
            out += f"\n{presumption_notice_for(politician.full_name)}\n"

    link = politician_link(politician.slug)
    if link:
        out += f"\n→ Fiche complète : {link}"
    return out.rstrip("\n")


async def politician_profile(store: KnowledgeStore, query: str, match: IntentMatch) -> Optional[str]:
    name = extract_person_name(match.group(1))
    politician = await store.politicians.find_by_name(name)
    if politician is None:
        return None
    return await render_profile(store, politician)


def _affair_entry(affair: AffairModel) -> str:
    out = f"• **{affair.title}** — {affair_status_label(affair.status)}\n"
    if affair.description:
        out += f"  {affair.description[:200]}\n"
    if affair.facts_date:
        out += f"  Faits : {format_date_fr(affair.facts_date)}\n"
    for src in affair.sources[:2]:
        url = external_link(src.url)
        if url:
            out += f"  Source : {url}\n"
    return out + "\n"


async def politician_affairs(store: KnowledgeStore, query: str, match: IntentMatch) -> Optional[str]:
    raw = match.group(1) or match.group(2)
    if not raw:
        return None
    politician = await store.politicians.find_by_name(extract_person_name(raw))
    if politician is None:
        return None

    profile = politician_link(politician.slug)
    affairs = await store.politicians.published_affairs(politician.id)
    if not affairs:
        out = (
            f"**{politician.full_name}** n'a aucune affaire judiciaire référencée sur Poligraph.\n\n"
            f"Si vous disposez d'informations sourcées, vous pouvez nous le signaler via {ROUTE_CONTACT}.\n\n"
        )
        return (out + link_line(profile, label="Fiche")).rstrip("\n")

    out = f"**Affaires judiciaires de {politician.full_name}** ({len(affairs)}) :\n\n"
    out += "".join(_affair_entry(a) for a in affairs)
    if _affairs_need_notice(affairs):
        out += f"{presumption_notice_for(politician.full_name)}\n"
    out += "\n" + link_line(profile, label="Fiche complète")
    out += f"→ Toutes les affaires : {ROUTE_AFFAIRS}"
    return out


async def politician_declarations(store: KnowledgeStore, query: str, match: IntentMatch) -> Optional[str]:
    raw = match.group(1)
    if not raw:
        return HATVP_TEXT
    politician = await store.politicians.find_by_name(extract_person_name(raw))
    if politician is None:
        return None

    profile = politician_link(politician.slug)
    declarations = await store.politicians.latest_declarations(politician.id, limit=3)
    if not declarations:
        out = f"**{politician.full_name}** n'a pas de déclaration HATVP référencée.\n\n"
        return (out + link_line(profile, label="Fiche")).rstrip("\n")

    out = f"**Déclarations HATVP de {politician.full_name}** :\n\n"
    for d in declarations:
        out += f"• **{d.type.replace('_', ' ')}** ({d.year})\n"
        if d.total_net:
            out += f"  Patrimoine net : {format_currency(d.total_net)}\n"
        if d.real_estate:
            out += f"  Immobilier : {format_currency(d.real_estate)}\n"
        if d.securities:
            out += f"  Valeurs mobilières : {format_currency(d.securities)}\n"
        if d.bank_accounts:
            out += f"  Comptes bancaires : {format_currency(d.bank_accounts)}\n"
        out += "\n"
    return (out + link_line(profile, label="Fiche complète")).rstrip("\n")


async def politician_votes(store: KnowledgeStore, query: str, match: IntentMatch) -> Optional[str]:
    raw = match.group(1) or ""
    topic: Optional[str] = None
    split = _NAME_TOPIC_RE.match(raw)
    if split:
        name = extract_person_name(split.group(1))
        topic = extract_person_name(split.group(2)) or None
    else:
        name = extract_person_name(raw)

    politician = await store.politicians.find_by_name(name)
    if politician is None:
        return None

    profile = politician_link(politician.slug)
    votes = await store.politicians.votes(politician.id, topic=topic, limit=10)
    if not votes:
        msg = (
            f'Aucun vote trouvé pour **{politician.full_name}** sur le thème "{topic}".'
            if topic
            else f"Aucun vote trouvé pour **{politician.full_name}**."
        )
        return f"{msg}\n\n" + link_line(profile, label="Fiche") + f"→ Tous les scrutins : {ROUTE_SCRUTIN}"

    out = (
        f'**Votes de {politician.full_name} sur "{topic}" :**\n\n'
        if topic
        else f"**Derniers votes de {politician.full_name} :**\n\n"
    )
    for v in votes:
        s = v.scrutin
        out += f"• {vote_position_label(v.position)} — {clip(s.title, 80)}\n"
        out += f"  {format_date_fr(s.voting_date)}\n"
        out += link_line(scrutin_link(s.slug, s.id), indent="  ")
    return (out + "\n" + link_line(profile, label="Fiche complète")).rstrip("\n")


async def compare_politicians(store: KnowledgeStore, query: str, match: IntentMatch) -> Optional[str]:
    first = await store.politicians.find_by_name(extract_person_name(match.group(1)))
    second = await store.politicians.find_by_name(extract_person_name(match.group(2)))
    if first is None or second is None:
        return None
    link = compare_link(first.slug, second.slug)
    if link is None:
        return None
    return (
        f"Pour comparer **{first.full_name}** et **{second.full_name}**, utilisez notre outil de comparaison "
        "qui met en regard leurs mandats, votes, affaires et déclarations de patrimoine.\n\n"
        + link_line(link, label="Comparer")
        + link_line(politician_link(first.slug), label=f"Fiche de {first.full_name}")
        + link_line(politician_link(second.slug), label=f"Fiche de {second.full_name}")
    ).rstrip("\n")


# --- parties / government ---


async def party_members(store: KnowledgeStore, query: str, match: IntentMatch) -> Optional[str]:
    party = await store.parties.find_by_name(match.group(1) or "")
    if party is None:
        return None
    counts = await store.parties.member_counts([party.id])
    breakdown = await store.parties.current_mandate_breakdown(party.id)

    out = f"**{party.name}** ({party.short_name or ''}) — {counts.get(party.id, 0)} membres référencés\n\n"
    if breakdown:
        out += "**Mandats en exercice :**\n"
        out += "".join(f"• {mandate_type_label(t)} : {n}\n" for t, n in breakdown)
        out += "\n"
    out += link_line(party_link(party.slug), label="Page du parti")
    return out.rstrip("\n")


async def government(store: KnowledgeStore, query: str, match: IntentMatch) -> Optional[str]:
    members = await store.politicians.current_mandates_of_types(GOVERNMENT_MANDATE_TYPES)
    if not members:
        return None
    out = f"**Gouvernement actuel** ({len(members)} membres) :\n\n"
    for m in members:
        out += f"• **{m.politician.full_name}** — {m.title}\n"
        out += link_line(politician_link(m.politician.slug), indent="  ")
    return out + f"\n→ Tous les élus : {ROUTE_POLITICIAN}"


# --- legislation / votes / press ---


def _topic(match: IntentMatch, index: int = 1) -> Optional[str]:
    raw = (match.group(index) or "").rstrip("?").strip()
    return raw if len(raw) >= MIN_TOPIC_LEN else None


async def legislation(store: KnowledgeStore, query: str, match: IntentMatch) -> Optional[str]:
    topic = _topic(match)
    dossiers = await store.legislation.find_dossiers(
        terms=[topic] if topic else (),
        status="EN_COURS",
        limit=5,
    )
    if not dossiers:
        return None

    out = f'**Dossiers en cours sur "{topic}" :**\n\n' if topic else "**Dossiers législatifs récents en cours :**\n\n"
    for d in dossiers:
        out += f"• **{d.short_title or d.title[:100]}**\n"
        if d.category:
            out += f"  Catégorie : {d.category}\n"
        if d.filing_date:
            out += f"  Date : {format_date_fr(d.filing_date)}\n"
        out += link_line(dossier_link(d.slug, d.id), indent="  ")
    return out + f"\n→ Tous les dossiers : {ROUTE_DOSSIER}"


async def recent_votes(store: KnowledgeStore, query: str, match: IntentMatch) -> Optional[str]:
    scrutins = await store.legislation.latest_scrutins(limit=5)
    if not scrutins:
        return None
    out = "**Derniers scrutins :**\n\n"
    for s in scrutins:
        out += f"• **{clip(s.title, 100)}**\n"
        out += f"  {format_date_fr(s.voting_date)} — {scrutin_result_label(s.result, with_icon=True)}\n"
        out += f"  Pour : {s.votes_for} | Contre : {s.votes_against} | Abstention : {s.votes_abstain}\n"
        out += link_line(scrutin_link(s.slug, s.id), indent="  ")
    return out + f"\n→ Tous les scrutins : {ROUTE_SCRUTIN}"


def _press_lines(articles: Sequence) -> List[str]:
    lines: List[str] = []
    for a in articles:
        entry = f"• **{a.title}**\n  {a.feed_source} — {format_date_fr(a.published_at)}\n"
        entry += link_line(external_link(a.url), indent="  ")
        lines.append(entry)
    return lines


async def press(store: KnowledgeStore, query: str, match: IntentMatch) -> Optional[str]:
    topic = _topic(match)
    if topic:
        articles = await store.press.find_articles(terms=[topic], limit=5)
        if articles:
            out = f'**Articles récents sur "{topic}" :**\n\n' + "".join(_press_lines(articles))
            return out + f"\n→ Revue de presse complète : {ROUTE_PRESS}"

    articles = await store.press.find_articles(limit=5)
    if not articles:
        return None
    out = "**Derniers articles de presse :**\n\n" + "".join(_press_lines(articles))
    return out + f"\n→ Revue de presse : {ROUTE_PRESS}"


__all__ = [
    "compare_politicians",
    "find_representatives",
    "government",
    "institutions",
    "justice_explainer",
    "legislation",
    "legislative_process",
    "party_members",
    "politician_affairs",
    "politician_declarations",
    "politician_profile",
    "politician_votes",
    "press",
    "recent_votes",
    "render_department_representatives",
    "render_profile",
    "report_issue",
    "resolve_department",
]
