# src/poligraph_rag/backend/utils/labels.py

"""
[Responsibility] Display labels for stored enumerations (dossier/affair/vote/mandate) and the
                 presumption-of-innocence rules for judicial affairs.
[Boundary] Static tables only; unknown codes fall back to the raw code.
[Upstream] lookups (pattern handlers), keyword search, context assembler.
[Downstream] Rendered context text; the disclaimer invariant is enforced through requires_presumption_notice.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Optional


DOSSIER_STATUS_LABELS: Dict[str, str] = {
    "DEPOSE": "Déposé",
    "EN_COMMISSION": "En commission",
    "EN_COURS": "En discussion",
    "CONSEIL_CONSTITUTIONNEL": "Conseil constitutionnel",
    "ADOPTE": "Adopté",
    "REJETE": "Rejeté",
    "RETIRE": "Retiré",
    "CADUQUE": "Caduc",
}

AFFAIR_STATUS_LABELS: Dict[str, str] = {
    "ENQUETE_PRELIMINAIRE": "Enquête préliminaire",
    "INSTRUCTION": "Instruction en cours",
    "MISE_EN_EXAMEN": "Mis(e) en examen",
    "RENVOI_TRIBUNAL": "Renvoyé(e) devant le tribunal",
    "PROCES_EN_COURS": "Procès en cours",
    "CONDAMNATION_PREMIERE_INSTANCE": "Condamnation en première instance",
    "APPEL_EN_COURS": "Appel en cours",
    "CONDAMNATION_DEFINITIVE": "Condamnation définitive",
    "RELAXE": "Relaxé(e)",
    "ACQUITTEMENT": "Acquitté(e)",
    "NON_LIEU": "Non-lieu",
    "PRESCRIPTION": "Prescrit",
    "CLASSEMENT_SANS_SUITE": "Classement sans suite",
}

DEFINITIVE_AFFAIR_STATUSES: FrozenSet[str] = frozenset(
    {
        "CONDAMNATION_DEFINITIVE",
        "RELAXE",
        "ACQUITTEMENT",
        "NON_LIEU",
        "PRESCRIPTION",
        "CLASSEMENT_SANS_SUITE",
    }
)  # docstring: closed set; every other (or unknown) status needs the notice

VOTE_POSITION_LABELS: Dict[str, str] = {
    "POUR": "✅ Pour",
    "CONTRE": "❌ Contre",
    "ABSTENTION": "⚪ Abstention",
    "NON_VOTANT": "➖ Non votant",
    "ABSENT": "⬜ Absent",
}

MANDATE_TYPE_LABELS: Dict[str, str] = {
    "DEPUTE": "Députés",
    "SENATEUR": "Sénateurs",
    "DEPUTE_EUROPEEN": "Eurodéputés",
    "MINISTRE": "Ministres",
    "MINISTRE_DELEGUE": "Ministres délégués",
    "SECRETAIRE_ETAT": "Secrétaires d'État",
    "PREMIER_MINISTRE": "Premier ministre",
    "PRESIDENT_REPUBLIQUE": "Président de la République",
}

GOVERNMENT_MANDATE_TYPES = ("PREMIER_MINISTRE", "MINISTRE", "MINISTRE_DELEGUE", "SECRETAIRE_ETAT")
PARLIAMENT_MANDATE_TYPES = ("DEPUTE", "SENATEUR")

SCRUTIN_RESULT_ADOPTED = "ADOPTED"

PRESUMPTION_MARKER = "présomption d'innocence"  # docstring: substring every notice below contains

PRESUMPTION_NOTICE = (
    "⚠️ Rappel : toute personne est présumée innocente jusqu'à preuve du contraire "
    "(présomption d'innocence)."
)


def presumption_notice_for(name: str) -> str:
    """Per-person notice used by profile/affair handlers."""
    return f"⚠️ Rappel : {name} bénéficie de la présomption d'innocence pour les affaires non définitivement jugées."


def requires_presumption_notice(status: Optional[str]) -> bool:
    """True unless the status is in the closed/definitive set (missing status counts as open)."""
    return str(status or "").strip().upper() not in DEFINITIVE_AFFAIR_STATUSES


def dossier_status_label(status: Optional[str]) -> str:
    raw = str(status or "")
    return DOSSIER_STATUS_LABELS.get(raw, raw)


def affair_status_label(status: Optional[str]) -> str:
    raw = str(status or "")
    return AFFAIR_STATUS_LABELS.get(raw, raw)


def vote_position_label(position: Optional[str]) -> str:
    raw = str(position or "")
    return VOTE_POSITION_LABELS.get(raw, raw)


def mandate_type_label(mandate_type: Optional[str]) -> str:
    raw = str(mandate_type or "")
    return MANDATE_TYPE_LABELS.get(raw, raw)


def scrutin_result_label(result: Optional[str], *, with_icon: bool = False) -> str:
    adopted = str(result or "").upper() == SCRUTIN_RESULT_ADOPTED
    if with_icon:
        return "✅ Adopté" if adopted else "❌ Rejeté"
    return "Adopté" if adopted else "Rejeté"
