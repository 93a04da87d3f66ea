# src/poligraph_rag/backend/utils/text.py

"""
[Responsibility] Text helpers shared by the retrieval tiers: query normalization, accent folding,
                 person-name cleanup and fr-FR rendering of amounts and dates.
[Boundary] Pure functions; no I/O; no locale module (rendering is deterministic across hosts).
[Upstream] patterns/lookups/keyword/assemble.
[Downstream] Rendered context text.
"""

from __future__ import annotations

import re
import unicodedata
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Union


_WS_RE = re.compile(r"\s+")
_APOSTROPHES = str.maketrans({"’": "'", "‘": "'", "ʼ": "'", "`": "'"})
_TRAILING_QMARK_RE = re.compile(r"\s*\?+$")
_LEADING_ARTICLE_RE = re.compile(r"^(de |du |d'|l'|la |le )", re.IGNORECASE)

_THIN_NBSP = "\u202f"  # docstring: fr-FR digit group separator
_NBSP = "\u00a0"  # docstring: fr-FR space before the currency sign

Amount = Union[int, float, Decimal]


def normalize_query(query: Optional[str]) -> str:
    """
    NFC-compose, unify apostrophes and collapse whitespace. Case, accents and punctuation are kept.

    Predicates match case-insensitively; name lookups need the case as typed (SQLite LIKE folds ASCII only).
    """
    raw = unicodedata.normalize("NFC", str(query or ""))
    raw = raw.translate(_APOSTROPHES)
    return _WS_RE.sub(" ", raw).strip()


def fold_accents(text: str) -> str:
    """Strip combining marks (NFD) so that `Isère` and `isere` compare equal."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def extract_person_name(raw: Optional[str]) -> str:
    """Drop a trailing `?` and one leading article/preposition from a captured name."""
    name = _TRAILING_QMARK_RE.sub("", str(raw or ""))
    name = _LEADING_ARTICLE_RE.sub("", name.strip())
    return name.strip()


def format_currency(amount: Amount) -> str:
    """Render euros as fr-FR without decimals, e.g. 1234567 -> '1 234 567 €'."""
    value = int(round(float(amount)))
    sign = "-" if value < 0 else ""
    digits = f"{abs(value):,}".replace(",", _THIN_NBSP)
    return f"{sign}{digits}{_NBSP}€"


def format_date_fr(value: Optional[Union[date, datetime]]) -> str:
    """dd/mm/yyyy; empty string for missing dates."""
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y")


def clip(text: Optional[str], limit: int, *, ellipsis: str = "…") -> str:
    """Cut `text` to `limit` characters, appending an ellipsis only when something was cut."""
    s = str(text or "")
    if len(s) <= limit:
        return s
    return s[:limit] + ellipsis
