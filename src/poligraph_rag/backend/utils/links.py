# src/poligraph_rag/backend/utils/links.py

"""
[Responsibility] The only place where site routes and external source links are built for context text.
[Boundary] Internal routes are built exclusively from stored slugs/ids that pass a strict identifier check;
           external links must be absolute http(s) URLs. Anything else yields None (no link line rendered).
[Upstream] lookups (pattern handlers), keyword search, vector candidate mapping, context assembler.
[Downstream] Candidate.canonical_link and the `→ ...` lines of the rendered context.
"""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urlencode, urlsplit


_IDENT_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,199}$")  # docstring: slug / cuid / uuid shapes

ROUTE_POLITICIAN = "/politiques"
ROUTE_PARTY = "/partis"
ROUTE_DOSSIER = "/assemblee"
ROUTE_SCRUTIN = "/votes"
ROUTE_AFFAIRS = "/affaires"
ROUTE_FACTCHECK = "/factchecks"
ROUTE_PRESS = "/presse"
ROUTE_MAP = "/carte"
ROUTE_COMPARE = "/comparer"
ROUTE_INSTITUTIONS = "/institutions"
ROUTE_STATISTICS = "/statistiques"
ROUTE_CONTACT = "/mentions-legales"


def is_safe_identifier(value: Optional[str]) -> bool:
    return bool(value) and bool(_IDENT_RE.match(str(value)))


def _entity_route(base: str, identifier: Optional[str]) -> Optional[str]:
    raw = str(identifier or "").strip()
    if not is_safe_identifier(raw):
        return None
    return f"{base}/{raw}"


def politician_link(slug: Optional[str]) -> Optional[str]:
    return _entity_route(ROUTE_POLITICIAN, slug)


def party_link(slug: Optional[str]) -> Optional[str]:
    return _entity_route(ROUTE_PARTY, slug)


def dossier_link(slug: Optional[str], dossier_id: Optional[str] = None) -> Optional[str]:
    return _entity_route(ROUTE_DOSSIER, slug) or _entity_route(ROUTE_DOSSIER, dossier_id)


def scrutin_link(slug: Optional[str], scrutin_id: Optional[str] = None) -> Optional[str]:
    return _entity_route(ROUTE_SCRUTIN, slug) or _entity_route(ROUTE_SCRUTIN, scrutin_id)


def affair_link(slug: Optional[str]) -> Optional[str]:
    return _entity_route(ROUTE_AFFAIRS, slug)


def factcheck_link(slug: Optional[str]) -> Optional[str]:
    return _entity_route(ROUTE_FACTCHECK, slug)


def compare_link(slug_a: Optional[str], slug_b: Optional[str]) -> Optional[str]:
    if not (is_safe_identifier(slug_a) and is_safe_identifier(slug_b)):
        return None
    return f"{ROUTE_COMPARE}?{urlencode({'a': slug_a, 'b': slug_b})}"


def external_link(url: Optional[str]) -> Optional[str]:
    """Accept only absolute http(s) URLs without whitespace."""
    raw = str(url or "").strip()
    if not raw or any(ch.isspace() for ch in raw):
        return None
    parts = urlsplit(raw)
    if parts.scheme not in {"http", "https"} or not parts.netloc:
        return None
    return raw


def link_line(link: Optional[str], *, label: str = "", indent: str = "") -> str:
    """`→ label : link` line, or empty string when no safe link exists."""
    if not link:
        return ""
    prefix = f"{label} : " if label else ""
    return f"{indent}→ {prefix}{link}\n"
