# src/poligraph_rag/backend/db/repo/filters.py

"""
[Responsibility] Shared query-building helpers for the read-only repositories: escaped ILIKE "contains"
                 predicates over one or several columns, and the half-open DateRange filter.
[Boundary] Builds SQLAlchemy expressions only; never executes.
[Upstream] keyword search / lookups pass raw user terms and temporal filters.
[Downstream] politician/party/legislation/press repositories.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, List, Optional, Sequence

from sqlalchemy import and_, or_, true
from sqlalchemy.sql.elements import ColumnElement


LIKE_ESCAPE = "\\"


@dataclass(frozen=True)
class DateRange:
    """
    Half-open date window [start, end); either bound may be open.

    Built once per query from temporal modifiers and applied uniformly to every dated sub-search.
    """

    start: Optional[date] = None
    end: Optional[date] = None

    @property
    def is_open(self) -> bool:
        return self.start is None and self.end is None

    @classmethod
    def for_year(cls, year: int) -> "DateRange":
        return cls(start=date(year, 1, 1), end=date(year + 1, 1, 1))

    @classmethod
    def since(cls, start: date) -> "DateRange":
        return cls(start=start, end=None)


def contains_pattern(term: str) -> str:
    """`%term%` with LIKE wildcards escaped (user text never acts as a pattern)."""
    raw = str(term or "")
    escaped = raw.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2).replace("%", f"{LIKE_ESCAPE}%").replace("_", f"{LIKE_ESCAPE}_")
    return f"%{escaped}%"


def any_column_contains(columns: Sequence[Any], term: str) -> ColumnElement[bool]:
    """OR of case-insensitive `contains` over the given columns for a single term."""
    pattern = contains_pattern(term)
    return or_(*[col.ilike(pattern, escape=LIKE_ESCAPE) for col in columns])


def any_term_matches(columns: Sequence[Any], terms: Sequence[str]) -> Optional[ColumnElement[bool]]:
    """
    OR over terms of `any_column_contains`; None when no usable term exists.

    Callers treat None as "nothing to search" rather than "match everything".
    """
    cleaned: List[str] = [str(t).strip() for t in (terms or []) if str(t or "").strip()]
    if not cleaned:
        return None
    return or_(*[any_column_contains(columns, t) for t in cleaned])


def _as_bound(value: date, column_is_datetime: bool) -> Any:
    if column_is_datetime and not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    return value


def date_range_clause(
    column: Any,
    date_range: Optional[DateRange],
    *,
    column_is_datetime: bool = False,
) -> ColumnElement[bool]:
    """Range predicate for `column`; a missing/open range yields TRUE."""
    if date_range is None or date_range.is_open:
        return true()
    parts = []
    if date_range.start is not None:
        parts.append(column >= _as_bound(date_range.start, column_is_datetime))
    if date_range.end is not None:
        parts.append(column < _as_bound(date_range.end, column_is_datetime))
    return and_(*parts)
