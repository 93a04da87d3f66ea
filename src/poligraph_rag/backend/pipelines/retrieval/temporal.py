# src/poligraph_rag/backend/pipelines/retrieval/temporal.py

"""
[Responsibility] TemporalBooster: multiply candidate similarity by a recency factor and re-sort.
[Boundary] Pure; "today" is injected (RetrievalConfig.reference_date) so results are reproducible.
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional, Sequence, Tuple

from .types import Candidate


RECENT_DAYS = 90
YEAR_DAYS = 365
STALE_DAYS = 3 * 365

RECENT_FACTOR = 1.5
YEAR_FACTOR = 1.2
STALE_FACTOR = 0.7

# docstring: (exclusive max age in days, factor); first matching band wins
BANDS: Tuple[Tuple[int, float], ...] = ((RECENT_DAYS, RECENT_FACTOR), (YEAR_DAYS, YEAR_FACTOR))


def recency_factor(event_date: Optional[date], today: date) -> float:
    """< 3 months -> 1.5, < 1 year -> 1.2, > 3 years -> 0.7, otherwise 1.0 (also undated or future-dated)."""
    if event_date is None:
        return 1.0
    age_days = (today - event_date).days
    if age_days < 0:
        return 1.0
    for bound, factor in BANDS:
        if age_days < bound:
            return factor
    if age_days > STALE_DAYS:
        return STALE_FACTOR
    return 1.0


def boost(candidates: Sequence[Candidate], *, today: date) -> List[Candidate]:
    """Boosted copies sorted by score descending (stable: equal scores keep their incoming order)."""
    boosted = [c.with_similarity(c.similarity * recency_factor(c.event_date, today)) for c in candidates]
    return sorted(boosted, key=lambda c: c.similarity, reverse=True)
