# src/poligraph_rag/backend/db/repo/legislation_repo.py

"""
[Responsibility] LegislationRepo: legislative dossiers and scrutins by status, terms and date range.
[Boundary] Read-only; terms are OR-ed case-insensitive `contains` predicates; newest first.
[Upstream] legislation / votes_recents handlers, keyword thematic sub-search.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.legislation import LegislativeDossierModel, ScrutinModel
from .filters import DateRange, any_term_matches, date_range_clause


class LegislationRepo:
    """Legislation repository (async SQLAlchemy)."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def find_dossiers(
        self,
        *,
        terms: Sequence[str] = (),
        status: Optional[str] = None,
        date_range: Optional[DateRange] = None,
        limit: int = 5,
    ) -> List[LegislativeDossierModel]:
        """
        Dossiers filtered by status, by any term over title/short title/category, and by filing date.

        An empty `terms` means no text filter (the status/date filters still apply).
        """
        stmt = select(LegislativeDossierModel)
        if status:
            stmt = stmt.where(LegislativeDossierModel.status == status)
        clause = any_term_matches(
            (
                LegislativeDossierModel.title,
                LegislativeDossierModel.short_title,
                LegislativeDossierModel.category,
            ),
            terms,
        )
        if clause is not None:
            stmt = stmt.where(clause)
        stmt = stmt.where(date_range_clause(LegislativeDossierModel.filing_date, date_range))
        stmt = stmt.order_by(
            LegislativeDossierModel.filing_date.desc().nulls_last(),
            LegislativeDossierModel.id.asc(),
        ).limit(limit)
        res = await self._session.scalars(stmt)
        return list(res.all())

    async def find_scrutins(
        self,
        *,
        terms: Sequence[str],
        date_range: Optional[DateRange] = None,
        limit: int = 3,
    ) -> List[ScrutinModel]:
        """Scrutins whose title contains any term, within the voting-date range."""
        clause = any_term_matches((ScrutinModel.title,), terms)
        if clause is None:
            return []
        stmt = (
            select(ScrutinModel)
            .where(clause, date_range_clause(ScrutinModel.voting_date, date_range))
            .order_by(ScrutinModel.voting_date.desc(), ScrutinModel.id.asc())
            .limit(limit)
        )
        res = await self._session.scalars(stmt)
        return list(res.all())

    async def latest_scrutins(self, *, limit: int = 5) -> List[ScrutinModel]:
        stmt = select(ScrutinModel).order_by(ScrutinModel.voting_date.desc(), ScrutinModel.id.asc()).limit(limit)
        res = await self._session.scalars(stmt)
        return list(res.all())
