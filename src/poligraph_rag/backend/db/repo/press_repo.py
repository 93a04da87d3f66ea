# src/poligraph_rag/backend/db/repo/press_repo.py

"""
[Responsibility] PressRepo: press articles by topic and/or publication window, newest first.
[Boundary] Read-only; external URLs are returned as stored (links.external_link vets them at render time).
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.media import PressArticleModel
from .filters import DateRange, any_term_matches, date_range_clause


class PressRepo:
    """Press repository (async SQLAlchemy)."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def find_articles(
        self,
        *,
        terms: Sequence[str] = (),
        since: Optional[date] = None,
        limit: int = 5,
    ) -> List[PressArticleModel]:
        """Articles whose title/description contains any term (none = all), published on/after `since`."""
        stmt = select(PressArticleModel)
        clause = any_term_matches((PressArticleModel.title, PressArticleModel.description), terms)
        if clause is not None:
            stmt = stmt.where(clause)
        if since is not None:
            stmt = stmt.where(
                date_range_clause(PressArticleModel.published_at, DateRange.since(since), column_is_datetime=True)
            )
        stmt = stmt.order_by(PressArticleModel.published_at.desc(), PressArticleModel.id.asc()).limit(limit)
        res = await self._session.scalars(stmt)
        return list(res.all())
