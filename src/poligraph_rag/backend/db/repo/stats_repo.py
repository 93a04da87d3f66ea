# src/poligraph_rag/backend/db/repo/stats_repo.py

"""
[Responsibility] StatsRepo: global aggregate counts computed fresh per request (no caching).
[Boundary] Counts only; rendering belongs to the pipeline.
[Upstream] keyword statistics sub-search and the broad-query statistics section of the assembler.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.people import DeclarationModel, MandateModel, PartyModel
from ..models.justice import AffairModel, PUBLICATION_PUBLISHED
from ..models.legislation import LegislativeDossierModel, ScrutinModel
from ..models.media import FactCheckModel
from ...utils.labels import GOVERNMENT_MANDATE_TYPES


@dataclass(frozen=True)
class GlobalCounts:
    deputies: int
    senators: int
    meps: int
    government_members: int
    parties: int
    affairs: int
    definitive_convictions: int
    dossiers: int
    scrutins: int
    declarations: int
    fact_checks: int


class StatsRepo:
    """Aggregate counts (async SQLAlchemy)."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _count(self, stmt) -> int:
        return int(await self._session.scalar(stmt) or 0)

    async def current_mandate_counts(self) -> Dict[str, int]:
        """mandate type -> number of current mandates."""
        stmt = (
            select(MandateModel.type, func.count(MandateModel.id))
            .where(MandateModel.is_current.is_(True))
            .group_by(MandateModel.type)
        )
        res = await self._session.execute(stmt)
        return {str(t): int(n) for t, n in res.all()}

    async def global_counts(self) -> GlobalCounts:
        by_type = await self.current_mandate_counts()
        published = AffairModel.publication_status == PUBLICATION_PUBLISHED
        return GlobalCounts(
            deputies=by_type.get("DEPUTE", 0),
            senators=by_type.get("SENATEUR", 0),
            meps=by_type.get("DEPUTE_EUROPEEN", 0),
            government_members=sum(by_type.get(t, 0) for t in GOVERNMENT_MANDATE_TYPES),
            parties=await self._count(select(func.count(PartyModel.id))),
            affairs=await self._count(select(func.count(AffairModel.id)).where(published)),
            definitive_convictions=await self._count(
                select(func.count(AffairModel.id)).where(published, AffairModel.status == "CONDAMNATION_DEFINITIVE")
            ),
            dossiers=await self._count(select(func.count(LegislativeDossierModel.id))),
            scrutins=await self._count(select(func.count(ScrutinModel.id))),
            declarations=await self._count(select(func.count(DeclarationModel.id))),
            fact_checks=await self._count(select(func.count(FactCheckModel.id))),
        )
