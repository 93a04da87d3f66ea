# src/poligraph_rag/backend/db/repo/politician_repo.py

"""
[Responsibility] PoliticianRepo: read-only lookups over politicians and what hangs off them
                 (current mandates, declarations, published affairs, votes).
[Boundary] No formatting and no fuzzy ranking; every list has a deterministic ORDER BY so identical
           queries over unchanged data return identical rows.
[Upstream] lookups (pattern handlers) and keyword search.
[Downstream] Rendered context text via the retrieval pipeline.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models.people import DeclarationModel, MandateModel, PoliticianModel
from ..models.justice import AffairModel, PUBLICATION_PUBLISHED
from ..models.legislation import ScrutinModel, VoteModel
from .filters import any_column_contains, any_term_matches


class PoliticianRepo:
    """Politician repository (async SQLAlchemy)."""

    def __init__(self, session: AsyncSession):
        self._session = session  # docstring: read session (injected)

    def _name_columns(self):
        return (PoliticianModel.full_name, PoliticianModel.last_name)

    async def find_by_name(self, name: str) -> Optional[PoliticianModel]:
        """
        Resolve one politician whose full or last name contains `name` (case-insensitive).

        Ties resolve by full name then id; the current party is eagerly loaded.
        """
        # TODO: compare on a stored accent-folded name column so an all-lowercase "élodie" also resolves on SQLite.
        term = str(name or "").strip()
        if not term:
            return None
        stmt = (
            select(PoliticianModel)
            .options(selectinload(PoliticianModel.current_party))
            .where(any_column_contains(self._name_columns(), term))
            .order_by(PoliticianModel.full_name.asc(), PoliticianModel.id.asc())
            .limit(1)
        )
        return await self._session.scalar(stmt)

    async def search_by_terms(self, terms: Sequence[str], *, limit: int = 3) -> List[PoliticianModel]:
        """Politicians whose full or last name contains any term."""  # docstring: keyword tier
        clause = any_term_matches(self._name_columns(), terms)
        if clause is None:
            return []
        stmt = (
            select(PoliticianModel)
            .options(selectinload(PoliticianModel.current_party))
            .where(clause)
            .order_by(PoliticianModel.full_name.asc(), PoliticianModel.id.asc())
            .limit(limit)
        )
        res = await self._session.scalars(stmt)
        return list(res.all())

    async def current_mandates(self, politician_id: str, *, limit: Optional[int] = None) -> List[MandateModel]:
        stmt = (
            select(MandateModel)
            .where(MandateModel.politician_id == politician_id, MandateModel.is_current.is_(True))
            .order_by(MandateModel.start_date.desc().nulls_last(), MandateModel.title.asc(), MandateModel.id.asc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        res = await self._session.scalars(stmt)
        return list(res.all())

    async def latest_declarations(self, politician_id: str, *, limit: int = 1) -> List[DeclarationModel]:
        stmt = (
            select(DeclarationModel)
            .where(DeclarationModel.politician_id == politician_id)
            .order_by(DeclarationModel.year.desc(), DeclarationModel.id.asc())
            .limit(limit)
        )
        res = await self._session.scalars(stmt)
        return list(res.all())

    async def published_affairs(self, politician_id: str, *, limit: Optional[int] = None) -> List[AffairModel]:
        """PUBLISHED affairs only, with sources eagerly loaded (ordered by position)."""
        stmt = (
            select(AffairModel)
            .options(selectinload(AffairModel.sources))
            .where(
                AffairModel.politician_id == politician_id,
                AffairModel.publication_status == PUBLICATION_PUBLISHED,
            )
            .order_by(AffairModel.facts_date.desc().nulls_last(), AffairModel.title.asc(), AffairModel.id.asc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        res = await self._session.scalars(stmt)
        return list(res.all())

    async def votes(
        self,
        politician_id: str,
        *,
        topic: Optional[str] = None,
        limit: int = 10,
    ) -> List[VoteModel]:
        """Latest votes of a politician, optionally restricted to scrutins whose title contains `topic`."""
        stmt = (
            select(VoteModel)
            .join(ScrutinModel, VoteModel.scrutin_id == ScrutinModel.id)
            .options(selectinload(VoteModel.scrutin))
            .where(VoteModel.politician_id == politician_id)
        )
        topic_s = str(topic or "").strip()
        if topic_s:
            stmt = stmt.where(any_column_contains((ScrutinModel.title,), topic_s))
        stmt = stmt.order_by(ScrutinModel.voting_date.desc(), ScrutinModel.id.asc()).limit(limit)
        res = await self._session.scalars(stmt)
        return list(res.all())

    async def current_mandates_by_department(
        self,
        department_code: str,
        *,
        types: Sequence[str],
    ) -> List[MandateModel]:
        """Current mandates of the given types in one department, holder + party loaded."""
        stmt = (
            select(MandateModel)
            .join(PoliticianModel, MandateModel.politician_id == PoliticianModel.id)
            .options(selectinload(MandateModel.politician).selectinload(PoliticianModel.current_party))
            .where(
                MandateModel.department_code == department_code,
                MandateModel.is_current.is_(True),
                MandateModel.type.in_(list(types)),
            )
            .order_by(MandateModel.type.asc(), PoliticianModel.full_name.asc(), MandateModel.id.asc())
        )
        res = await self._session.scalars(stmt)
        return list(res.all())

    async def current_mandates_of_types(self, types: Sequence[str]) -> List[MandateModel]:
        """Current mandates of the given types (e.g. government members), holder loaded."""
        stmt = (
            select(MandateModel)
            .join(PoliticianModel, MandateModel.politician_id == PoliticianModel.id)
            .options(selectinload(MandateModel.politician))
            .where(MandateModel.is_current.is_(True), MandateModel.type.in_(list(types)))
            .order_by(MandateModel.type.asc(), PoliticianModel.full_name.asc(), MandateModel.id.asc())
        )
        res = await self._session.scalars(stmt)
        return list(res.all())

    async def count_current_mandates(
        self,
        types: Sequence[str],
        *,
        department_code: Optional[str] = None,
    ) -> int:
        stmt = select(func.count(MandateModel.id)).where(
            MandateModel.is_current.is_(True),
            MandateModel.type.in_(list(types)),
        )
        if department_code is not None:
            stmt = stmt.where(MandateModel.department_code == department_code)
        return int(await self._session.scalar(stmt) or 0)

    async def top_declarations_by_net_worth(self, *, limit: int = 5) -> List[DeclarationModel]:
        """Declarations with a known net worth, highest first, declarant loaded."""
        stmt = (
            select(DeclarationModel)
            .options(selectinload(DeclarationModel.politician))
            .where(DeclarationModel.total_net.is_not(None))
            .order_by(DeclarationModel.total_net.desc(), DeclarationModel.id.asc())
            .limit(limit)
        )
        res = await self._session.scalars(stmt)
        return list(res.all())
