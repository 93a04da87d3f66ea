# src/poligraph_rag/backend/db/repo/party_repo.py

"""
[Responsibility] PartyRepo: party lookup by name/acronym, member counts and current mandate breakdown.
[Boundary] Read-only; ordering is deterministic (exact acronym first, then name, then id).
[Upstream] membres_parti handler and keyword party sub-search.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.people import MandateModel, PartyModel, PoliticianModel
from .filters import any_column_contains, any_term_matches


class PartyRepo:
    """Party repository (async SQLAlchemy)."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def find_by_name(self, term: str) -> Optional[PartyModel]:
        """One party whose name or acronym contains `term`; an exact acronym match wins."""
        t = str(term or "").strip()
        if not t:
            return None
        exact_first = case((func.lower(PartyModel.short_name) == t.lower(), 0), else_=1)
        stmt = (
            select(PartyModel)
            .where(any_column_contains((PartyModel.name, PartyModel.short_name), t))
            .order_by(exact_first, PartyModel.name.asc(), PartyModel.id.asc())
            .limit(1)
        )
        return await self._session.scalar(stmt)

    async def search_by_terms(self, terms: Sequence[str], *, limit: int = 3) -> List[PartyModel]:
        clause = any_term_matches((PartyModel.name, PartyModel.short_name), terms)
        if clause is None:
            return []
        stmt = select(PartyModel).where(clause).order_by(PartyModel.name.asc(), PartyModel.id.asc()).limit(limit)
        res = await self._session.scalars(stmt)
        return list(res.all())

    async def member_counts(self, party_ids: Sequence[str]) -> Dict[str, int]:
        """party_id -> number of politicians whose current party it is (missing ids map to 0)."""
        ids = list(dict.fromkeys(str(x) for x in party_ids if x))
        if not ids:
            return {}
        stmt = (
            select(PoliticianModel.current_party_id, func.count(PoliticianModel.id))
            .where(PoliticianModel.current_party_id.in_(ids))
            .group_by(PoliticianModel.current_party_id)
        )
        res = await self._session.execute(stmt)
        counts = {str(pid): int(n) for pid, n in res.all()}
        return {pid: counts.get(pid, 0) for pid in ids}

    async def current_mandate_breakdown(self, party_id: str) -> List[Tuple[str, int]]:
        """[(mandate type, count)] of current mandates held by the party's members, ordered by type."""
        stmt = (
            select(MandateModel.type, func.count(MandateModel.id))
            .join(PoliticianModel, MandateModel.politician_id == PoliticianModel.id)
            .where(MandateModel.is_current.is_(True), PoliticianModel.current_party_id == party_id)
            .group_by(MandateModel.type)
            .order_by(MandateModel.type.asc())
        )
        res = await self._session.execute(stmt)
        return [(str(t), int(n)) for t, n in res.all()]
