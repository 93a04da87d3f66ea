# src/poligraph_rag/backend/db/repo/knowledge_store.py

"""
[Responsibility] KnowledgeStore: the read-only facade the retrieval pipeline talks to, bundling one repository
                 per entity family over a single AsyncSession.
[Boundary] No query logic of its own beyond `rollback` (used by the orchestrator after a failed tier so the
           next tier starts from a clean session state).
[Upstream] services/chat_service.py (or tests) build it from a session.
[Downstream] lookups / keyword / assemble.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from .legislation_repo import LegislationRepo
from .party_repo import PartyRepo
from .politician_repo import PoliticianRepo
from .press_repo import PressRepo
from .stats_repo import StatsRepo


@dataclass
class KnowledgeStore:
    session: AsyncSession
    politicians: PoliticianRepo
    parties: PartyRepo
    legislation: LegislationRepo
    press: PressRepo
    stats: StatsRepo

    @classmethod
    def from_session(cls, session: AsyncSession) -> "KnowledgeStore":
        return cls(
            session=session,
            politicians=PoliticianRepo(session),
            parties=PartyRepo(session),
            legislation=LegislationRepo(session),
            press=PressRepo(session),
            stats=StatsRepo(session),
        )

    async def rollback(self) -> None:
        """Reset the session after a failed statement (read-only: nothing to lose)."""
        await self.session.rollback()
