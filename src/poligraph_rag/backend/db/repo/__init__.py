# src/poligraph_rag/backend/db/repo/__init__.py

"""
[Responsibility] db.repo aggregate export: read-only repositories and the KnowledgeStore facade.
[Boundary] Imports and __all__ only; no pipeline orchestration.
[Downstream] services and pipelines import through this module; gate tests use the repos directly.
"""

from __future__ import annotations

from .filters import DateRange
from .politician_repo import PoliticianRepo
from .party_repo import PartyRepo
from .legislation_repo import LegislationRepo
from .press_repo import PressRepo
from .stats_repo import GlobalCounts, StatsRepo
from .knowledge_store import KnowledgeStore

__all__ = [
    "DateRange",
    "PoliticianRepo",
    "PartyRepo",
    "LegislationRepo",
    "PressRepo",
    "StatsRepo",
    "GlobalCounts",
    "KnowledgeStore",
]
