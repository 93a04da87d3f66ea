# src/poligraph_rag/backend/db/models/__init__.py

"""
[Responsibility] db.models aggregate export: every knowledge-store ORM model, so that Base.metadata is complete.
[Boundary] Imports and __all__ only; no business logic.
[Upstream] people / justice / legislation / media model files.
[Downstream] repo layer, playground fixtures.
"""

from __future__ import annotations

from ..base import Base
from .people import PartyModel, PoliticianModel, MandateModel, DeclarationModel
from .justice import AffairModel, AffairSourceModel, PUBLICATION_PUBLISHED
from .legislation import LegislativeDossierModel, ScrutinModel, VoteModel
from .media import PressArticleModel, FactCheckModel

__all__ = [
    # base
    "Base",
    # people
    "PartyModel",
    "PoliticianModel",
    "MandateModel",
    "DeclarationModel",
    # justice
    "AffairModel",
    "AffairSourceModel",
    "PUBLICATION_PUBLISHED",
    # legislation
    "LegislativeDossierModel",
    "ScrutinModel",
    "VoteModel",
    # media
    "PressArticleModel",
    "FactCheckModel",
]
