# src/poligraph_rag/backend/db/models/justice.py

from __future__ import annotations

import uuid
from datetime import date
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import Date, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..base import Base, TimestampMixin

if TYPE_CHECKING:
    from .people import PartyModel, PoliticianModel


PUBLICATION_PUBLISHED = "PUBLISHED"  # docstring: the only publication status ever surfaced


def _new_id() -> str:
    return str(uuid.uuid4())


class AffairModel(Base, TimestampMixin):
    """
    [Responsibility] Judicial affair involving a politician, with its procedural status.
    [Boundary] `status` drives the presumption-of-innocence notice; it is never cached as a flag here.
               Rows whose publication_status is not PUBLISHED are invisible to retrieval.
    [Upstream] Press/Judilibre enrichment jobs and manual moderation.
    [Downstream] fiche_politicien / affaires_politicien handlers, statistics counts, JudicialAffair sections.
    """

    __tablename__ = "affair"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id, comment="affair id")

    politician_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("politician.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="person concerned (FK)",
    )

    slug: Mapped[Optional[str]] = mapped_column(
        String(200),
        nullable=True,
        unique=True,
        comment="public route slug",  # docstring: /affaires/{slug}
    )

    title: Mapped[str] = mapped_column(String(300), nullable=False, comment="affair title")

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="summary")

    status: Mapped[str] = mapped_column(
        String(60),
        nullable=False,
        index=True,
        comment="procedural status code",  # docstring: see utils/labels.AFFAIR_STATUS_LABELS
    )

    category: Mapped[Optional[str]] = mapped_column(String(60), nullable=True, comment="offence category")

    facts_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True, comment="date of the facts")

    publication_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PUBLICATION_PUBLISHED,
        index=True,
        comment="moderation state (DRAFT/PUBLISHED/REJECTED)",
    )

    party_at_time_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("party.id", ondelete="SET NULL"),
        nullable=True,
        comment="party at the time of the facts (FK)",
    )

    politician: Mapped["PoliticianModel"] = relationship(
        back_populates="affairs",
        foreign_keys=[politician_id],
    )
    party_at_time: Mapped[Optional["PartyModel"]] = relationship(foreign_keys=[party_at_time_id])
    sources: Mapped[List["AffairSourceModel"]] = relationship(
        back_populates="affair",
        order_by="AffairSourceModel.position",
    )


class AffairSourceModel(Base, TimestampMixin):
    """Press or court source backing an affair (ordered)."""

    __tablename__ = "affair_source"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id, comment="source id")

    affair_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("affair.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="affair (FK)",
    )

    position: Mapped[int] = mapped_column(default=0, nullable=False, comment="display order")

    title: Mapped[Optional[str]] = mapped_column(String(300), nullable=True, comment="source title")

    url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True, comment="source url")

    affair: Mapped[AffairModel] = relationship(back_populates="sources")
