# src/poligraph_rag/backend/db/models/legislation.py

from __future__ import annotations

import uuid
from datetime import date
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import Date, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..base import Base, TimestampMixin

if TYPE_CHECKING:
    from .people import PoliticianModel


def _new_id() -> str:
    return str(uuid.uuid4())


class LegislativeDossierModel(Base, TimestampMixin):
    """
    [Responsibility] Legislative dossier followed at the Assemblée nationale (bill, proposal, resolution).
    [Boundary] `status` is a closed code set (DEPOSE .. CADUQUE); texts are summaries, not the full bill.
    [Downstream] legislation handler, keyword thematic search, LegislativeDossier sections, `/assemblee/...`.
    """

    __tablename__ = "legislative_dossier"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id, comment="dossier id")

    slug: Mapped[Optional[str]] = mapped_column(
        String(200),
        nullable=True,
        unique=True,
        comment="public route slug",  # docstring: /assemblee/{slug}, falls back to id
    )

    title: Mapped[str] = mapped_column(Text, nullable=False, comment="official title")

    short_title: Mapped[Optional[str]] = mapped_column(String(300), nullable=True, comment="short title")

    number: Mapped[Optional[str]] = mapped_column(String(40), nullable=True, comment="bill number")

    status: Mapped[str] = mapped_column(String(40), nullable=False, index=True, comment="dossier status code")

    category: Mapped[Optional[str]] = mapped_column(
        String(120),
        nullable=True,
        index=True,
        comment="theme label",  # docstring: e.g. Économie, Santé
    )

    filing_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True, index=True, comment="filing date")

    source_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True, comment="official url")

    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="plain-language summary")


class ScrutinModel(Base, TimestampMixin):
    """
    [Responsibility] Public vote (scrutin) with its tallies.
    [Boundary] Individual positions live in VoteModel.
    """

    __tablename__ = "scrutin"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id, comment="scrutin id")

    slug: Mapped[Optional[str]] = mapped_column(
        String(200),
        nullable=True,
        unique=True,
        comment="public route slug",  # docstring: /votes/{slug}, falls back to id
    )

    title: Mapped[str] = mapped_column(Text, nullable=False, comment="vote title")

    voting_date: Mapped[date] = mapped_column(Date, nullable=False, index=True, comment="vote date")

    result: Mapped[str] = mapped_column(String(20), nullable=False, comment="ADOPTED / REJECTED")

    votes_for: Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="for")
    votes_against: Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="against")
    votes_abstain: Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="abstentions")

    source_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True, comment="official url")

    votes: Mapped[List["VoteModel"]] = relationship(back_populates="scrutin")


class VoteModel(Base, TimestampMixin):
    """One politician's position on one scrutin."""

    __tablename__ = "vote"
    __table_args__ = (UniqueConstraint("scrutin_id", "politician_id", name="uq_vote_scrutin_politician"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id, comment="vote id")

    scrutin_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("scrutin.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="scrutin (FK)",
    )

    politician_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("politician.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="voter (FK)",
    )

    position: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="POUR / CONTRE / ABSTENTION / NON_VOTANT / ABSENT",
    )

    scrutin: Mapped[ScrutinModel] = relationship(back_populates="votes")
    politician: Mapped["PoliticianModel"] = relationship(back_populates="votes")
