# src/poligraph_rag/backend/db/models/people.py

from __future__ import annotations

import uuid
from datetime import date
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import Boolean, Date, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..base import Base, TimestampMixin

if TYPE_CHECKING:
    from .justice import AffairModel
    from .legislation import VoteModel


def _new_id() -> str:
    return str(uuid.uuid4())


class PartyModel(Base, TimestampMixin):
    """
    [Responsibility] Political party (or parliamentary group) as referenced on the public site.
    [Boundary] Membership is expressed through PoliticianModel.current_party_id; no history table here.
    [Upstream] Party sync jobs.
    [Downstream] membres_parti handler, keyword party sub-search, `/partis/{slug}` links.
    """

    __tablename__ = "party"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id, comment="party id")

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        index=True,
        comment="full party name",  # docstring: e.g. Rassemblement national
    )

    short_name: Mapped[Optional[str]] = mapped_column(
        String(40),
        nullable=True,
        index=True,
        comment="acronym",  # docstring: e.g. RN, LFI, PS
    )

    slug: Mapped[Optional[str]] = mapped_column(
        String(200),
        nullable=True,
        unique=True,
        comment="public route slug",  # docstring: /partis/{slug}
    )

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="short description")

    members: Mapped[List["PoliticianModel"]] = relationship(
        back_populates="current_party",
        foreign_keys="PoliticianModel.current_party_id",
    )


class PoliticianModel(Base, TimestampMixin):
    """
    [Responsibility] Public official profile (identity, current party).
    [Boundary] Career/mandates, affairs, declarations and votes live in their own tables.
    [Upstream] Official open-data sync (Assemblée, Sénat, Wikidata, HATVP).
    [Downstream] Every pattern handler that resolves a person; `/politiques/{slug}` links.
    """

    __tablename__ = "politician"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id, comment="politician id")

    slug: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        unique=True,
        comment="public route slug",  # docstring: /politiques/{slug}
    )

    civility: Mapped[Optional[str]] = mapped_column(String(10), nullable=True, comment="M. / Mme")

    first_name: Mapped[str] = mapped_column(String(120), nullable=False, comment="first name")

    last_name: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
        index=True,
        comment="last name",  # docstring: name lookups match full or last name
    )

    full_name: Mapped[str] = mapped_column(String(240), nullable=False, index=True, comment="display name")

    birth_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True, comment="birth date")

    death_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True, comment="death date")

    current_party_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("party.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="current party (FK)",
    )

    current_party: Mapped[Optional[PartyModel]] = relationship(
        back_populates="members",
        foreign_keys=[current_party_id],
    )
    mandates: Mapped[List["MandateModel"]] = relationship(back_populates="politician")
    declarations: Mapped[List["DeclarationModel"]] = relationship(back_populates="politician")
    affairs: Mapped[List["AffairModel"]] = relationship(
        back_populates="politician",
        foreign_keys="AffairModel.politician_id",
    )
    votes: Mapped[List["VoteModel"]] = relationship(back_populates="politician")


class MandateModel(Base, TimestampMixin):
    """
    [Responsibility] One elected/appointed office held by a politician (current or past).
    [Boundary] `type` is a closed code set (DEPUTE, SENATEUR, MINISTRE ...); titles are free text.
    """

    __tablename__ = "mandate"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id, comment="mandate id")

    politician_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("politician.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="holder (FK)",
    )

    type: Mapped[str] = mapped_column(String(40), nullable=False, index=True, comment="mandate type code")

    title: Mapped[str] = mapped_column(
        String(300),
        nullable=False,
        comment="display title",  # docstring: e.g. Député de la 3e circonscription de l'Isère
    )

    institution: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, comment="institution")

    department_code: Mapped[Optional[str]] = mapped_column(
        String(3),
        nullable=True,
        index=True,
        comment="department code (01..95, 2A, 2B, 971..988)",
    )

    is_current: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        index=True,
        comment="in office today",
    )

    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True, comment="start date")

    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True, comment="end date")

    politician: Mapped[PoliticianModel] = relationship(back_populates="mandates")


class DeclarationModel(Base, TimestampMixin):
    """
    [Responsibility] HATVP wealth/interest declaration summary (amounts in euros).
    [Boundary] Only the aggregate figures surfaced in answers; the full declaration stays on hatvp.fr.
    """

    __tablename__ = "declaration"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id, comment="declaration id")

    politician_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("politician.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="declarant (FK)",
    )

    type: Mapped[str] = mapped_column(
        String(60),
        nullable=False,
        comment="declaration type code",  # docstring: e.g. SITUATION_PATRIMONIALE
    )

    year: Mapped[int] = mapped_column(Integer, nullable=False, index=True, comment="declaration year")

    total_net: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="net worth")
    real_estate: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="real estate")
    securities: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="securities")
    bank_accounts: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="bank accounts")

    hatvp_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True, comment="source url")

    politician: Mapped[PoliticianModel] = relationship(back_populates="declarations")
