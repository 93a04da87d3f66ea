# src/poligraph_rag/backend/db/models/media.py

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional, TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..base import Base, TimestampMixin

if TYPE_CHECKING:
    from .people import PoliticianModel


def _new_id() -> str:
    return str(uuid.uuid4())


class PressArticleModel(Base, TimestampMixin):
    """
    [Responsibility] Press article collected from RSS feeds.
    [Boundary] Only title/description are stored; links always point to the publisher.
    """

    __tablename__ = "press_article"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id, comment="article id")

    title: Mapped[str] = mapped_column(String(500), nullable=False, comment="headline")

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="feed description")

    url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True, comment="publisher url")

    feed_source: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
        comment="feed name",  # docstring: e.g. Le Monde, Libération
    )

    published_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        comment="publication time",
    )


class FactCheckModel(Base, TimestampMixin):
    """Fact-check published by a third party about a public statement."""

    __tablename__ = "fact_check"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id, comment="fact-check id")

    slug: Mapped[Optional[str]] = mapped_column(
        String(200),
        nullable=True,
        unique=True,
        comment="public route slug",  # docstring: /factchecks/{slug}
    )

    title: Mapped[str] = mapped_column(String(500), nullable=False, comment="claim title")

    verdict: Mapped[Optional[str]] = mapped_column(String(120), nullable=True, comment="publisher verdict")

    source_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True, comment="publisher")

    source_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True, comment="publisher url")

    published_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
        comment="publication time",
    )

    politician_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("politician.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="person concerned (FK)",
    )

    politician: Mapped[Optional["PoliticianModel"]] = relationship()
