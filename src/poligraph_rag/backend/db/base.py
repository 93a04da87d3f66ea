# src/poligraph_rag/backend/db/base.py

"""
[Responsibility] Declarative base and timestamp mixin shared by every knowledge-store table.
[Boundary] No table definitions; no engine/session creation.
[Upstream] db/models/* inherit from Base (+ TimestampMixin).
[Downstream] ORM models; tests create the schema from Base.metadata.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base (SQLAlchemy 2.x typed mappings)."""


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        comment="row creation time (UTC)",  # docstring: written by the sync jobs, read-only here
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        comment="last update time (UTC)",
    )
