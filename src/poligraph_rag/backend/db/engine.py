# src/poligraph_rag/backend/db/engine.py

"""
[Responsibility] Database engine and session factory for the knowledge store (AsyncEngine / AsyncSession).
[Boundary] No ORM models here; no transaction orchestration; no migrations (the sync jobs own the schema).
[Upstream] config.py / environment provide the connection URL.
[Downstream] api/deps.py opens sessions from SessionLocal; tests build their own engine.
"""

from __future__ import annotations

import os
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine


def _find_repo_root(start: Path) -> Path:
    """
    Best-effort repository root discovery (avoid cwd drift).
    """
    cur = start.resolve()
    for _ in range(20):
        if (cur / "pyproject.toml").exists():
            return cur
        if cur.parent == cur:
            break
        cur = cur.parent
    return start.resolve()


def _settings_db_url() -> str | None:
    """
    Read the URL from pydantic Settings (.env supported) without binding engine.py to settings at import.
    """
    from poligraph_rag.config import settings as _settings

    v = str(getattr(_settings, "POLIGRAPH_DATABASE_URL", "") or "").strip()
    return v or None


def _default_db_url() -> str:
    """
    Local sqlite fallback (repo-root/.Local/poligraph.db).
    """
    here = Path(__file__).resolve()
    repo_root = _find_repo_root(here)
    db_path = repo_root / ".Local" / "poligraph.db"
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite+aiosqlite:///{db_path.as_posix()}"


def resolve_db_url(override: str | None = None) -> str:
    """
    Resolve database URL.

    Priority:
        1) explicit override
        2) settings: POLIGRAPH_DATABASE_URL (loads .env)
        3) env: DATABASE_URL
        4) fallback: local sqlite file
    """
    if override:
        return override
    s_url = _settings_db_url()
    if s_url:
        return s_url
    env_url = os.getenv("DATABASE_URL", "").strip()
    if env_url:
        return env_url
    return _default_db_url()


def create_engine(*, url: str | None = None, echo: bool | None = None) -> AsyncEngine:
    """Create AsyncEngine (sqlite via aiosqlite locally, postgres+asyncpg in deployments)."""
    db_url = resolve_db_url(url)
    db_echo = echo if echo is not None else (os.getenv("SQL_ECHO", "0") == "1")

    return create_async_engine(
        db_url,
        echo=db_echo,
        future=True,
        pool_pre_ping=True,
    )


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create async sessionmaker."""  # docstring: expire_on_commit off so rendered rows stay readable
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


# --- global singletons (app runtime) ---
ENGINE: AsyncEngine = create_engine()
SessionLocal: async_sessionmaker[AsyncSession] = create_sessionmaker(ENGINE)
