# src/poligraph_rag/config.py
from __future__ import annotations

import os
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv


def _find_repo_root(start: Path) -> Path:
    """
    Best-effort repository root discovery.
    - Prefer the closest ancestor containing `pyproject.toml`.
    - Fallback to the starting directory if not found.
    """
    cur = start.resolve()
    for _ in range(20):
        if (cur / "pyproject.toml").exists():
            return cur
        if cur.parent == cur:
            break
        cur = cur.parent
    return start.resolve()


PACKAGE_ROOT = Path(__file__).resolve().parent
REPO_ROOT = _find_repo_root(PACKAGE_ROOT)

# Load .env into process environment early so provider SDKs can read it.
load_dotenv(str(REPO_ROOT / ".env"), override=False)

LOCAL_ROOT = REPO_ROOT / ".Local"


class Settings(BaseSettings):
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    PROJECT_ROOT: str = str(REPO_ROOT)

    POLIGRAPH_DATABASE_URL: str | None = None

    # semantic tier: vector index + query embedder
    MILVUS_URI: str | None = None
    MILVUS_HOST: str | None = None
    MILVUS_PORT: str | None = None
    MILVUS_TOKEN: str | None = None
    MILVUS_COLLECTION: str = "poligraph_chat_embeddings"
    MILVUS_METRIC_TYPE: str = "COSINE"

    EMBED_PROVIDER: str = "none"
    EMBED_MODEL: str = "voyage-4-lite"
    EMBED_DIM: int = int(512)

    SEMANTIC_LIMIT: int = int(12)
    SEMANTIC_THRESHOLD: float = 0.4

    # reranker
    RERANK_PROVIDER: str = "none"
    RERANK_MODEL: str = "rerank-2.5-lite"
    RERANK_TOP_K: int = int(8)
    RERANK_TIMEOUT_S: float = 10.0
    RERANKER_MODEL_PATH: str = "BAAI/bge-reranker-v2-m3"
    RERANKER_DEVICE: str = "cpu"

    VOYAGE_API_KEY: str | None = None
    VOYAGE_API_BASE: str = "https://api.voyageai.com/v1"

    OPENAI_API_KEY: str | None = None
    OPENAI_API_BASE: str | None = "https://api.openai.com/v1"
    OLLAMA_BASE_URL: str | None = "http://localhost:11434"

    # rate limiter (absent url disables it)
    RATE_LIMIT_REDIS_URL: str | None = None
    RATE_LIMIT_MAX_REQUESTS: int = int(10)
    RATE_LIMIT_WINDOW_S: int = int(60)
    RATE_LIMIT_PREFIX: str = "chat"

    # context budget, in characters
    MAX_CONTEXT_LENGTH: int = int(8000)
    MAX_QUERY_LENGTH: int = int(2000)

    @property
    def project_root(self) -> Path:
        if not self.PROJECT_ROOT:
            raise RuntimeError("PROJECT_ROOT is not set. Please set PROJECT_ROOT in your .env file.")
        return Path(self.PROJECT_ROOT).resolve()

    @property
    def semantic_enabled(self) -> bool:
        provider = str(self.EMBED_PROVIDER or "").strip().lower()
        has_milvus = bool((self.MILVUS_URI or "").strip() or (self.MILVUS_HOST or "").strip())
        return provider not in {"", "none", "off"} and has_milvus

    @property
    def rerank_enabled(self) -> bool:
        return str(self.RERANK_PROVIDER or "").strip().lower() not in {"", "none", "off"}

    @property
    def rate_limit_enabled(self) -> bool:
        return bool((self.RATE_LIMIT_REDIS_URL or "").strip())

    model_config = SettingsConfigDict(
        env_file=str(REPO_ROOT / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()


def _set_env_if_missing(key: str, value: str | None) -> None:
    """
    Keep provider SDKs working with .env-based Settings by exporting to os.environ.
    Do not override explicitly provided environment variables.
    """
    if value is None:
        return
    raw = str(value).strip()
    if not raw:
        return
    if os.getenv(key):
        return
    os.environ[key] = raw


def _bootstrap_provider_env(s: Settings) -> None:
    """
    Export provider-related settings into os.environ for downstream SDKs.
    """
    _set_env_if_missing("OPENAI_API_KEY", s.OPENAI_API_KEY)
    _set_env_if_missing("OPENAI_API_BASE", s.OPENAI_API_BASE)
    _set_env_if_missing("VOYAGE_API_KEY", s.VOYAGE_API_KEY)
    _set_env_if_missing("OLLAMA_BASE_URL", s.OLLAMA_BASE_URL)


_bootstrap_provider_env(settings)
