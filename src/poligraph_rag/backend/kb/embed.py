# src/poligraph_rag/backend/kb/embed.py

"""
[Responsibility] Query embedder: resolve a LlamaIndex BaseEmbedding for the configured provider and turn one
                 citizen question into a query vector.
[Boundary] Query side only (documents are embedded by the indexing jobs with the same provider/model/dim).
[Upstream] services/runtime.py resolves provider/model/dim from settings.
[Downstream] pipelines/retrieval/vector.py MilvusVectorIndex.
"""

from __future__ import annotations

import hashlib
import inspect
from typing import Any, Dict, List, Optional


def _load_base_embedding() -> Any:
    """Lazy import of the LlamaIndex embedding abstraction."""
    from llama_index.core.base.embeddings.base import BaseEmbedding  # type: ignore

    return BaseEmbedding


def _filter_kwargs(fn: Any, kwargs: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only keyword arguments the constructor accepts (provider SDKs drift between releases)."""
    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError):
        return {}
    return {k: v for k, v in kwargs.items() if k in sig.parameters and v is not None}


def _build_hash_embedder(*, dim: int, model: str, provider: str) -> Any:
    """
    Deterministic sha256-based embedding for offline runs and tests (not semantic).
    """
    BaseEmbedding = _load_base_embedding()

    class _HashEmbedding(BaseEmbedding):
        """Simple deterministic embedding based on sha256."""

        def __init__(self, *, dim: int, model_name: str, provider_name: str) -> None:
            super().__init__(model_name=model_name)
            self._dim = int(dim)
            self._provider = str(provider_name)

        def _hash_to_vec(self, text: str) -> List[float]:
            h = hashlib.sha256(text.encode("utf-8")).digest()
            vals: List[float] = []
            seed = h
            while len(vals) < self._dim:
                for b in seed:
                    vals.append((b / 255.0) * 2.0 - 1.0)
                    if len(vals) >= self._dim:
                        break
                seed = hashlib.sha256(seed).digest()
            return vals[: self._dim]

        def _get_text_embedding(self, text: str) -> List[float]:
            return self._hash_to_vec(text)

        def _get_query_embedding(self, query: str) -> List[float]:
            return self._hash_to_vec(query)

        async def _aget_query_embedding(self, query: str) -> List[float]:
            return self._hash_to_vec(query)

    return _HashEmbedding(dim=dim, model_name=model, provider_name=provider)


def resolve_embedder(
    *,
    provider: str,
    model: str,
    dim: Optional[int],
    embed_config: Optional[Dict[str, Any]] = None,
) -> Any:
    """
    Build a LlamaIndex BaseEmbedding for `provider` (hash / ollama / openai / voyage).

    Raises:
        ValueError: unknown provider.
        TypeError: the provider class is not a BaseEmbedding.
    """
    BaseEmbedding = _load_base_embedding()

    provider_key = str(provider).strip().lower()
    model_name = str(model).strip()
    cfg = embed_config or {}

    if provider_key in {"mock", "local", "hash"}:
        embedder = _build_hash_embedder(dim=int(dim or 128), model=model_name or "hash", provider=provider_key)
    elif provider_key == "ollama":
        from llama_index.embeddings.ollama import OllamaEmbedding  # type: ignore

        kwargs = {"model_name": model_name, "base_url": cfg.get("base_url"), **cfg}
        embedder = OllamaEmbedding(**_filter_kwargs(OllamaEmbedding.__init__, kwargs))
    elif provider_key == "openai":
        from llama_index.embeddings.openai import OpenAIEmbedding  # type: ignore

        kwargs = {"model": model_name, "model_name": model_name, "dimensions": dim, **cfg}
        embedder = OpenAIEmbedding(**_filter_kwargs(OpenAIEmbedding.__init__, kwargs))
    elif provider_key in {"voyage", "voyageai"}:
        from llama_index.embeddings.voyageai import VoyageEmbedding  # type: ignore

        kwargs = {"model_name": model_name, "output_dimension": dim, **cfg}
        embedder = VoyageEmbedding(**_filter_kwargs(VoyageEmbedding.__init__, kwargs))
    else:
        raise ValueError(f"unsupported embed provider: {provider}")

    if not isinstance(embedder, BaseEmbedding):
        raise TypeError("embedding must be BaseEmbedding")

    return embedder


class QueryEmbedder:
    """
    Wraps one resolved BaseEmbedding (built once per process, shared across requests).
    """

    def __init__(self, embedder: Any, *, provider: str, model: str, dim: Optional[int] = None) -> None:
        self._embedder = embedder
        self.provider = provider
        self.model = model
        self.dim = dim

    @classmethod
    def from_config(
        cls,
        *,
        provider: str,
        model: str,
        dim: Optional[int],
        embed_config: Optional[Dict[str, Any]] = None,
    ) -> "QueryEmbedder":
        embedder = resolve_embedder(provider=provider, model=model, dim=dim, embed_config=embed_config)
        return cls(embedder, provider=provider, model=model, dim=dim)

    async def embed_query(self, text: str) -> List[float]:
        if hasattr(self._embedder, "aget_query_embedding"):
            vec = await self._embedder.aget_query_embedding(text)
        else:
            vec = self._embedder.get_query_embedding(text)
        out = [float(v) for v in vec]
        if self.dim is not None and len(out) != int(self.dim):
            raise ValueError(f"embedding dim mismatch: {len(out)} != {self.dim}")
        return out
