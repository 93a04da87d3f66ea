# src/poligraph_rag/backend/kb/repo.py

"""
[Responsibility] Milvus read repository: vector search over the chat-embedding collection with hits
                 normalized to plain dicts.
[Boundary] Read-only (indexing jobs own writes); no reranking, boosting or Candidate mapping.
[Upstream] kb/client.py provides the MilvusClient; kb/schema.py defines field names and default output fields.
[Downstream] pipelines/retrieval/vector.py.
"""

from __future__ import annotations

import inspect
import json
from typing import Any, Dict, List, Optional

from .client import MilvusClient
from .schema import DEFAULT_OUTPUT_FIELDS, DEFAULT_SEARCH_PARAMS, EMBEDDING_FIELD, METADATA_FIELD


class MilvusRepo:
    """
    Repository for Milvus vector search.
    """

    def __init__(self, client: MilvusClient) -> None:
        self._client = client  # docstring: MilvusClient (connection + collection cache)

    @property
    def client(self) -> MilvusClient:
        return self._client

    async def search(
        self,
        *,
        collection: str,
        query_vectors: List[List[float]],
        top_k: int,
        expr: Optional[str] = None,
        output_fields: Optional[List[str]] = None,
        metric_type: Optional[str] = None,
        search_params: Optional[Dict[str, Any]] = None,
    ) -> List[List[Dict[str, Any]]]:
        """
        Vector search.

        Returns:
          list per query vector; each item is a dict:
            {"vector_id": str, "score": float, "payload": dict}
        """
        col = await self._client.get_collection(collection)

        fields = list(output_fields or DEFAULT_OUTPUT_FIELDS)
        mt = str(metric_type or "COSINE").strip().upper()
        params = dict(search_params or DEFAULT_SEARCH_PARAMS)
        call = col.search(
            data=query_vectors,
            anns_field=EMBEDDING_FIELD,
            param={"metric_type": mt, "params": params},
            limit=int(top_k),
            expr=expr,
            output_fields=fields,
        )
        raw = await self._maybe_await(call)

        out: List[List[Dict[str, Any]]] = []
        for hits in raw:
            q_res: List[Dict[str, Any]] = []
            for h in hits:
                vector_id = getattr(h, "id", None)
                score = getattr(h, "score", None)
                entity = getattr(h, "entity", None)
                payload: Dict[str, Any] = {}
                if entity is not None:
                    for f in fields:
                        payload[f] = entity.get(f) if hasattr(entity, "get") else getattr(entity, f, None)
                payload[METADATA_FIELD] = self._coerce_metadata(payload.get(METADATA_FIELD))
                q_res.append(
                    {
                        "vector_id": str(vector_id) if vector_id is not None else "",
                        "score": float(score) if score is not None else 0.0,
                        "payload": payload,
                    }
                )
            out.append(q_res)
        return out

    @staticmethod
    def _coerce_metadata(value: Any) -> Dict[str, Any]:
        """JSON field comes back as dict on recent servers, as str on older ones."""
        if value is None:
            return {}
        if isinstance(value, dict):
            return value
        if isinstance(value, (str, bytes)):
            decoded = json.loads(value)
            return decoded if isinstance(decoded, dict) else {}
        return {}

    @staticmethod
    async def _maybe_await(value: Any) -> Any:
        """
        Normalize pymilvus calls across versions: some return plain values, others return awaitables.
        """
        if inspect.isawaitable(value):
            return await value
        return value
