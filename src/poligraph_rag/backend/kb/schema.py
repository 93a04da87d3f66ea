# src/poligraph_rag/backend/kb/schema.py

"""
[Responsibility] Milvus field contract for the chat-embedding collection (one vector per indexed entity).
[Boundary] Field names and expression builders only; collection creation belongs to the indexing jobs.
[Upstream] Indexing jobs write `entity_type/entity_id/content/metadata` per entity.
[Downstream] kb/repo.py search output fields; pipelines/retrieval/vector.py maps payloads to Candidates.
"""

from __future__ import annotations

import json
from typing import Iterable, List, Optional


VECTOR_ID_FIELD = "vector_id"  # docstring: primary key (VARCHAR)
EMBEDDING_FIELD = "embedding"  # docstring: FLOAT_VECTOR (dim = EMBED_DIM)
ENTITY_TYPE_FIELD = "entity_type"  # docstring: POLITICIAN / PARTY / AFFAIR / DOSSIER / SCRUTIN / PRESS_ARTICLE / FACTCHECK
ENTITY_ID_FIELD = "entity_id"  # docstring: knowledge-store primary key of the entity
CONTENT_FIELD = "content"  # docstring: indexed text (rendered as-is in context sections)
METADATA_FIELD = "metadata"  # docstring: JSON payload (title/slug/status/dates ...)

DEFAULT_OUTPUT_FIELDS: List[str] = [
    ENTITY_TYPE_FIELD,
    ENTITY_ID_FIELD,
    CONTENT_FIELD,
    METADATA_FIELD,
]

DEFAULT_SEARCH_PARAMS = {"ef": 128, "nprobe": 16}


def _quote(value: str) -> str:
    # json.dumps yields a double-quoted literal with escapes Milvus accepts.
    return json.dumps(str(value), ensure_ascii=False)


def build_expr_for_entity_types(entity_types: Optional[Iterable[str]]) -> Optional[str]:
    """
    Build `entity_type in [...]` filter; None (no filter) when no type is given.

    Example:
        build_expr_for_entity_types(["POLITICIAN", "PARTY"])
        -> 'entity_type in ["POLITICIAN", "PARTY"]'
    """
    types = [str(t).strip() for t in (entity_types or []) if str(t or "").strip()]
    if not types:
        return None
    return f"{ENTITY_TYPE_FIELD} in [{', '.join(_quote(t) for t in types)}]"
