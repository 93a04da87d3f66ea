# src/poligraph_rag/backend/kb/client.py

"""
[Responsibility] MilvusClient: connection lifecycle and collection handles for the chat-embedding index.
[Boundary] No search/normalization logic (see kb/repo.py); never creates collections or indexes.
[Upstream] services/runtime.py builds it once per process from settings.
[Downstream] kb/repo.py MilvusRepo; api/routers/health.py healthcheck.
"""

from __future__ import annotations

import asyncio
import os
from typing import Any, Dict, Optional

from pymilvus import Collection, connections, utility


DEFAULT_ALIAS = "poligraph"


def _env(key: str) -> Optional[str]:
    raw = os.getenv(key, "").strip()
    return raw or None


class MilvusClient:
    """
    Thin wrapper over the pymilvus ORM connection (`connections` + `Collection`).

    Collections are loaded lazily on first access and cached per client.
    """

    def __init__(
        self,
        *,
        uri: Optional[str] = None,
        host: Optional[str] = None,
        port: Optional[str] = None,
        token: Optional[str] = None,
        alias: str = DEFAULT_ALIAS,
    ) -> None:
        if not (uri or host):
            raise ValueError("milvus uri or host is required")
        self._uri = uri
        self._host = host
        self._port = port or "19530"
        self._token = token
        self._alias = alias
        self._collections: Dict[str, Collection] = {}
        self._lock = asyncio.Lock()
        self._connected = False

    @classmethod
    def from_env(cls, *, force_reconnect: bool = False) -> "MilvusClient":
        """
        Build from settings (.env supported), falling back to raw environment variables.
        """
        from poligraph_rag.config import settings as _settings

        client = cls(
            uri=(_settings.MILVUS_URI or _env("MILVUS_URI")),
            host=(_settings.MILVUS_HOST or _env("MILVUS_HOST")),
            port=(_settings.MILVUS_PORT or _env("MILVUS_PORT")),
            token=(_settings.MILVUS_TOKEN or _env("MILVUS_TOKEN")),
        )
        if force_reconnect:
            client.disconnect()
        return client

    @property
    def alias(self) -> str:
        return self._alias

    def _connect_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"alias": self._alias}
        if self._uri:
            kwargs["uri"] = self._uri
        else:
            kwargs["host"] = self._host
            kwargs["port"] = self._port
        if self._token:
            kwargs["token"] = self._token
        return kwargs

    def _ensure_connected(self) -> None:
        if self._connected and connections.has_connection(self._alias):
            return
        connections.connect(**self._connect_kwargs())
        self._connected = True

    async def get_collection(self, name: str) -> Collection:
        """Loaded Collection handle (connects on first use)."""
        key = str(name).strip()
        if not key:
            raise ValueError("collection name is required")
        async with self._lock:
            cached = self._collections.get(key)
            if cached is not None:
                return cached
            await asyncio.to_thread(self._ensure_connected)
            col = Collection(key, using=self._alias)
            await asyncio.to_thread(col.load)
            self._collections[key] = col
            return col

    async def healthcheck(self) -> bool:
        """Round-trip to the server (lists collections)."""
        await asyncio.to_thread(self._ensure_connected)
        await asyncio.to_thread(utility.list_collections, using=self._alias)
        return True

    def disconnect(self) -> None:
        self._collections.clear()
        if connections.has_connection(self._alias):
            connections.disconnect(self._alias)
        self._connected = False
