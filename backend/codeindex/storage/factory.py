"""Factory for creating vector store instances (Qdrant only)."""

from __future__ import annotations

from typing import Dict, Optional

from .base import VectorStore
from .qdrant import QdrantVectorStore


def make_vector_store(cfg: Dict, collection_name: Optional[str] = None) -> VectorStore:
    vector_store_cfg = cfg.get("vector_store", {})
    qdrant_cfg = vector_store_cfg.get("qdrant", {})

    return QdrantVectorStore(
        collection_name=collection_name or vector_store_cfg.get("collection", "code-chunks"),
        url=qdrant_cfg.get("url") or None,
        host=qdrant_cfg.get("host", "localhost"),
        port=int(qdrant_cfg.get("port", 6333)),
        timeout=int(qdrant_cfg.get("timeout", 60)),
    )
