"""Qdrant vector database backend."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence
from qdrant_client import QdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    Fusion,
    FusionQuery,
    MatchValue,
    Modifier,
    PayloadSchemaType,
    PointStruct,
    Prefetch,
    SparseVectorParams,
    VectorParams,
)
from qdrant_client.models import SparseVector as QdrantSparseVector

from ..core.models import SparseVector
from .base import DENSE_VECTOR, SPARSE_VECTOR, PointRecord, PrefetchRequest, StoredPoint, VectorStore

logger = logging.getLogger(__name__)


def build_filter(filters: Optional[Dict[str, str]]) -> Optional[Filter]:
    if not filters:
        return None
    return Filter(
        must=[
            FieldCondition(key=key, match=MatchValue(value=value))
            for key, value in filters.items()
        ]
    )


def _is_already_exists(e: Exception) -> bool:
    msg = str(e).lower()
    return "already exists" in msg or "409" in msg


class QdrantVectorStore(VectorStore):

    def __init__(
        self,
        collection_name: str,
        url: Optional[str] = None,
        host: str = "localhost",
        port: int = 6333,
        timeout: int = 60,
        client: Optional[QdrantClient] = None,
    ):
        self.collection_name = collection_name
        if client is not None:
            self.client = client
        elif url:
            self.client = QdrantClient(url=url, timeout=timeout)
        else:
            self.client = QdrantClient(host=host, port=port, timeout=timeout)

    def _get_collection_vector_dim(self) -> Optional[int]:
        collection_info = self.client.get_collection(collection_name=self.collection_name)
        vectors = collection_info.config.params.vectors
        params = vectors.get(DENSE_VECTOR) if isinstance(vectors, dict) else None
        return params.size if params is not None else None

    def ensure_collection(self, dense_dim: int, sparse: bool = True) -> None:
        if self.client.collection_exists(collection_name=self.collection_name):
            existing_dim = self._get_collection_vector_dim()
            if existing_dim is not None and existing_dim != dense_dim:
                raise ValueError(
                    f"Collection '{self.collection_name}' exists with dimension {existing_dim}, "
                    f"but the embedder produces dimension {dense_dim}. Please delete the collection and re-index."
                )
            return

        sparse_config = {SPARSE_VECTOR: SparseVectorParams(modifier=Modifier.IDF)} if sparse else None
        try:
            self.client.create_collection(
                collection_name=self.collection_name,
                vectors_config={DENSE_VECTOR: VectorParams(size=dense_dim, distance=Distance.COSINE)},
                sparse_vectors_config=sparse_config,
            )
            logger.info(f"Created collection '{self.collection_name}' (dense={dense_dim}, sparse={sparse})")
        except Exception as e:
            if not _is_already_exists(e):
                raise
            logger.debug(f"Collection '{self.collection_name}' already exists")

    def ensure_payload_index(self, field: str) -> None:
        try:
            self.client.create_payload_index(
                collection_name=self.collection_name,
                field_name=field,
                field_schema=PayloadSchemaType.KEYWORD,
            )
        except Exception as e:
            if not _is_already_exists(e):
                raise

    def upsert_points(self, points: Sequence[PointRecord], wait: bool = True) -> None:
        if not points:
            logger.warning("No points to upsert")
            return

        structs = [
            PointStruct(
                id=p.id,
                vector={
                    DENSE_VECTOR: p.dense,
                    SPARSE_VECTOR: QdrantSparseVector(indices=p.sparse.indices, values=p.sparse.values),
                },
                payload=p.payload,
            )
            for p in points
        ]
        self.client.upsert(collection_name=self.collection_name, points=structs, wait=wait)
        logger.debug(f"Upserted {len(structs)} points into '{self.collection_name}'")

    def delete_by_filter(self, filters: Dict[str, str], wait: bool = True) -> None:
        if not filters:
            raise ValueError("Refusing to delete with an empty filter")
        self.client.delete(
            collection_name=self.collection_name,
            points_selector=build_filter(filters),
            wait=wait,
        )
        logger.debug(f"Deleted points matching {filters} from '{self.collection_name}'")

    def retrieve(self, ids: Sequence[str]) -> List[StoredPoint]:
        if not ids:
            return []
        records = self.client.retrieve(
            collection_name=self.collection_name,
            ids=list(ids),
            with_payload=True,
            with_vectors=False,
        )
        return [StoredPoint(id=str(r.id), payload=r.payload or {}) for r in records]

    def hybrid_query(self, prefetches: Sequence[PrefetchRequest], limit: int) -> List[StoredPoint]:
        prefetch = []
        for req in prefetches:
            if isinstance(req.vector, SparseVector):
                query = QdrantSparseVector(indices=req.vector.indices, values=req.vector.values)
            else:
                query = req.vector
            prefetch.append(Prefetch(
                query=query,
                using=req.using,
                limit=req.limit,
                filter=build_filter(req.filters),
            ))

        try:
            results = self.client.query_points(
                collection_name=self.collection_name,
                prefetch=prefetch,
                query=FusionQuery(fusion=Fusion.RRF),
                limit=limit,
                with_payload=True,
                with_vectors=False,
            )
        except Exception as e:
            logger.error(f"Error querying collection '{self.collection_name}': {e}")
            raise

        return [
            StoredPoint(id=str(p.id), payload=p.payload or {}, score=p.score)
            for p in results.points
        ]
