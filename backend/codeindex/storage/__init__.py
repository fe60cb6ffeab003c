"""Vector storage backends (Qdrant only) and the checkpoint store."""

from .base import DENSE_VECTOR, SPARSE_VECTOR, PointRecord, PrefetchRequest, StoredPoint, VectorStore
from .checkpoints import CheckpointStore, SqlCheckpointStore, make_checkpoint_store
from .factory import make_vector_store
from .qdrant import QdrantVectorStore

__all__ = [
    "DENSE_VECTOR",
    "SPARSE_VECTOR",
    "PointRecord",
    "PrefetchRequest",
    "StoredPoint",
    "VectorStore",
    "QdrantVectorStore",
    "make_vector_store",
    "CheckpointStore",
    "SqlCheckpointStore",
    "make_checkpoint_store",
]
