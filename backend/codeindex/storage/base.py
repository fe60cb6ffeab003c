"""Abstract vector storage interface."""

from __future__ import annotations

import dataclasses
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Union

from ..core.models import SparseVector

DENSE_VECTOR = "dense"
SPARSE_VECTOR = "bm25"


@dataclasses.dataclass
class PointRecord:
    """A point to upsert: id, named dense and sparse vectors, payload."""

    id: str
    dense: List[float]
    sparse: SparseVector
    payload: Dict[str, Any]


@dataclasses.dataclass
class PrefetchRequest:
    """One ranked candidate list feeding a fused hybrid query."""

    vector: Union[List[float], SparseVector]
    using: str
    limit: int
    filters: Dict[str, str] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass
class StoredPoint:
    id: str
    payload: Dict[str, Any]
    score: Optional[float] = None


class VectorStore(ABC):
    """Abstract base class for vector storage backends."""

    @abstractmethod
    def ensure_collection(self, dense_dim: int, sparse: bool = True) -> None:
        """Create the collection if missing. An existing collection is success."""
        pass

    @abstractmethod
    def ensure_payload_index(self, field: str) -> None:
        """Create a keyword index on a payload field if missing."""
        pass

    @abstractmethod
    def upsert_points(self, points: Sequence[PointRecord], wait: bool = True) -> None:
        """Insert or replace points in one call."""
        pass

    @abstractmethod
    def delete_by_filter(self, filters: Dict[str, str], wait: bool = True) -> None:
        """Delete every point whose payload matches all ``key == value`` pairs."""
        pass

    @abstractmethod
    def retrieve(self, ids: Sequence[str]) -> List[StoredPoint]:
        """Fetch points by id with their payloads."""
        pass

    @abstractmethod
    def hybrid_query(self, prefetches: Sequence[PrefetchRequest], limit: int) -> List[StoredPoint]:
        """Run all prefetches and fuse their rankings with reciprocal rank fusion."""
        pass
