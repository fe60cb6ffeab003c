"""Data models for codeindex."""

from __future__ import annotations

import dataclasses
import hashlib
import uuid
from typing import Any, Dict, List, Optional


MAX_CHUNK_CHARS = 3000


@dataclasses.dataclass
class Chunk:
    """A contiguous span of a source file treated as one semantic unit."""

    content: str
    file_path: str
    language: str
    layer: str
    start_line: int
    end_line: int
    symbol_name: Optional[str] = None
    parent_symbol: Optional[str] = None
    chunk_type: str = "file"
    annotations: List[str] = dataclasses.field(default_factory=list)
    chunk_index: int = 0
    total_chunks: int = 1
    header_chunk_id: Optional[str] = None


@dataclasses.dataclass
class SparseVector:
    """Parallel arrays of hashed term indices and term frequencies."""

    indices: List[int] = dataclasses.field(default_factory=list)
    values: List[float] = dataclasses.field(default_factory=list)


@dataclasses.dataclass(frozen=True)
class RepoConfig:
    name: str
    path: str
    branch: str = "main"


@dataclasses.dataclass
class IndexStats:
    """Aggregate counters for one indexing run."""

    files_processed: int = 0
    chunks_indexed: int = 0
    contexts_skipped: int = 0
    files_failed: int = 0
    files_deleted: int = 0
    cancelled: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


def make_point_id(repo: str, file_path: str, start_line: int) -> str:
    """Deterministic UUID for a chunk, derived from its repository, path and start line."""
    digest = hashlib.sha256(f"{repo}:{file_path}:{start_line}".encode("utf-8")).hexdigest()
    return str(uuid.UUID(hex=digest[:32]))
