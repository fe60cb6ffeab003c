"""Fakes for the embedder, vector store, text generator, source control and checkpoint ports."""

import hashlib
import threading
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from codeindex.core.embeddings import Embedder
from codeindex.llm.client import LLMResponse, TextGenerator
from codeindex.storage.base import PointRecord, StoredPoint, VectorStore
from codeindex.storage.checkpoints import CheckpointStore
from codeindex.utils.git_utils import SourceControl


class FakeEmbedder(Embedder):
    """Deterministic 8-dimensional vectors; can be told to fail the first N calls
    or every call whose batch contains ``fail_on``."""

    dimension = 8

    def __init__(self, fail_times: int = 0, fail_always: bool = False, fail_on: Optional[str] = None):
        self.calls: List[List[str]] = []
        self.fail_times = fail_times
        self.fail_always = fail_always
        self.fail_on = fail_on
        self._lock = threading.Lock()

    def embed(self, texts):
        with self._lock:
            self.calls.append(list(texts))
            if self.fail_always or self.fail_times > 0:
                self.fail_times -= 1
                raise ConnectionError("embedding provider unavailable")
            if self.fail_on and any(self.fail_on in t for t in texts):
                raise ConnectionError(f"embedding rejected input containing {self.fail_on}")
        out = []
        for t in texts:
            digest = hashlib.sha256(t.encode("utf-8")).digest()
            out.append([b / 255.0 for b in digest[:8]])
        return out


class FakeVectorStore(VectorStore):
    """In-memory store recording every operation in ``ops``."""

    def __init__(self):
        self.points: Dict[str, PointRecord] = {}
        self.ops: List[tuple] = []
        self.collections: List[tuple] = []
        self.payload_indexes: List[str] = []
        self.fail_upserts = 0
        self.fail_query = False
        self.query_results: Optional[List[StoredPoint]] = None
        self.prefetches = []
        self._lock = threading.Lock()

    def ensure_collection(self, dense_dim, sparse=True):
        self.collections.append((dense_dim, sparse))
        self.ops.append(("ensure_collection", dense_dim))

    def ensure_payload_index(self, field):
        self.payload_indexes.append(field)

    def upsert_points(self, points, wait=True):
        with self._lock:
            if self.fail_upserts > 0:
                self.fail_upserts -= 1
                raise ConnectionError("upsert failed")
            self.ops.append(("upsert", tuple(p.payload["file_path"] for p in points)))
            for p in points:
                self.points[p.id] = p

    def delete_by_filter(self, filters, wait=True):
        with self._lock:
            self.ops.append(("delete", dict(filters)))
            for pid in [pid for pid, p in self.points.items() if _matches(p.payload, filters)]:
                del self.points[pid]

    def retrieve(self, ids):
        return [StoredPoint(id=i, payload=self.points[i].payload) for i in ids if i in self.points]

    def hybrid_query(self, prefetches, limit):
        self.prefetches.append(list(prefetches))
        if self.fail_query:
            raise ConnectionError("qdrant unreachable")
        if self.query_results is not None:
            return self.query_results[:limit]
        filters = prefetches[0].filters if prefetches else {}
        hits = [
            StoredPoint(id=pid, payload=p.payload, score=1.0)
            for pid, p in self.points.items()
            if _matches(p.payload, filters)
        ]
        return hits[:limit]

    def files(self, repo: str) -> List[str]:
        return sorted({p.payload["file_path"] for p in self.points.values() if p.payload["repo"] == repo})


def _matches(payload, filters):
    return all(payload.get(k) == v for k, v in filters.items())


class FakeGenerator(TextGenerator):

    def __init__(self, content: str = "", error: Optional[str] = None, raises: bool = False):
        self.content = content
        self.error = error
        self.raises = raises
        self.prompts: List[str] = []
        self.calls: List[dict] = []

    def generate(self, prompt, max_tokens, temperature):
        self.prompts.append(prompt)
        self.calls.append({"max_tokens": max_tokens, "temperature": temperature})
        if self.raises:
            raise RuntimeError("boom")
        if self.error:
            return LLMResponse(finish_reason="error", time_taken=0.0, error=self.error)
        return LLMResponse(content=self.content, finish_reason="stop", time_taken=0.0)


class FakeSourceControl(SourceControl):

    def __init__(self, changed=None, deleted=None, head="def456"):
        self.changed = list(changed or [])
        self.deleted = list(deleted or [])
        self.head = head
        self.since_refs: List[Optional[str]] = []

    def changed_files(self, repo_path, since_ref=None):
        self.since_refs.append(since_ref)
        return list(self.changed)

    def deleted_files(self, repo_path, since_ref=None):
        return list(self.deleted)

    def head_commit(self, repo_path):
        return self.head


class MemoryCheckpointStore(CheckpointStore):

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.values = dict(initial or {})

    def get(self, repo_name):
        return self.values.get(repo_name)

    def set(self, repo_name, commit_sha):
        self.values[repo_name] = commit_sha


def write_file(root: Path, rel: str, content: str) -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def store():
    return FakeVectorStore()


@pytest.fixture
def checkpoints():
    return MemoryCheckpointStore()
