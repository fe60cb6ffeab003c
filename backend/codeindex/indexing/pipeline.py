"""Per-file indexing: chunk, contextualize, embed, vectorize, upsert."""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Callable, List, Optional, TypeVar

import backoff

from ..core.bm25 import text_to_sparse
from ..core.chunking import Chunker, LanguageChunker
from ..core.embeddings import Embedder
from ..core.exceptions import EmbeddingError
from ..core.models import MAX_CHUNK_CHARS, Chunk, make_point_id
from ..core.redact import redact_secrets
from ..llm.contextualize import Contextualizer
from ..storage.base import PointRecord, VectorStore
from ..utils import read_text

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclasses.dataclass
class FileResult:
    """Outcome of indexing one file. ``error`` is set when the file was skipped."""

    file_path: str
    chunks_indexed: int = 0
    contexts_skipped: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def embedding_text(chunk: Chunk, context: str) -> str:
    """Text sent to the embedder: optional context, a locator line, then the code."""
    locator = f"{chunk.language} {chunk.layer} {chunk.file_path}"
    body = f"{locator}\n\n{chunk.content}"
    return f"{context}\n\n{body}" if context else body


def sparse_text(chunk: Chunk) -> str:
    """Text for the BM25 vector: code plus symbol names and annotations."""
    parts = [chunk.content, chunk.symbol_name or "", chunk.parent_symbol or "", *chunk.annotations]
    return " ".join(p for p in parts if p)


def chunk_payload(repo: str, chunk: Chunk, context: str) -> dict:
    return {
        "repo": repo,
        "text": redact_secrets(chunk.content),
        "context": context,
        "file_path": chunk.file_path,
        "language": chunk.language,
        "layer": chunk.layer,
        "start_line": chunk.start_line,
        "end_line": chunk.end_line,
        "symbol_name": chunk.symbol_name,
        "parent_symbol": chunk.parent_symbol,
        "chunk_type": chunk.chunk_type,
        "annotations": list(chunk.annotations),
        "chunk_index": chunk.chunk_index,
        "total_chunks": chunk.total_chunks,
        "header_chunk_id": chunk.header_chunk_id,
    }


def needs_context(chunks: List[Chunk]) -> bool:
    """Single small-chunk files embed the whole file already; skip the LLM."""
    return not (len(chunks) == 1 and len(chunks[0].content) <= MAX_CHUNK_CHARS)


class FileIndexingPipeline:
    """Indexes one file at a time into a ``VectorStore``.

    Embedding and upsert calls are retried with exponential backoff; any
    other failure skips the file and is reported in its ``FileResult``.
    """

    def __init__(
        self,
        embedder: Embedder,
        store: VectorStore,
        chunker: Optional[Chunker] = None,
        contextualizer: Optional[Contextualizer] = None,
        retry_attempts: int = 3,
        retry_base_seconds: float = 1.0,
    ):
        self.embedder = embedder
        self.store = store
        self.chunker = chunker or LanguageChunker()
        self.contextualizer = contextualizer
        self.retry_attempts = retry_attempts
        self.retry_base_seconds = retry_base_seconds

    def _with_retry(self, fn: Callable[[], T], what: str, file_path: str) -> T:
        def _log_backoff(details):
            logger.warning(
                f"{what} failed for {file_path} (attempt {details['tries']}/{self.retry_attempts}), "
                f"retrying in {details['wait']:.1f}s: {details['exception']}"
            )

        def _log_giveup(details):
            logger.warning(f"{what} failed for {file_path} after {details['tries']} attempts")

        retrying = backoff.on_exception(
            backoff.expo,
            Exception,
            max_tries=self.retry_attempts,
            factor=self.retry_base_seconds,
            jitter=None,
            on_backoff=_log_backoff,
            on_giveup=_log_giveup,
        )(fn)
        return retrying()

    def prepare_chunks(self, repo: str, file_path: str, content: str) -> List[Chunk]:
        """Chunk a file and point every non-header chunk at its header chunk."""
        chunks = self.chunker.chunk(content, file_path)
        header = next((c for c in chunks if c.chunk_type == "header"), None)
        if header is not None:
            header_id = make_point_id(repo, file_path, header.start_line)
            for c in chunks:
                if c is not header:
                    c.header_chunk_id = header_id
        return chunks

    def index_file(self, repo: str, repo_root: Path, file_path: str, purge_first: bool = False) -> FileResult:
        """Index one repository-relative file.

        With ``purge_first`` the file's existing points are deleted before
        anything is written, so removed or renamed symbols do not survive.
        """
        try:
            return self._index_file(repo, repo_root, file_path, purge_first)
        except Exception as e:
            logger.warning(f"Skipping {file_path}: {e}")
            return FileResult(file_path=file_path, error=str(e))

    def _index_file(self, repo: str, repo_root: Path, file_path: str, purge_first: bool) -> FileResult:
        # purge before reading so an unreadable file leaves no stale points
        if purge_first:
            self.store.delete_by_filter({"repo": repo, "file_path": file_path})

        content = read_text(repo_root / file_path)

        chunks = self.prepare_chunks(repo, file_path, content)
        if not chunks:
            return FileResult(file_path=file_path)

        contexts_skipped = 0
        if self.contextualizer is not None and needs_context(chunks):
            contexts = self.contextualizer.contextualize_chunks(content, chunks, file_path, chunks[0].language)
        else:
            contexts = [""] * len(chunks)
            contexts_skipped = len(chunks)

        texts = [embedding_text(c, ctx) for c, ctx in zip(chunks, contexts)]
        vectors = self._with_retry(lambda: self.embedder.embed(texts), "Embedding", file_path)
        if len(vectors) != len(chunks):
            raise EmbeddingError(f"Expected {len(chunks)} embeddings for {file_path}, got {len(vectors)}")

        points = [
            PointRecord(
                id=make_point_id(repo, file_path, c.start_line),
                dense=vec,
                sparse=text_to_sparse(sparse_text(c)),
                payload=chunk_payload(repo, c, ctx),
            )
            for c, ctx, vec in zip(chunks, contexts, vectors)
        ]
        self._with_retry(lambda: self.store.upsert_points(points, wait=True), "Upsert", file_path)

        logger.debug(f"Indexed {file_path}: {len(points)} chunks")
        return FileResult(file_path=file_path, chunks_indexed=len(points), contexts_skipped=contexts_skipped)
