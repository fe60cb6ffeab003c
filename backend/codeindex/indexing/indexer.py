"""Code indexing logic.

Full and incremental runs share one execution path: purge whatever the
scope filter matches, then run the per-file pipeline over a file set with a
bounded worker pool. They differ only in how the file set and the purge
scope are computed.
"""

from __future__ import annotations

import dataclasses
import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from ..core.chunking import SOURCE_EXTENSIONS
from ..core.embeddings import Embedder, make_embedder
from ..core.exceptions import RepositoryNotFoundError, SourceControlError
from ..core.models import IndexStats, RepoConfig
from ..llm.client import make_text_generator
from ..llm.contextualize import Contextualizer
from ..storage import CheckpointStore, VectorStore, make_checkpoint_store, make_vector_store
from ..utils.git_utils import GitSourceControl, SourceControl
from .base import Indexer
from .discovery import is_indexable, iter_source_files, load_ignore_patterns
from .pipeline import FileIndexingPipeline, FileResult

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class DefaultIndexer(Indexer):

    def __init__(
        self,
        embedder: Embedder,
        store: VectorStore,
        checkpoints: CheckpointStore,
        source_control: SourceControl,
        contextualizer: Optional[Contextualizer] = None,
        concurrency: int = 3,
        max_file_size_kb: int = 512,
        retry_attempts: int = 3,
        retry_base_seconds: float = 1.0,
    ):
        self.embedder = embedder
        self.store = store
        self.checkpoints = checkpoints
        self.source_control = source_control
        self.concurrency = max(1, concurrency)
        self.max_file_size_kb = max_file_size_kb
        self.pipeline = FileIndexingPipeline(
            embedder,
            store,
            contextualizer=contextualizer,
            retry_attempts=retry_attempts,
            retry_base_seconds=retry_base_seconds,
        )

    def index(
        self,
        repo: RepoConfig,
        incremental: bool = False,
        cancel_event: Optional[threading.Event] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> IndexStats:
        if incremental:
            return self.incremental_reindex(repo, cancel_event=cancel_event, progress=progress)
        return self.full_reindex(repo, cancel_event=cancel_event, progress=progress)

    def _require_root(self, repo: RepoConfig) -> Path:
        root = Path(repo.path)
        if not root.is_dir():
            raise RepositoryNotFoundError(repo.path)
        return root

    def bootstrap(self) -> None:
        """Ensure the hybrid collection and its payload indexes exist."""
        self.store.ensure_collection(self.embedder.dimension, sparse=True)
        self.store.ensure_payload_index("repo")
        self.store.ensure_payload_index("file_path")

    def full_reindex(
        self,
        repo: RepoConfig,
        cancel_event: Optional[threading.Event] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> IndexStats:
        """Replace every point of ``repo`` with a fresh index of its source files."""
        root = self._require_root(repo)
        files = iter_source_files(root, self.max_file_size_kb)
        if not files:
            logger.info(f"No source files found in {repo.name} ({root})")
            return IndexStats()

        logger.info(f"Full reindex of {repo.name}: {len(files)} files")
        self.bootstrap()
        stats = self._execute(
            repo.name, root, files,
            scope_filters={"repo": repo.name},
            purge_each_file=False,
            cancel_event=cancel_event,
            progress=progress,
        )
        if not stats.cancelled:
            try:
                self._advance_checkpoint(repo, root)
            except SourceControlError as e:
                logger.warning(f"No checkpoint stored for {repo.name}, next incremental run uses the lookback window: {e}")
        return stats

    def incremental_reindex(
        self,
        repo: RepoConfig,
        cancel_event: Optional[threading.Event] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> IndexStats:
        """Re-index files changed since the stored checkpoint and purge deleted ones."""
        root = self._require_root(repo)
        since = self.checkpoints.get(repo.name)
        if since:
            logger.info(f"Incremental reindex of {repo.name} since {since}")
        else:
            logger.info(f"Incremental reindex of {repo.name}: no checkpoint, using lookback window")

        changed = self.source_control.changed_files(str(root), since)
        deleted = self.source_control.deleted_files(str(root), since)
        to_index, to_delete = self._resolve_changes(root, changed, deleted)

        stats = IndexStats()
        if to_index or to_delete:
            self.bootstrap()
            stats.files_deleted, delete_failures = self._purge_deleted(repo.name, to_delete)
            run = self._execute(
                repo.name, root, to_index,
                scope_filters=None,
                purge_each_file=True,
                cancel_event=cancel_event,
                progress=progress,
            )
            run.files_deleted = stats.files_deleted
            run.files_failed += delete_failures
            stats = run
        else:
            logger.info(f"No changed files in {repo.name}")

        if stats.cancelled:
            logger.info(f"Run for {repo.name} cancelled, checkpoint not advanced")
            return stats
        self._advance_checkpoint(repo, root)
        return stats

    def _resolve_changes(self, root: Path, changed: Iterable[str], deleted: Iterable[str]):
        """Split reported paths by what is on disk now; filter by discovery rules.

        A source path that still exists but no longer passes the discovery
        rules (ignored, oversized, binary, blocked) is purged like a deletion.
        """
        patterns = load_ignore_patterns(root)
        to_index: List[str] = []
        to_delete: List[str] = []
        for rel in dict.fromkeys([*changed, *deleted]):
            if (root / rel).exists() and is_indexable(root, rel, patterns, self.max_file_size_kb):
                to_index.append(rel)
            elif os.path.splitext(rel)[1].lower() in SOURCE_EXTENSIONS:
                if (root / rel).exists():
                    logger.debug(f"Purging changed file now outside discovery rules: {rel}")
                to_delete.append(rel)
        return to_index, to_delete

    def _purge_deleted(self, repo_name: str, paths: Sequence[str]):
        deleted = failed = 0
        for rel in paths:
            try:
                self.store.delete_by_filter({"repo": repo_name, "file_path": rel})
                deleted += 1
            except Exception as e:
                logger.warning(f"Failed to purge points for deleted file {rel}: {e}")
                failed += 1
        if deleted:
            logger.info(f"Purged points for {deleted} deleted files in {repo_name}")
        return deleted, failed

    def _advance_checkpoint(self, repo: RepoConfig, root: Path) -> None:
        head = self.source_control.head_commit(str(root))
        self.checkpoints.set(repo.name, head)
        logger.info(f"Checkpoint for {repo.name} advanced to {head}")

    def _execute(
        self,
        repo_name: str,
        root: Path,
        files: Sequence[str],
        scope_filters: Optional[Dict[str, str]],
        purge_each_file: bool,
        cancel_event: Optional[threading.Event] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> IndexStats:
        if scope_filters:
            # must complete before any upsert; a failure here aborts the run
            self.store.delete_by_filter(scope_filters)
            logger.info(f"Purged existing points matching {scope_filters}")

        def run_one(rel: str) -> Optional[FileResult]:
            if cancel_event is not None and cancel_event.is_set():
                return None
            return self.pipeline.index_file(repo_name, root, rel, purge_first=purge_each_file)

        results: List[Optional[FileResult]] = []
        with ThreadPoolExecutor(max_workers=self.concurrency) as pool:
            futures = [pool.submit(run_one, rel) for rel in files]
            for done, future in enumerate(as_completed(futures), start=1):
                results.append(future.result())
                if progress is not None:
                    progress(done, len(futures))

        stats = fold_results(results)
        logger.info(
            f"Indexed {repo_name}: {stats.files_processed} files, {stats.chunks_indexed} chunks, "
            f"{stats.files_failed} failed, {stats.contexts_skipped} contexts skipped"
        )
        return stats


def fold_results(results: Iterable[Optional[FileResult]]) -> IndexStats:
    """Reduce per-file results into run totals. ``None`` marks a file skipped by cancellation."""
    stats = IndexStats()
    for r in results:
        if r is None:
            stats.cancelled = True
        elif r.ok:
            stats.files_processed += 1
            stats.chunks_indexed += r.chunks_indexed
            stats.contexts_skipped += r.contexts_skipped
        else:
            stats.files_failed += 1
    return stats


def make_indexer(cfg: Dict) -> DefaultIndexer:
    """Create an indexer wired to the configured providers."""
    idx_cfg = cfg.get("indexing", {})
    contextualizer = None
    if idx_cfg.get("contextualize", True):
        generator = make_text_generator(cfg)
        if generator is not None:
            contextualizer = Contextualizer(generator)
        else:
            logger.info("No LLM endpoint configured, chunks are embedded without context")

    return DefaultIndexer(
        embedder=make_embedder(cfg),
        store=make_vector_store(cfg),
        checkpoints=make_checkpoint_store(cfg),
        source_control=GitSourceControl(lookback_hours=int(idx_cfg.get("lookback_hours", 24))),
        contextualizer=contextualizer,
        concurrency=int(idx_cfg.get("concurrency", 3)),
        max_file_size_kb=int(cfg.get("max_file_size_kb", 512)),
        retry_attempts=int(idx_cfg.get("retry_attempts", 3)),
        retry_base_seconds=float(idx_cfg.get("retry_base_seconds", 1.0)),
    )


@dataclasses.dataclass
class RepoRunResult:
    repo: str
    stats: Optional[IndexStats] = None
    error: Optional[str] = None


def index_repositories(
    indexer: Indexer,
    repos: Sequence[RepoConfig],
    incremental: bool = False,
) -> List[RepoRunResult]:
    """Index each repository in turn; one repository failing does not stop the others."""
    out: List[RepoRunResult] = []
    for repo in repos:
        try:
            stats = indexer.index(repo, incremental=incremental)
            out.append(RepoRunResult(repo=repo.name, stats=stats))
        except Exception as e:
            logger.error(f"Indexing {repo.name} failed: {e}")
            out.append(RepoRunResult(repo=repo.name, error=str(e)))
    return out
