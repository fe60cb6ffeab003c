"""Indexing functionality for codeindex."""

from .base import Indexer
from .discovery import is_indexable, iter_source_files
from .indexer import DefaultIndexer, RepoRunResult, index_repositories, make_indexer
from .pipeline import FileIndexingPipeline, FileResult

__all__ = [
    "Indexer",
    "DefaultIndexer",
    "FileIndexingPipeline",
    "FileResult",
    "RepoRunResult",
    "index_repositories",
    "is_indexable",
    "iter_source_files",
    "make_indexer",
]
