"""Core functionality for codeindex."""

from .models import Chunk, IndexStats, RepoConfig, SparseVector, make_point_id
from .chunking import Chunker, LanguageChunker, chunk_file, detect_language, infer_layer
from .bm25 import text_to_sparse, tokenize
from .redact import redact_secrets
from .embeddings import Embedder, SentenceTransformersEmbedder, OpenAICompatibleEmbedder, make_embedder

__all__ = [
    "Chunk",
    "IndexStats",
    "RepoConfig",
    "SparseVector",
    "make_point_id",
    "Chunker",
    "LanguageChunker",
    "chunk_file",
    "detect_language",
    "infer_layer",
    "text_to_sparse",
    "tokenize",
    "redact_secrets",
    "Embedder",
    "SentenceTransformersEmbedder",
    "OpenAICompatibleEmbedder",
    "make_embedder",
]
