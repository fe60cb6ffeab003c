"""Embedding models for semantic search.

All embedders redact secrets from their inputs before the text leaves the
process.
"""

from __future__ import annotations

import functools
import logging
import os
from typing import Dict, List, Optional

import requests
import tiktoken

from .exceptions import EmbeddingError
from .redact import redact_secrets

logger = logging.getLogger(__name__)


@functools.lru_cache(maxsize=1)
def _encoder() -> "tiktoken.Encoding":
    return tiktoken.get_encoding("cl100k_base")


def truncate_to_tokens(text: str, max_tokens: int) -> str:
    """Cut ``text`` to at most ``max_tokens`` cl100k tokens."""
    enc = _encoder()
    tokens = enc.encode(text, disallowed_special=())
    if len(tokens) <= max_tokens:
        return text
    return enc.decode(tokens[:max_tokens])


class Embedder:
    """Abstract base class for embedding models."""

    dimension: int = 0

    def embed(self, texts: List[str]) -> List[List[float]]:
        """Embed multiple texts into vectors."""
        raise NotImplementedError


class SentenceTransformersEmbedder(Embedder):
    """Embedder using a local SentenceTransformers model."""

    def __init__(self, model_name: str) -> None:
        from sentence_transformers import SentenceTransformer  # type: ignore
        self.model = SentenceTransformer(model_name)
        self.dimension = int(self.model.get_sentence_embedding_dimension())

    def embed(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        clean = [redact_secrets(t) for t in texts]
        arr = self.model.encode(clean, normalize_embeddings=True, show_progress_bar=False)
        return [row.tolist() for row in arr]


class OpenAICompatibleEmbedder(Embedder):
    """Embedder calling an OpenAI-compatible ``/embeddings`` endpoint."""

    def __init__(
        self,
        api_base: str,
        model: str,
        dimension: int,
        api_key: Optional[str] = None,
        timeout: float = 60,
        max_input_tokens: int = 8000,
    ) -> None:
        self.api_base = api_base.rstrip("/")
        self.model = model
        self.dimension = dimension
        self.timeout = timeout
        self.max_input_tokens = max_input_tokens
        self.headers = {"Content-Type": "application/json"}
        if api_key:
            self.headers["Authorization"] = f"Bearer {api_key}"

    def embed(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        clean = [truncate_to_tokens(redact_secrets(t), self.max_input_tokens) for t in texts]
        response = requests.post(
            f"{self.api_base}/embeddings",
            headers=self.headers,
            json={"model": self.model, "input": clean},
            timeout=self.timeout,
        )
        response.raise_for_status()
        data = response.json().get("data") or []
        if len(data) != len(clean):
            raise EmbeddingError(
                f"Embedding provider returned {len(data)} vectors for {len(clean)} inputs"
            )
        data = sorted(data, key=lambda d: d.get("index", 0))
        return [d["embedding"] for d in data]


def make_embedder(cfg: Dict) -> Embedder:
    """Create embedder from config.

    Args:
        cfg: Configuration dictionary

    Returns:
        Embedder instance

    Raises:
        ValueError: If the backend is unknown or its dependencies are missing
    """
    emb_cfg = cfg.get("embedding", {})
    backend = str(emb_cfg.get("backend", "sentence_transformers")).strip().lower()

    logger.info(f"Using embedding backend: {backend}")
    if backend == "openai_compatible":
        return OpenAICompatibleEmbedder(
            api_base=emb_cfg.get("api_base", "https://openrouter.ai/api/v1"),
            model=emb_cfg.get("model", "qwen/qwen3-embedding-8b"),
            dimension=int(emb_cfg.get("dimensions", 4096)),
            api_key=os.getenv("EMBEDDING_API_KEY") or os.getenv("LLM_API_KEY"),
            timeout=float(emb_cfg.get("timeout", 60)),
            max_input_tokens=int(emb_cfg.get("max_input_tokens", 8000)),
        )

    if backend != "sentence_transformers":
        raise ValueError(f"Invalid embedding.backend: {backend!r}")

    model_name = emb_cfg.get("sentence_transformers_model", "sentence-transformers/all-MiniLM-L6-v2")
    try:
        return SentenceTransformersEmbedder(model_name)
    except Exception as e:
        raise ValueError(
            "Could not load sentence-transformers. "
            "Run: pip install -U sentence-transformers"
        ) from e
