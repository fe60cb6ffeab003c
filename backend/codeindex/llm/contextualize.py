"""Contextual retrieval: situate each chunk within its file before embedding.

A short LLM-written description of what a chunk does is prepended to its
embedding text so the dense vector carries the chunk's purpose as well as
its code.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from ..core.models import Chunk
from ..core.redact import redact_secrets
from .client import TextGenerator

logger = logging.getLogger(__name__)

MAX_FILE_CHARS = 8000
MAX_CONTEXT_TOKENS = 150

CONTEXT_PROMPT = """<document>
{file_content}
</document>

Here is a chunk from this {language} file ({file_path}):
<chunk>
{chunk_content}
</chunk>

Give a short context (2-3 sentences) to situate this chunk within the file.
Include: what this code does, what it depends on, and what calls or uses it.
Answer ONLY with the context, no preamble."""


def truncate_file(content: str) -> str:
    if len(content) <= MAX_FILE_CHARS:
        return content
    return f"{content[:MAX_FILE_CHARS]}\n... (truncated, {len(content)} chars total)"


def build_prompt(file_content: str, chunk_content: str, file_path: str, language: str) -> str:
    prompt = CONTEXT_PROMPT.format(
        file_content=truncate_file(file_content),
        language=language,
        file_path=file_path,
        chunk_content=chunk_content,
    )
    return redact_secrets(prompt)


class Contextualizer:
    """Generates situating descriptions for chunks with a ``TextGenerator``."""

    def __init__(self, generator: TextGenerator, max_tokens: int = MAX_CONTEXT_TOKENS):
        self.generator = generator
        self.max_tokens = max_tokens

    def contextualize(self, file_content: str, chunk_content: str, file_path: str, language: str) -> str:
        """Return a 2-3 sentence description of the chunk, or ``""`` on any failure."""
        if not chunk_content.strip():
            return ""

        prompt = build_prompt(file_content, chunk_content, file_path, language)
        try:
            response = self.generator.generate(prompt, max_tokens=self.max_tokens, temperature=0.0)
        except Exception as e:
            logger.warning(f"Contextualization failed for {file_path}, using empty context: {e}")
            return ""

        if response.error:
            logger.warning(f"Contextualization failed for {file_path}, using empty context: {response.error}")
            return ""
        return (response.content or "").strip()

    def contextualize_chunks(
        self,
        file_content: str,
        chunks: Sequence[Chunk],
        file_path: str,
        language: str,
    ) -> List[str]:
        """Contextualize chunks of one file in order, one request at a time.

        Header chunks carry file-level context already and get ``""``.
        """
        contexts: List[str] = []
        for chunk in chunks:
            content = "" if chunk.chunk_type == "header" else chunk.content
            contexts.append(self.contextualize(file_content, content, file_path, language))
        return contexts
