"""BM25 term-frequency sparse vectors.

Only term frequencies are computed here; IDF weighting is applied by the
vector store on the sparse vector space.
"""

from __future__ import annotations

import re
from typing import Dict, List

from .models import SparseVector

STOP_WORDS = frozenset({
    "a", "an", "and", "are", "as", "at", "be", "by", "for", "from",
    "has", "he", "in", "is", "it", "its", "of", "on", "or", "she",
    "that", "the", "to", "was", "were", "will", "with",
})

# camelCase, PascalCase, acronyms, snake_case pieces and digit runs
_WORD_RE = re.compile(r"[A-Z]?[a-z]+|[A-Z]+(?=[A-Z][a-z]|\b)|[a-z]+|[A-Z]+|\d+")

FNV_OFFSET = 0x811C9DC5
FNV_PRIME = 0x01000193


def fnv1a(token: str) -> int:
    """32-bit FNV-1a hash."""
    h = FNV_OFFSET
    for ch in token:
        h ^= ord(ch)
        h = (h * FNV_PRIME) & 0xFFFFFFFF
    return h


def tokenize(text: str) -> List[str]:
    """Split text into lowercase words, dropping single characters and stop words."""
    words = _WORD_RE.findall(text or "")
    out: List[str] = []
    for w in words:
        w = w.lower()
        if len(w) > 1 and w not in STOP_WORDS:
            out.append(w)
    return out


def text_to_sparse(text: str) -> SparseVector:
    """Convert text to a sparse vector sorted by ascending hashed index."""
    tf: Dict[int, int] = {}
    for token in tokenize(text):
        idx = fnv1a(token)
        tf[idx] = tf.get(idx, 0) + 1

    indices = sorted(tf)
    return SparseVector(indices=indices, values=[float(tf[i]) for i in indices])
