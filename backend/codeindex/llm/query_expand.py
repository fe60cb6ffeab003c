"""Query expansion for better recall.

Before searching, the LLM proposes alternative phrasings of the query so
results using different terminology for the same concept are found too.
"""

from __future__ import annotations

import json
import logging
import re
from typing import List

from .client import TextGenerator

logger = logging.getLogger(__name__)

EXPAND_PROMPT = """Given this code search query, generate 2-3 alternative phrasings that would match different code implementations of the same concept.
Focus on different terminology, class names, method names, and technical terms developers might use.

Query: "{query}"

Return ONLY a JSON array of strings, no explanation. Example: ["variant 1", "variant 2", "variant 3"]"""

_ARRAY_RE = re.compile(r"\[[\s\S]*?\]")


def parse_variants(text: str) -> List[str]:
    """Parse a JSON array of strings from a reply, tolerating prose and code fences."""
    try:
        variants = json.loads(text.strip())
    except json.JSONDecodeError:
        match = _ARRAY_RE.search(text)
        if not match:
            return []
        variants = json.loads(match.group(0))

    if not isinstance(variants, list):
        return []
    return [v for v in variants if isinstance(v, str) and v.strip()]


def expand_query(generator: TextGenerator, query: str) -> List[str]:
    """Return the query followed by its LLM variants, de-duplicated.

    Any failure falls back to ``[query]``.
    """
    try:
        response = generator.generate(
            EXPAND_PROMPT.format(query=query),
            max_tokens=200,
            temperature=0.3,
        )
        if response.error:
            raise RuntimeError(response.error)
        variants = parse_variants(response.content or "")
    except Exception as e:
        logger.warning(f"Query expansion failed, using original query: {e}")
        return [query]

    if not variants:
        return [query]

    out: List[str] = []
    for q in [query, *variants]:
        if q not in out:
            out.append(q)
    return out
