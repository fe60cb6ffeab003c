"""Searcher Interface."""

from __future__ import annotations

import dataclasses
from typing import Any, Dict, List, Optional


@dataclasses.dataclass
class SearchHit:
    file_path: str
    language: str
    layer: str
    start_line: int
    end_line: int
    code: str
    score: float
    symbol_name: Optional[str] = None
    chunk_type: Optional[str] = None
    context: str = ""
    class_context: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


@dataclasses.dataclass
class SearchResponse:
    results: List[SearchHit] = dataclasses.field(default_factory=list)
    message: Optional[str] = None


class Searcher:
    """Abstract base class for hybrid code search."""

    def search(
        self,
        query: str,
        repo: Optional[str] = None,
        language: Optional[str] = None,
        layer: Optional[str] = None,
        expand: bool = False,
    ) -> SearchResponse:
        """Search indexed chunks for a query.

        Args:
            query: Search query text
            repo: Restrict to one repository
            language: Restrict to one language
            layer: Restrict to one architectural layer
            expand: Also search LLM-generated rephrasings of the query

        Returns:
            Ranked hits, or no hits and an explanatory message. Never raises.
        """
        raise NotImplementedError
