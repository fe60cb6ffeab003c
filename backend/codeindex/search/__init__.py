"""Hybrid code search."""

from .base import Searcher, SearchHit, SearchResponse
from .searcher import HybridSearcher, format_hit, make_searcher, search

__all__ = [
    "Searcher",
    "SearchHit",
    "SearchResponse",
    "HybridSearcher",
    "format_hit",
    "make_searcher",
    "search",
]
