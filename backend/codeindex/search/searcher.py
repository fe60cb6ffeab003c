"""Hybrid dense + BM25 search with reciprocal rank fusion."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from ..core.bm25 import text_to_sparse
from ..core.embeddings import Embedder, make_embedder
from ..llm.client import TextGenerator, make_text_generator
from ..llm.query_expand import expand_query
from ..storage import DENSE_VECTOR, SPARSE_VECTOR, PrefetchRequest, StoredPoint, VectorStore, make_vector_store
from .base import Searcher, SearchHit, SearchResponse

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = "Code collection not yet indexed or unreachable. Run indexing first."


def composite_text(phrasing: str, language: Optional[str] = None, layer: Optional[str] = None) -> str:
    return " ".join(p for p in (language, layer, phrasing) if p)


def no_results_message(language: Optional[str], layer: Optional[str]) -> str:
    msg = "No matching code found. Suggestions: "
    if language or layer:
        msg += "try removing the language/layer filter. "
    return msg + "Try different terminology or a broader query."


def _to_hit(point: StoredPoint, class_context: Optional[str]) -> SearchHit:
    p = point.payload
    return SearchHit(
        file_path=p.get("file_path", "unknown"),
        language=p.get("language", "unknown"),
        layer=p.get("layer", "unknown"),
        start_line=int(p.get("start_line") or 0),
        end_line=int(p.get("end_line") or 0),
        code=p.get("text", ""),
        score=float(point.score or 0.0),
        symbol_name=p.get("symbol_name"),
        chunk_type=p.get("chunk_type"),
        context=p.get("context") or "",
        class_context=class_context,
    )


class HybridSearcher(Searcher):

    def __init__(
        self,
        embedder: Embedder,
        store: VectorStore,
        generator: Optional[TextGenerator] = None,
        prefetch_limit: int = 20,
        limit: int = 16,
    ):
        self.embedder = embedder
        self.store = store
        self.generator = generator
        self.prefetch_limit = prefetch_limit
        self.limit = limit

    def build_prefetches(
        self,
        phrasings: Sequence[str],
        filters: Dict[str, str],
        language: Optional[str] = None,
        layer: Optional[str] = None,
    ) -> List[PrefetchRequest]:
        """One dense and one sparse prefetch per phrasing, all sharing ``filters``."""
        texts = [composite_text(q, language, layer) for q in phrasings]
        dense = self.embedder.embed(texts)
        prefetches: List[PrefetchRequest] = []
        for text, vec in zip(texts, dense):
            prefetches.append(PrefetchRequest(vector=vec, using=DENSE_VECTOR, limit=self.prefetch_limit, filters=filters))
            prefetches.append(PrefetchRequest(
                vector=text_to_sparse(text), using=SPARSE_VECTOR, limit=self.prefetch_limit, filters=filters,
            ))
        return prefetches

    def header_contexts(self, points: Sequence[StoredPoint]) -> Dict[str, str]:
        """Text of the header chunks referenced by non-header hits, keyed by id."""
        ids = []
        for pt in points:
            header_id = pt.payload.get("header_chunk_id")
            if header_id and pt.payload.get("chunk_type") != "header" and header_id not in ids:
                ids.append(header_id)
        if not ids:
            return {}
        try:
            return {h.id: h.payload.get("text", "") for h in self.store.retrieve(ids)}
        except Exception as e:
            logger.warning(f"Could not fetch header chunks: {e}")
            return {}

    def search(
        self,
        query: str,
        repo: Optional[str] = None,
        language: Optional[str] = None,
        layer: Optional[str] = None,
        expand: bool = False,
    ) -> SearchResponse:
        filters = {k: v for k, v in (("repo", repo), ("language", language), ("layer", layer)) if v}
        phrasings = [query]
        if expand and self.generator is not None:
            phrasings = expand_query(self.generator, query)

        try:
            prefetches = self.build_prefetches(phrasings, filters, language, layer)
            points = self.store.hybrid_query(prefetches, self.limit)
        except Exception as e:
            logger.error(f"Search failed for query {query!r}: {e}")
            return SearchResponse(results=[], message=UNAVAILABLE_MESSAGE)

        if not points:
            return SearchResponse(results=[], message=no_results_message(language, layer))

        headers = self.header_contexts(points)
        results = []
        for pt in points:
            class_context = None
            if pt.payload.get("chunk_type") != "header":
                class_context = headers.get(pt.payload.get("header_chunk_id") or "")
            results.append(_to_hit(pt, class_context))
        return SearchResponse(results=results)


def make_searcher(cfg: Dict) -> HybridSearcher:
    search_cfg = cfg.get("search", {})
    return HybridSearcher(
        embedder=make_embedder(cfg),
        store=make_vector_store(cfg),
        generator=make_text_generator(cfg),
        prefetch_limit=int(search_cfg.get("prefetch_limit", 20)),
        limit=int(search_cfg.get("limit", 16)),
    )


def search(cfg: Dict, query: str, **filters) -> SearchResponse:
    return make_searcher(cfg).search(query, **filters)


def format_hit(hit: SearchHit, max_chars: int = 1200) -> str:
    snippet = hit.code
    if len(snippet) > max_chars:
        snippet = snippet[:max_chars] + "\n…(truncated)…\n"
    header = f"{hit.score:0.4f}  {hit.file_path}:{hit.start_line}-{hit.end_line}"
    if hit.symbol_name:
        header += f"  [{hit.chunk_type}] {hit.symbol_name}"
    return header + "\n" + snippet.rstrip() + "\n"
