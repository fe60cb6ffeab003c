"""Search routes."""

from typing import Optional

from fastapi import APIRouter, Depends

from ...search import Searcher
from ...search.searcher import UNAVAILABLE_MESSAGE
from ..dependencies import get_searcher
from ..schemas import SearchRequest, SearchResponse, SearchResult

router = APIRouter()


@router.post("/search", response_model=SearchResponse)
def search(request: SearchRequest, searcher: Optional[Searcher] = Depends(get_searcher)):
    if searcher is None:
        return SearchResponse(results=[], message=UNAVAILABLE_MESSAGE)

    response = searcher.search(
        request.query,
        repo=request.repo,
        language=request.language,
        layer=request.layer,
        expand=request.expand,
    )
    return SearchResponse(
        results=[SearchResult(**hit.as_dict()) for hit in response.results],
        message=response.message,
    )
