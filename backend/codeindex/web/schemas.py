from pydantic import BaseModel
from datetime import datetime
from typing import Optional, List


class IndexRequest(BaseModel):
    incremental: bool = False


class IndexStartResponse(BaseModel):
    message: str
    repo: str


class IndexStatsModel(BaseModel):
    files_processed: int = 0
    chunks_indexed: int = 0
    contexts_skipped: int = 0
    files_failed: int = 0
    files_deleted: int = 0
    cancelled: bool = False


class IndexProgress(BaseModel):
    repo: str
    status: str
    current: int = 0
    total: int = 0
    incremental: bool = False
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    stats: Optional[IndexStatsModel] = None
    error: Optional[str] = None


class SearchRequest(BaseModel):
    query: str
    repo: Optional[str] = None
    language: Optional[str] = None
    layer: Optional[str] = None
    expand: bool = False


class SearchResult(BaseModel):
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


class SearchResponse(BaseModel):
    results: List[SearchResult]
    message: Optional[str] = None
