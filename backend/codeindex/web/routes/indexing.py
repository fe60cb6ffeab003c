"""Indexing routes: trigger, progress and cancellation of per-repository runs."""

import dataclasses
import logging
import threading
from datetime import datetime, timezone
from typing import Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from ...core.models import IndexStats, RepoConfig
from ...indexing import Indexer
from ..dependencies import get_indexer, get_repos
from ..schemas import IndexProgress, IndexRequest, IndexStartResponse, IndexStatsModel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/repos")


@dataclasses.dataclass
class RunState:
    status: str = "idle"
    incremental: bool = False
    current: int = 0
    total: int = 0
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    stats: Optional[IndexStats] = None
    error: Optional[str] = None
    cancel_event: threading.Event = dataclasses.field(default_factory=threading.Event)


# Latest run per repository name
indexing_progress: Dict[str, RunState] = {}
_progress_lock = threading.Lock()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def index_repo_task(indexer: Indexer, repo: RepoConfig, state: RunState) -> None:
    """Background task running one indexing pass and recording its outcome."""

    def on_progress(current: int, total: int) -> None:
        state.current, state.total = current, total

    try:
        stats = indexer.index(
            repo,
            incremental=state.incremental,
            cancel_event=state.cancel_event,
            progress=on_progress,
        )
        state.stats = stats
        state.status = "cancelled" if stats.cancelled else "indexed"
        logger.info(f"Indexing of {repo.name} finished: {stats.as_dict()}")
    except Exception as e:
        logger.exception(f"Error indexing repository {repo.name}")
        state.status = "error"
        state.error = str(e)
    finally:
        state.finished_at = _now()


def _require_repo(name: str, repos: Dict[str, RepoConfig]) -> RepoConfig:
    repo = repos.get(name)
    if repo is None:
        raise HTTPException(status_code=404, detail="Repository not found")
    return repo


@router.post("/{name}/index", response_model=IndexStartResponse)
async def start_indexing(
    name: str,
    request: IndexRequest,
    background_tasks: BackgroundTasks,
    repos: Dict[str, RepoConfig] = Depends(get_repos),
    indexer: Indexer = Depends(get_indexer),
):
    """Start a full or incremental run for one repository."""
    repo = _require_repo(name, repos)

    with _progress_lock:
        current = indexing_progress.get(name)
        if current is not None and current.status == "indexing":
            raise HTTPException(status_code=409, detail="Repository is already being indexed")
        state = RunState(status="indexing", incremental=request.incremental, started_at=_now())
        indexing_progress[name] = state

    logger.info(f"Starting background indexing task for {name} (incremental={request.incremental})")
    background_tasks.add_task(index_repo_task, indexer, repo, state)

    return IndexStartResponse(message=f"Indexing started for repository '{name}'", repo=name)


@router.get("/{name}/index/progress", response_model=IndexProgress)
async def index_progress(name: str, repos: Dict[str, RepoConfig] = Depends(get_repos)):
    """Status of the current or most recent run."""
    _require_repo(name, repos)
    state = indexing_progress.get(name) or RunState()
    return IndexProgress(
        repo=name,
        status=state.status,
        current=state.current,
        total=state.total,
        incremental=state.incremental,
        started_at=state.started_at,
        finished_at=state.finished_at,
        stats=IndexStatsModel(**state.stats.as_dict()) if state.stats else None,
        error=state.error,
    )


@router.post("/{name}/index/cancel")
async def cancel_indexing(name: str, repos: Dict[str, RepoConfig] = Depends(get_repos)):
    """Stop scheduling new files; files already in flight finish."""
    _require_repo(name, repos)
    state = indexing_progress.get(name)
    if state is None or state.status != "indexing":
        raise HTTPException(status_code=400, detail="Repository is not being indexed")

    state.cancel_event.set()
    return {"success": True, "message": "Indexing cancellation requested"}
