"""Shared FastAPI dependencies, built once from the environment."""

import logging
from functools import lru_cache
from typing import Dict, Optional

from ..config import load_config
from ..core.models import RepoConfig
from ..indexing import Indexer, make_indexer
from ..search import Searcher, make_searcher

logger = logging.getLogger(__name__)


@lru_cache
def get_config() -> Dict:
    return load_config()


def get_repos() -> Dict[str, RepoConfig]:
    return {r.name: r for r in get_config()["repos"]}


@lru_cache
def get_indexer() -> Indexer:
    return make_indexer(get_config())


@lru_cache
def _build_searcher() -> Searcher:
    return make_searcher(get_config())


def get_searcher() -> Optional[Searcher]:
    """The shared searcher, or ``None`` when it cannot be built.

    Failures are not cached, so a later request retries construction.
    """
    try:
        return _build_searcher()
    except Exception as e:
        logger.error(f"Search backend unavailable: {e}")
        return None
