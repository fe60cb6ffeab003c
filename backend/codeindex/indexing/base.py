"""Indexer Interface."""

from __future__ import annotations

import threading
from typing import Callable, Optional

from ..core.models import IndexStats, RepoConfig


class Indexer:
    """Abstract base class for code indexing."""

    def index(
        self,
        repo: RepoConfig,
        incremental: bool = False,
        cancel_event: Optional[threading.Event] = None,
        progress: Optional[Callable[[int, int], None]] = None,
    ) -> IndexStats:
        raise NotImplementedError
