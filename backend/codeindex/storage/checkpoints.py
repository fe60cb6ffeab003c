"""Last-indexed commit per repository, persisted with SQLAlchemy."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, DateTime, String, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()


class IndexCheckpoint(Base):
    """Commit SHA of the last successful run for a repository."""

    __tablename__ = "index_checkpoints"

    repo_name = Column(String(255), primary_key=True)
    commit_sha = Column(String(64), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class CheckpointStore:
    """Abstract get/set of a string value keyed by repository name."""

    def get(self, repo_name: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, repo_name: str, commit_sha: str) -> None:
        raise NotImplementedError


class SqlCheckpointStore(CheckpointStore):

    def __init__(self, database_url: str):
        connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        self.engine = create_engine(database_url, connect_args=connect_args)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        Base.metadata.create_all(bind=self.engine)

    def get(self, repo_name: str) -> Optional[str]:
        db = self.SessionLocal()
        try:
            row = db.get(IndexCheckpoint, repo_name)
            return row.commit_sha if row else None
        finally:
            db.close()

    def set(self, repo_name: str, commit_sha: str) -> None:
        db = self.SessionLocal()
        try:
            row = db.get(IndexCheckpoint, repo_name)
            now = datetime.now(timezone.utc)
            if row:
                row.commit_sha = commit_sha
                row.updated_at = now
            else:
                db.add(IndexCheckpoint(repo_name=repo_name, commit_sha=commit_sha, updated_at=now))
            db.commit()
            logger.info(f"Checkpoint for {repo_name} set to {commit_sha}")
        finally:
            db.close()


def make_checkpoint_store(cfg: dict) -> CheckpointStore:
    return SqlCheckpointStore(cfg.get("database_url", "sqlite:///./codeindex.db"))
