"""Git diff helpers used by incremental reindexing."""

from __future__ import annotations

import subprocess
from typing import List, Optional

from ..core.exceptions import SourceControlError


class SourceControl:
    """Abstract source-control collaborator."""

    def changed_files(self, repo_path: str, since_ref: Optional[str] = None) -> List[str]:
        raise NotImplementedError

    def deleted_files(self, repo_path: str, since_ref: Optional[str] = None) -> List[str]:
        raise NotImplementedError

    def head_commit(self, repo_path: str) -> str:
        raise NotImplementedError


def _unique_lines(out: str) -> List[str]:
    seen: List[str] = []
    for line in out.splitlines():
        line = line.strip()
        if line and line not in seen:
            seen.append(line)
    return seen


class GitSourceControl(SourceControl):
    """``git`` CLI wrapper.

    Without a ``since_ref`` the diff covers commits from the last
    ``lookback_hours`` hours. Rename detection is off, so a rename is
    reported as a deletion of the old path plus a change to the new one.
    """

    def __init__(self, lookback_hours: int = 24, timeout: int = 60):
        self.lookback_hours = lookback_hours
        self.timeout = timeout

    def _run(self, repo_path: str, *args: str) -> str:
        try:
            out = subprocess.check_output(
                ["git", "--no-pager", *args],
                cwd=repo_path,
                stderr=subprocess.PIPE,
                timeout=self.timeout,
            )
            return out.decode("utf-8", errors="ignore")
        except FileNotFoundError:
            raise SourceControlError("`git` CLI not found. Install Git or run in an environment with Git available.")
        except subprocess.TimeoutExpired:
            raise SourceControlError(f"git command timeout: {' '.join(args)}")
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or b"").decode("utf-8", errors="ignore")
            raise SourceControlError(f"git command failed: {' '.join(args)}\n{stderr}")

    def _since(self) -> str:
        return f"--since={self.lookback_hours} hours ago"

    def changed_files(self, repo_path: str, since_ref: Optional[str] = None) -> List[str]:
        if since_ref:
            out = self._run(repo_path, "diff", "--no-renames", "--name-only", since_ref, "HEAD")
        else:
            out = self._run(repo_path, "log", self._since(), "--no-renames", "--name-only", "--pretty=format:")
        return _unique_lines(out)

    def deleted_files(self, repo_path: str, since_ref: Optional[str] = None) -> List[str]:
        if since_ref:
            out = self._run(repo_path, "diff", "--no-renames", "--name-only", "--diff-filter=D", since_ref, "HEAD")
        else:
            out = self._run(repo_path, "log", self._since(), "--no-renames", "--diff-filter=D", "--name-only", "--pretty=format:")
        return _unique_lines(out)

    def head_commit(self, repo_path: str) -> str:
        return self._run(repo_path, "rev-parse", "HEAD").strip()
