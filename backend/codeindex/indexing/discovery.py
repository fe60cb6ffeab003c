"""Source file discovery with ignore-file and secret-risk filtering."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path, PurePosixPath
from typing import List, Optional, Sequence

from ..config import BLOCKED_FILE_PATTERNS, BLOCKED_PATH_SEGMENTS, IGNORE_FILE_NAME, SKIP_DIRS
from ..core.chunking import SOURCE_EXTENSIONS
from ..utils import is_binary_file

logger = logging.getLogger(__name__)

_REGEX_SPECIALS = re.compile(r"[.+^${}()|\[\]\\]")


def compile_ignore_pattern(pattern: str) -> Optional[re.Pattern]:
    """Compile a glob-like ignore pattern to an anchored regex.

    ``*`` matches any run of characters and ``?`` a single character.
    Returns ``None`` for patterns that cannot be compiled.
    """
    escaped = _REGEX_SPECIALS.sub(lambda m: "\\" + m.group(0), pattern)
    regex = escaped.replace("*", ".*").replace("?", ".")
    try:
        return re.compile(f"^{regex}$")
    except re.error:
        return None


def load_ignore_patterns(repo_root: Path) -> List[re.Pattern]:
    path = repo_root / IGNORE_FILE_NAME
    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        return []

    patterns: List[re.Pattern] = []
    for line in content.split("\n"):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        compiled = compile_ignore_pattern(line)
        if compiled is not None:
            patterns.append(compiled)
    if patterns:
        logger.info(f"Loaded {len(patterns)} {IGNORE_FILE_NAME} patterns from {repo_root}")
    return patterns


def is_ignored(rel_path: str, patterns: Sequence[re.Pattern]) -> bool:
    return any(p.match(rel_path) for p in patterns)


def is_blocked(rel_path: str) -> bool:
    """True for secret-risk filenames and paths through deny-listed directories."""
    parts = PurePosixPath(rel_path).parts
    if not parts:
        return False
    if any(p.search(parts[-1]) for p in BLOCKED_FILE_PATTERNS):
        return True
    return any(part in BLOCKED_PATH_SEGMENTS for part in parts)


def _has_source_extension(name: str) -> bool:
    return os.path.splitext(name)[1].lower() in SOURCE_EXTENSIONS


def _within_size(path: Path, max_file_size_kb: int) -> bool:
    try:
        return path.stat().st_size / 1024.0 <= max_file_size_kb
    except OSError:
        return False


def is_indexable(
    repo_root: Path,
    rel_path: str,
    patterns: Sequence[re.Pattern],
    max_file_size_kb: int = 512,
) -> bool:
    """Apply every discovery rule to a single repository-relative path."""
    parts = PurePosixPath(rel_path).parts
    if not parts or not _has_source_extension(parts[-1]):
        return False
    if any(part.startswith(".") for part in parts):
        return False
    if any(part in SKIP_DIRS for part in parts[:-1]):
        return False
    # ignore patterns apply to every directory on the way down, as in a walk
    for i in range(1, len(parts) + 1):
        if is_ignored("/".join(parts[:i]), patterns):
            return False
    if is_blocked(rel_path):
        return False

    full = repo_root / rel_path
    if not full.is_file() or not _within_size(full, max_file_size_kb):
        return False
    return not is_binary_file(full)


def iter_source_files(repo_root: Path, max_file_size_kb: int = 512) -> List[str]:
    """Repository-relative POSIX paths of every indexable source file, sorted."""
    patterns = load_ignore_patterns(repo_root)
    files: List[str] = []

    for root, dirs, names in os.walk(repo_root):
        rel_root = Path(root).relative_to(repo_root).as_posix()
        prefix = "" if rel_root == "." else rel_root + "/"

        kept = []
        for d in sorted(dirs):
            if d.startswith(".") or d in SKIP_DIRS:
                continue
            if is_ignored(prefix + d, patterns):
                logger.debug(f"Skipped by {IGNORE_FILE_NAME}: {prefix + d}")
                continue
            kept.append(d)
        dirs[:] = kept

        for name in sorted(names):
            rel = prefix + name
            if name.startswith(".") or not _has_source_extension(name):
                continue
            if is_ignored(rel, patterns):
                logger.debug(f"Skipped by {IGNORE_FILE_NAME}: {rel}")
                continue
            if is_blocked(rel):
                logger.debug(f"Skipped blocked file: {rel}")
                continue
            full = Path(root) / name
            if not _within_size(full, max_file_size_kb) or is_binary_file(full):
                logger.debug(f"Skipped large or binary file: {rel}")
                continue
            files.append(rel)

    return sorted(files)
