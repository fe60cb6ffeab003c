"""Configuration management for codeindex."""

from .manager import (
    BLOCKED_FILE_PATTERNS,
    BLOCKED_PATH_SEGMENTS,
    DEFAULT_CONFIG,
    IGNORE_FILE_NAME,
    SKIP_DIRS,
    load_config,
    parse_repo_configs,
)

__all__ = [
    "BLOCKED_FILE_PATTERNS",
    "BLOCKED_PATH_SEGMENTS",
    "DEFAULT_CONFIG",
    "IGNORE_FILE_NAME",
    "SKIP_DIRS",
    "load_config",
    "parse_repo_configs",
]
