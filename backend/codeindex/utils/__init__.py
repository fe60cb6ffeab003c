"""Utility functions for codeindex."""

from .file_utils import is_binary_file, read_text
from .git_utils import GitSourceControl, SourceControl

__all__ = [
    "is_binary_file",
    "read_text",
    "GitSourceControl",
    "SourceControl",
]
