"""Exceptions raised by codeindex."""


class CodeIndexError(Exception):
    """Base class for all codeindex errors."""


class RepositoryNotFoundError(CodeIndexError):
    """The repository path of a run does not exist."""

    def __init__(self, path: str):
        super().__init__(f"Repository path not found: {path}")
        self.path = path


class SourceControlError(CodeIndexError):
    """A git command could not be executed or returned an error."""


class EmbeddingError(CodeIndexError):
    """The embedding provider returned an unusable response."""
