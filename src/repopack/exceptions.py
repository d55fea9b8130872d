from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class RepopackError(Exception):
    """Base exception for errors in the repopack module."""


@dataclass(frozen=True)
class GitCommandError(RepopackError):
    """Raised when a git command fails."""

    command: str
    returncode: int
    stdout: str
    stderr: str


@dataclass(frozen=True)
class NotAGitRepositoryError(RepopackError):
    """Raised when the specified directory is not inside a Git work tree."""

    folder: Path
    message: str = "The specified directory is not a Git repository."


@dataclass(frozen=True)
class OutputWriteError(RepopackError):
    """Raised when the rendered document cannot be written to its target."""

    target: str
    reason: str

    def __str__(self) -> str:
        return self.reason
