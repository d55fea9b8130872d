from __future__ import annotations

import subprocess  # noqa: S404
from datetime import UTC, datetime
from email.utils import format_datetime
from typing import TYPE_CHECKING, Protocol

from repopack.config import GitInfo
from repopack.exceptions import GitCommandError, NotAGitRepositoryError
from repopack.logging import logger

if TYPE_CHECKING:
    from pathlib import Path


class VcsProvider(Protocol):
    """Callable returning VCS metadata for a root directory, or None."""

    def __call__(self, root: Path) -> GitInfo | None: ...


def run_git(repo: Path, *args: str) -> str:
    """Run a git command in `repo` and return its stripped stdout.

    Args:
        repo (Path): the working directory for the command
        *args (str): the git arguments, e.g. ``"rev-parse", "HEAD"``

    Raises:
        GitCommandError: if git cannot be run or exits with a non-zero status.

    Returns:
        str: the command output, stripped of surrounding whitespace
    """
    command = ["git", *args]
    try:
        out = subprocess.run(  # noqa: S603
            command,
            cwd=str(repo),
            text=True,
            capture_output=True,
            check=True,
        )
    except subprocess.CalledProcessError as e:
        raise GitCommandError(
            command=" ".join(command),
            returncode=e.returncode,
            stdout=e.stdout or "",
            stderr=e.stderr or "",
        ) from e
    except OSError as e:
        raise GitCommandError(command=" ".join(command), returncode=-1, stdout="", stderr=str(e)) from e
    return out.stdout.strip()


def _run_or_empty(repo: Path, *args: str) -> str:
    try:
        return run_git(repo, *args)
    except GitCommandError:
        return ""


def read_git_info(repo: Path) -> GitInfo:
    """Read the HEAD commit metadata of the repository containing `repo`.

    Args:
        repo (Path): a directory inside a git work tree

    Raises:
        NotAGitRepositoryError: if `repo` is not inside a git work tree.
        GitCommandError: if HEAD cannot be resolved (e.g. no commit yet).

    Returns:
        GitInfo: commit id, branch, author and date of the last commit
    """
    if not (repo / ".git").exists():
        try:
            run_git(repo, "rev-parse", "--git-dir")
        except GitCommandError as e:
            raise NotAGitRepositoryError(folder=repo) from e

    commit = run_git(repo, "rev-parse", "HEAD")
    branch = _run_or_empty(repo, "rev-parse", "--abbrev-ref", "HEAD")
    author_name = _run_or_empty(repo, "log", "-1", "--pretty=%an")
    author_email = _run_or_empty(repo, "log", "-1", "--pretty=%ae")
    date = _run_or_empty(repo, "log", "-1", "--pretty=%ad", "--date=rfc")
    if not date:
        date = format_datetime(datetime.now(UTC).astimezone())
    return GitInfo(
        commit=commit,
        branch=branch,
        author=f"{author_name} <{author_email}>",
        date=date,
    )


def get_git_info(repo: Path) -> GitInfo | None:
    """Get VCS metadata for `repo`, treating every failure as "no metadata".

    Args:
        repo (Path): the root directory of the run

    Returns:
        GitInfo | None: the metadata, or None if unavailable
    """
    try:
        return read_git_info(repo)
    except (GitCommandError, NotAGitRepositoryError) as e:
        logger.debug("No git metadata for %s: %r", repo, e)
        return None
