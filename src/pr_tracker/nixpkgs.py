"""Local nixpkgs mirror: which remote branches contain a commit."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from git import Repo
from git.exc import (
    CommandError,
    GitCommandError,
    InvalidGitRepositoryError,
    NoSuchPathError,
)

from .errors import GitError, GitExitError, GitIOError

logger = logging.getLogger(__name__)


def _exit_error(e: GitCommandError) -> GitExitError:
    """Translate GitPython's error into ours.

    A negative status is how subprocess reports death by signal.
    """
    status = e.status if isinstance(e.status, int) else None
    if status is not None and status < 0:
        return GitExitError(None, signal=-status)
    return GitExitError(status)


class Nixpkgs:
    """A local clone of nixpkgs with a remote tracking upstream.

    Only remote-tracking branches of `remote_name` are considered, so local
    branches and other remotes in the mirror never show up in results.
    """

    def __init__(self, path: Path, remote_name: str):
        self.path = Path(path)
        self.remote_name = remote_name
        self._repo: Optional[Repo] = None

    @property
    def repo(self) -> Repo:
        """Lazy-load git repo."""
        if self._repo is None:
            try:
                self._repo = Repo(self.path)
            except (InvalidGitRepositoryError, NoSuchPathError) as e:
                raise GitIOError(f"Not a git repository: {self.path}") from e
        return self._repo

    @property
    def ref_prefix(self) -> str:
        return f"refs/remotes/{self.remote_name}/"

    def _git_branch_contains(self, commit: str) -> str:
        try:
            return self.repo.git.branch("-r", "--format=%(refname)", "--contains", commit)
        except GitCommandError as e:
            if e.stderr:
                logger.warning(f"git branch --contains: {e.stderr.strip()}")
            raise _exit_error(e) from e
        except (CommandError, OSError) as e:
            raise GitIOError(f"git: {e}") from e

    def _git_fetch(self) -> None:
        try:
            self.repo.git.fetch(self.remote_name)
        except GitCommandError as e:
            raise _exit_error(e) from e
        except (CommandError, OSError) as e:
            raise GitIOError(f"git: {e}") from e

    def branches_containing_commit(self, commit: str) -> set[str]:
        """Names of the remote's branches whose history includes `commit`.

        If git fails (typically because the mirror doesn't have the commit
        yet), fetch from the remote and try exactly once more.

        Raises:
            GitExitError: git exited unsuccessfully on the final attempt.
            GitIOError: git could not be run.
        """
        try:
            output = self._git_branch_contains(commit)
        except GitExitError as e:
            if e.status is None:
                raise
            logger.warning("git branch --contains failed; updating branches")
            try:
                self._git_fetch()
            except GitError as fetch_error:
                # Carry on: it may have fetched what we need before dying.
                logger.warning(f"fetching nixpkgs: {fetch_error}")
            output = self._git_branch_contains(commit)

        return self._parse_refs(output)

    def _parse_refs(self, output: str) -> set[str]:
        prefix = self.ref_prefix
        return {
            line[len(prefix):]
            for line in output.splitlines()
            if line.startswith(prefix) and len(line) > len(prefix)
        }
