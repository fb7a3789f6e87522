"""Shared test fixtures and helpers for pr-tracker tests."""

from pathlib import Path
from types import SimpleNamespace

import pytest
from git import Repo

from pr_tracker.config import Settings
from pr_tracker.errors import GitExitError, NotFoundError
from pr_tracker.models import MergeInfo


# --- Fakes for the tracker's collaborators ---


class FakeGitHub:
    """Returns canned merge info, or raises a canned error."""

    def __init__(self, merge_info: MergeInfo | None = None, error: Exception | None = None):
        self.merge_info = merge_info
        self.error = error
        self.requested: list[int] = []

    def merge_info_for_nixpkgs_pr(self, pr: int) -> MergeInfo:
        self.requested.append(pr)
        if self.error is not None:
            raise self.error
        if self.merge_info is None:
            raise NotFoundError()
        return self.merge_info


class FakeNixpkgs:
    """Containment lookup returning a fixed set of branches."""

    def __init__(self, branches: set[str] | None = None, fail: bool = False):
        self.branches = branches or set()
        self.fail = fail
        self.queried: list[str] = []

    def branches_containing_commit(self, commit: str) -> set[str]:
        self.queried.append(commit)
        if self.fail:
            raise GitExitError(128)
        return set(self.branches)


@pytest.fixture
def settings(tmp_path):
    """Minimal valid settings pointing at a scratch directory."""
    return Settings(
        path=tmp_path / "nixpkgs",
        remote="origin",
        user_agent="pr-tracker-tests",
        source_url="https://example.com/pr-tracker",
        github_token="test-token",
    )


# --- A real upstream repository and a mirror clone of it ---


def commit_file(repo: Repo, name: str, content: str, message: str):
    """Write a file into the repo's working tree and commit it."""
    path = Path(repo.working_tree_dir) / name
    path.write_text(content)
    repo.index.add([name])
    return repo.index.commit(message)


@pytest.fixture
def upstream(tmp_path):
    """Upstream nixpkgs-like repository.

    The "PR" commit sits on staging-21.05 and staging-next-21.05, but not on
    release-21.05.
    """
    repo = Repo.init(tmp_path / "upstream")
    base = commit_file(repo, "README", "nixpkgs\n", "Initial commit")

    repo.create_head("release-21.05", base)
    staging = repo.create_head("staging-21.05", base)
    staging.checkout()
    merge_commit = commit_file(repo, "hello.nix", "hello\n", "hello: init")
    repo.create_head("staging-next-21.05", merge_commit)

    return SimpleNamespace(repo=repo, base=base.hexsha, merge_commit=merge_commit.hexsha)


@pytest.fixture
def mirror(tmp_path, upstream):
    """Local clone of the upstream repository, remote named 'origin'."""
    return Repo.clone_from(str(upstream.repo.working_tree_dir), str(tmp_path / "mirror"))
