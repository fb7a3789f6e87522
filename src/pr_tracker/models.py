"""Core data models for pr-tracker.

Uses Pydantic v2 for validation and serialization.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterator

from pydantic import BaseModel, Field


class Acceptance(str, Enum):
    """Whether a branch is known to contain a pull request's merge commit."""

    ACCEPTED = "accepted"  # confirmed present
    REJECTED = "rejected"  # confirmed absent
    UNKNOWN = "unknown"    # not enough data to say

    def as_bool(self) -> bool | None:
        """Projection used by the templates: True, False or None."""
        if self is Acceptance.ACCEPTED:
            return True
        if self is Acceptance.REJECTED:
            return False
        return None


class TreeNode(BaseModel):
    """A branch in the acceptance tree.

    `acceptance` is None until the tree has been annotated.
    """

    branch_name: str
    acceptance: Acceptance | None = None
    children: list[TreeNode] = Field(default_factory=list)

    @property
    def accepted(self) -> bool | None:
        if self.acceptance is None:
            return None
        return self.acceptance.as_bool()

    def walk(self) -> Iterator[TreeNode]:
        """Iterate over this node and all descendants, pre-order."""
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> dict:
        """Render projection: branch name, nullable boolean, children."""
        return {
            "branch_name": self.branch_name,
            "accepted": self.accepted,
            "children": [child.to_dict() for child in self.children],
        }


class OgMeta(BaseModel):
    """Simplified tree for the Open Graph description of a page."""

    branch_name: str
    accepted: bool | None = None
    children: list[OgMeta] = Field(default_factory=list)

    @classmethod
    def from_tree(cls, tree: TreeNode) -> OgMeta:
        return cls(
            branch_name=tree.branch_name,
            accepted=tree.accepted,
            children=[cls.from_tree(child) for child in tree.children],
        )

    def marker(self) -> str:
        if self.accepted is True:
            return "✅"
        if self.accepted is False:
            return "❌"
        return "❔"

    def summary(self) -> str:
        """One line per root-to-leaf path, e.g. "staging ✅ → staging-next ❌"."""
        head = f"{self.branch_name} {self.marker()}"
        if not self.children:
            return head
        lines = []
        for child in self.children:
            for line in child.summary().splitlines():
                lines.append(f"{head} → {line}")
        return "\n".join(lines)


# ─────────────────────────────────────────────────────────────────────────────
# Pull requests
# ─────────────────────────────────────────────────────────────────────────────


class PullRequestState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    MERGED = "merged"


class PullRequestStatus(BaseModel):
    """Where a pull request stands.

    merge_commit_oid is only meaningful when merged, and may still be None:
    GitHub doesn't provide it for PRs merged before around March 2016.
    """

    state: PullRequestState
    merge_commit_oid: str | None = None

    @classmethod
    def open(cls) -> PullRequestStatus:
        return cls(state=PullRequestState.OPEN)

    @classmethod
    def closed(cls) -> PullRequestStatus:
        return cls(state=PullRequestState.CLOSED)

    @classmethod
    def merged(cls, merge_commit_oid: str | None = None) -> PullRequestStatus:
        return cls(state=PullRequestState.MERGED, merge_commit_oid=merge_commit_oid)

    @property
    def is_merged(self) -> bool:
        return self.state is PullRequestState.MERGED

    @property
    def is_closed(self) -> bool:
        return self.state is PullRequestState.CLOSED


class MergeInfo(BaseModel):
    """What GitHub tells us about a pull request."""

    branch: str  # base branch the PR targets
    title: str = ""
    status: PullRequestStatus
