"""Track a single pull request: GitHub lookup, then the acceptance tree."""

from __future__ import annotations

import logging
import re
from typing import Protocol

from pydantic import BaseModel

from .branches import DEFAULT_RULES, SuccessionRuleTable
from .errors import GitHubError, NotFoundError, RuleTableError
from .models import MergeInfo, TreeNode
from .tree import ContainmentLookup, make_tree

logger = logging.getLogger(__name__)

OLD_PR_MESSAGE = (
    "For older PRs, GitHub doesn't tell us the merge commit, "
    "so we're unable to track this PR past being merged."
)

# Signed 64-bit, ASCII digits only.
_PR_NUMBER = re.compile(r"[+-]?[0-9]+")
_PR_NUMBER_MIN = -(2**63)
_PR_NUMBER_MAX = 2**63 - 1


class MergeInfoLookup(Protocol):
    def merge_info_for_nixpkgs_pr(self, pr: int) -> MergeInfo: ...


class TrackResult(BaseModel):
    """Everything a page (or the CLI) needs to show about one PR."""

    status_code: int = 200
    error: str | None = None
    pr_number: str | None = None
    title: str | None = None
    closed: bool = False
    tree: TreeNode | None = None


def track_pr(
    pr_number: str | None,
    github: MergeInfoLookup,
    nixpkgs: ContainmentLookup,
    rules: SuccessionRuleTable = DEFAULT_RULES,
) -> TrackResult:
    """Look up a PR and work out which branches it has reached.

    Never raises for GitHub, git or rule table trouble: those end up in the
    result's status_code and error.
    """
    result = TrackResult()
    if pr_number is None:
        return result

    number = parse_pr_number(pr_number)
    if number is None:
        result.status_code = 400
        result.error = f"Invalid PR number: {pr_number}"
        return result

    try:
        merge_info = github.merge_info_for_nixpkgs_pr(number)
    except NotFoundError:
        result.status_code = 404
        result.error = f"No such nixpkgs PR #{number}."
        return result
    except GitHubError as e:
        logger.error(f"GitHub lookup for PR #{number} failed: {e}")
        result.status_code = 500
        result.error = str(e)
        return result

    result.pr_number = pr_number
    result.title = merge_info.title or None

    if merge_info.status.is_closed:
        result.closed = True
        return result

    try:
        result.tree = make_tree(merge_info.branch, merge_info.status, nixpkgs, rules)
    except RuleTableError as e:
        logger.error(f"Building the tree for PR #{number} failed: {e}")
        result.status_code = 500
        result.error = str(e)
        return result

    if merge_info.status.is_merged and merge_info.status.merge_commit_oid is None:
        result.error = OLD_PR_MESSAGE

    return result


def parse_pr_number(text: str) -> int | None:
    """Parse a PR number, or return None if it isn't a plain 64-bit integer."""
    if not _PR_NUMBER.fullmatch(text):
        return None
    number = int(text)
    if not _PR_NUMBER_MIN <= number <= _PR_NUMBER_MAX:
        return None
    return number
