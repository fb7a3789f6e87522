"""Acceptance tree: which branches a pull request has reached.

The tree is built fresh for every query. Its root is the PR's base branch
and each node's children are the node's successors under the succession
rules. A branch reachable along several paths appears once per path; the
tree is not collapsed into a DAG.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from .branches import DEFAULT_RULES, SuccessionRuleTable
from .errors import CyclicRuleTableError, GitError
from .models import Acceptance, PullRequestStatus, TreeNode

if TYPE_CHECKING:
    from collections.abc import Set

logger = logging.getLogger(__name__)


class ContainmentLookup(Protocol):
    def branches_containing_commit(self, commit: str) -> set[str]: ...


def build_tree(
    branch: str,
    rules: SuccessionRuleTable = DEFAULT_RULES,
) -> tuple[TreeNode, set[str]]:
    """Expand `branch` into the tree of every branch reachable from it.

    Returns:
        (tree, found_branches) where found_branches holds every branch name
        in the tree. Nodes are not yet annotated.

    Raises:
        CyclicRuleTableError: If a branch is its own (transitive) successor.
    """
    found_branches: set[str] = set()
    tree = _generate(branch, rules, found_branches, [])
    return tree, found_branches


def _generate(
    branch: str,
    rules: SuccessionRuleTable,
    found_branches: set[str],
    path: list[str],
) -> TreeNode:
    if branch in path:
        raise CyclicRuleTableError(path[path.index(branch):] + [branch])

    found_branches.add(branch)
    path.append(branch)
    children = [
        _generate(next_branch, rules, found_branches, path)
        for next_branch in rules.next_branches(branch)
    ]
    path.pop()

    return TreeNode(branch_name=branch, children=children)


def fill_accepted(
    tree: TreeNode,
    branches: Set[str],
    missing_means_absent: bool,
) -> TreeNode:
    """Annotate every node in place.

    A node is ACCEPTED if its branch is in `branches`. Otherwise it is
    REJECTED when `missing_means_absent` is set, else UNKNOWN.
    """
    for node in tree.walk():
        if node.branch_name in branches:
            node.acceptance = Acceptance.ACCEPTED
        elif missing_means_absent:
            node.acceptance = Acceptance.REJECTED
        else:
            node.acceptance = Acceptance.UNKNOWN
    return tree


def make_tree(
    base_branch: str,
    status: PullRequestStatus,
    nixpkgs: ContainmentLookup,
    rules: SuccessionRuleTable = DEFAULT_RULES,
) -> TreeNode:
    """Build and annotate the acceptance tree for a pull request.

    Args:
        base_branch: Branch the PR targets.
        status: PR status from GitHub.
        nixpkgs: Lookup for the branches that contain a commit.
        rules: Succession rules to expand with.
    """
    missing_means_absent = True
    tree, branches = build_tree(base_branch, rules)

    if status.is_merged:
        if status.merge_commit_oid is not None:
            try:
                containing = nixpkgs.branches_containing_commit(status.merge_commit_oid)
            except GitError as e:
                logger.warning(f"branches_containing_commit: {e}")
                containing = set()
                missing_means_absent = False
            branches &= containing
        else:
            branches = set()
            missing_means_absent = False

        # GitHub told us the PR was merged into its base branch, so that
        # branch contains it even if the local mirror can't confirm it.
        branches.add(base_branch)
    else:
        branches = set()

    return fill_accepted(tree, branches, missing_means_absent)
