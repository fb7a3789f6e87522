"""Branch succession rules for nixpkgs.

A succession rule says that changes landing in one branch are expected to
later land in another. Rules are (pattern, template) pairs: the pattern is
matched against a whole branch name, and the template builds the successor
name, with $1, $2, ... replaced by the pattern's capture groups.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Iterator

from .errors import RuleTableError


@dataclass(frozen=True)
class SuccessionRule:
    """One edge of the branch succession graph."""

    pattern: str
    template: str


# staging-YY.MM goes straight to release-YY.MM for 10.xx through 20.xx.
# From 21.xx on, and for 0x.xx, it goes through staging-next-YY.MM first.
NEXT_BRANCH_TABLE: tuple[SuccessionRule, ...] = (
    SuccessionRule(r"\Astaging\Z", "staging-next"),
    SuccessionRule(r"\Astaging-next\Z", "master"),
    SuccessionRule(r"\Astaging-next-([\d.]+)\Z", "release-$1"),
    SuccessionRule(r"\Amaster\Z", "nixpkgs-unstable"),
    SuccessionRule(r"\Amaster\Z", "nixos-unstable-small"),
    SuccessionRule(r"\Anixos-(.*)-small\Z", "nixos-$1"),
    SuccessionRule(r"\Arelease-([\d.]+)\Z", "nixpkgs-$1-darwin"),
    SuccessionRule(r"\Arelease-([\d.]+)\Z", "nixos-$1-small"),
    SuccessionRule(r"\Astaging-((1.|20)\.\d{2})\Z", "release-$1"),
    SuccessionRule(r"\Astaging-((2[1-9]|[3-90].)\.\d{2})\Z", "staging-next-$1"),
)

_GROUP_REF = re.compile(r"\$(\d+)")


class SuccessionRuleTable:
    """Compiled, read-only view of a set of succession rules.

    Rules sharing the same pattern text are grouped, and every template in
    the group applies to a matching branch. Patterns are tried in ascending
    order of their source text; templates within a pattern keep the order
    they were declared in.
    """

    def __init__(self, rules: Iterable[SuccessionRule]):
        """Group and compile the rules.

        Raises:
            RuleTableError: If a pattern does not compile, or a template
                refers to a capture group its pattern doesn't have.
        """
        grouped: dict[str, list[str]] = {}
        for rule in rules:
            grouped.setdefault(rule.pattern, []).append(rule.template)

        self._entries: list[tuple[re.Pattern[str], tuple[str, ...]]] = []
        for pattern in sorted(grouped):
            try:
                regex = re.compile(pattern)
            except re.error as e:
                raise RuleTableError(f"Invalid branch pattern {pattern!r}: {e}") from e

            templates = tuple(grouped[pattern])
            for template in templates:
                for ref in _GROUP_REF.findall(template):
                    if int(ref) > regex.groups:
                        raise RuleTableError(
                            f"Template {template!r} refers to group ${ref}, "
                            f"but {pattern!r} has {regex.groups} group(s)"
                        )
            self._entries.append((regex, templates))

    def __len__(self) -> int:
        return sum(len(templates) for _, templates in self._entries)

    def edges(self) -> Iterator[SuccessionRule]:
        """Yield every rule in resolution order."""
        for regex, templates in self._entries:
            for template in templates:
                yield SuccessionRule(regex.pattern, template)

    def next_branches(self, branch: str) -> list[str]:
        """Return the branches that `branch` flows into.

        Duplicates are kept: two rules producing the same name yield it twice.
        """
        nexts = []
        for regex, templates in self._entries:
            match = regex.fullmatch(branch)
            if match is None:
                continue
            for template in templates:
                nexts.append(_expand(match, template))
        return nexts


def _expand(match: re.Match[str], template: str) -> str:
    return _GROUP_REF.sub(lambda ref: match.group(int(ref.group(1))) or "", template)


DEFAULT_RULES = SuccessionRuleTable(NEXT_BRANCH_TABLE)


def next_branches(branch: str) -> list[str]:
    """Successors of `branch` under the shipped nixpkgs rules."""
    return DEFAULT_RULES.next_branches(branch)
