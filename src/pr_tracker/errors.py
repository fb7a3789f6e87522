"""Exception hierarchy for pr-tracker.

All errors inherit from PrTrackerError so callers can catch everything
raised by this package in one place.
"""

from __future__ import annotations


class PrTrackerError(Exception):
    """Base for all pr-tracker errors."""


# ─────────────────────────────────────────────────────────────────────────────
# Succession rules
# ─────────────────────────────────────────────────────────────────────────────


class RuleTableError(PrTrackerError):
    """The succession rule table is malformed (bad pattern or template)."""


class CyclicRuleTableError(RuleTableError):
    """Expanding a branch revisited a branch already on the current path.

    Attributes:
        cycle: Branch names forming the cycle, first and last equal.
    """

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = cycle
        super().__init__("Succession rules form a cycle: " + " -> ".join(cycle))


# ─────────────────────────────────────────────────────────────────────────────
# GitHub
# ─────────────────────────────────────────────────────────────────────────────


class GitHubError(PrTrackerError):
    """Base for errors talking to the GitHub API."""


class NotFoundError(GitHubError):
    """The pull request (or repository) does not exist."""

    def __init__(self, message: str = "Not found") -> None:
        super().__init__(message)


class RequestError(GitHubError):
    """The request could not be sent or no response was received."""


class ResponseError(GitHubError):
    """GitHub answered with an unexpected HTTP status.

    Attributes:
        status_code: The HTTP status GitHub returned.
    """

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"Unexpected response status: {status_code}")


class DeserializationError(GitHubError):
    """The response body was not the JSON shape we asked for."""


# ─────────────────────────────────────────────────────────────────────────────
# Local git mirror
# ─────────────────────────────────────────────────────────────────────────────


class GitError(PrTrackerError):
    """Base for errors running git against the local mirror."""


class GitExitError(GitError):
    """git ran but exited unsuccessfully.

    Attributes:
        status: Exit code, or None if git was killed by a signal.
        signal: Signal number when killed by a signal, else None.
    """

    def __init__(self, status: int | None, signal: int | None = None) -> None:
        self.status = status
        self.signal = signal
        if status is None and signal is not None:
            message = f"git killed by signal {signal}"
        else:
            message = f"git exited {status}"
        super().__init__(message)


class GitIOError(GitError):
    """git could not be run at all (missing binary, bad repository path)."""


# ─────────────────────────────────────────────────────────────────────────────
# Process setup
# ─────────────────────────────────────────────────────────────────────────────


class ConfigError(PrTrackerError):
    """Missing or invalid configuration."""


class SocketActivationError(PrTrackerError):
    """Inherited file descriptors could not be used as listening sockets."""
