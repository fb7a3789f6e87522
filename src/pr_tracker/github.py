"""GitHub GraphQL client for pull request merge info."""

from __future__ import annotations

import httpx
from pydantic import ValidationError

from .errors import DeserializationError, NotFoundError, RequestError, ResponseError
from .models import MergeInfo, PullRequestStatus

GITHUB_GRAPHQL_URL = "https://api.github.com/graphql"

MERGE_COMMIT_QUERY = """\
query MergeCommitQuery($owner: String!, $repo: String!, $number: Int!) {
  repository(owner: $owner, name: $repo) {
    pullRequest(number: $number) {
      title
      baseRefName
      merged
      closed
      mergeCommit {
        oid
      }
    }
  }
}
"""

_NOT_FOUND_STATUS_CODES = {404, 410}


class GitHub:
    """Sync httpx client for the bits of the GitHub API we need.

    Usage::

        with GitHub(token, user_agent="pr-tracker") as github:
            info = github.merge_info_for_nixpkgs_pr(123456)
    """

    def __init__(
        self,
        token: str,
        user_agent: str,
        api_url: str = GITHUB_GRAPHQL_URL,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._api_url = api_url
        self._client = httpx.Client(
            timeout=timeout,
            transport=transport,
            headers={
                "Accept": "application/vnd.github.merge-info-preview+json",
                "User-Agent": user_agent,
                "Authorization": f"bearer {token}",
            },
        )

    def merge_info_for_nixpkgs_pr(self, pr: int) -> MergeInfo:
        """Fetch base branch, title and merge status of a NixOS/nixpkgs PR.

        Raises:
            NotFoundError: No such PR.
            RequestError: The request failed before a response arrived.
            ResponseError: GitHub answered with an unexpected status.
            DeserializationError: The response body wasn't what we expected.
        """
        return self.merge_info("NixOS", "nixpkgs", pr)

    def merge_info(self, owner: str, repo: str, pr: int) -> MergeInfo:
        payload = {
            "query": MERGE_COMMIT_QUERY,
            "variables": {"owner": owner, "repo": repo, "number": pr},
        }

        try:
            response = self._client.post(self._api_url, json=payload)
        except httpx.HTTPError as e:
            raise RequestError(f"Request error: {e}") from e

        if response.status_code in _NOT_FOUND_STATUS_CODES:
            raise NotFoundError()
        if not response.is_success:
            raise ResponseError(response.status_code)

        try:
            data = response.json()["data"]
        except (ValueError, KeyError, TypeError) as e:
            raise DeserializationError(f"Deserialization error: {e}") from e

        return _parse_merge_info(data)

    def close(self) -> None:
        """Close the underlying httpx client."""
        self._client.close()

    def __enter__(self) -> GitHub:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def _parse_merge_info(data: dict) -> MergeInfo:
    """Turn the query's `data` object into a MergeInfo."""
    if not isinstance(data, dict):
        raise DeserializationError(f"Deserialization error: unexpected data {data!r}")

    repository = data.get("repository")
    pr = repository.get("pullRequest") if repository else None
    if not pr:
        raise NotFoundError()

    try:
        if pr["merged"]:
            merge_commit = pr.get("mergeCommit")
            status = PullRequestStatus.merged(merge_commit["oid"] if merge_commit else None)
        elif pr["closed"]:
            status = PullRequestStatus.closed()
        else:
            status = PullRequestStatus.open()

        return MergeInfo(branch=pr["baseRefName"], title=pr.get("title") or "", status=status)
    except (KeyError, TypeError, ValidationError) as e:
        raise DeserializationError(f"Deserialization error: {e}") from e
