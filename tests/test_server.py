"""Tests for the MCP tool handlers."""

import asyncio
import json

import pytest

from pr_tracker import server
from pr_tracker.models import MergeInfo, PullRequestStatus

from conftest import FakeGitHub, FakeNixpkgs


def _call(name: str, arguments: dict) -> str:
    contents = asyncio.run(server.call_tool(name, arguments))
    assert len(contents) == 1
    return contents[0].text


def test_list_tools():
    tools = asyncio.run(server.list_tools())
    assert {tool.name for tool in tools} == {"track_pr", "next_branches"}


def test_next_branches_tool():
    assert json.loads(_call("next_branches", {"branch": "master"})) == [
        "nixpkgs-unstable",
        "nixos-unstable-small",
    ]


def test_unknown_tool():
    assert _call("nope", {}) == "Unknown tool: nope"


def test_track_pr_unconfigured(monkeypatch):
    monkeypatch.setattr(server, "settings", None)
    assert _call("track_pr", {"pr": 1}) == "Error: Server is not configured"


@pytest.fixture
def configured(monkeypatch, settings):
    """Configure the server with fake GitHub and mirror backends."""
    github = FakeGitHub(MergeInfo(
        branch="staging-21.05",
        title="hello: init",
        status=PullRequestStatus.merged("abc"),
    ))
    nixpkgs = FakeNixpkgs({"staging-21.05", "staging-next-21.05"})
    opened = []

    class GitHubContext:
        def __init__(self, token, user_agent):
            opened.append((token, user_agent))

        def __enter__(self):
            return github

        def __exit__(self, *args):
            pass

    monkeypatch.setattr(server, "settings", settings)
    monkeypatch.setattr(server, "GitHub", GitHubContext)
    monkeypatch.setattr(server, "Nixpkgs", lambda path, remote: nixpkgs)
    return github, nixpkgs, opened


def test_track_pr_tool(configured):
    github, nixpkgs, opened = configured
    data = json.loads(_call("track_pr", {"pr": 123}))

    assert opened == [("test-token", "pr-tracker-tests")]
    assert github.requested == [123]
    assert nixpkgs.queried == ["abc"]
    assert data["status"] == 200
    assert data["pr_number"] == "123"
    assert data["title"] == "hello: init"
    assert data["closed"] is False
    assert data["error"] is None

    tree = data["tree"]
    assert tree["branch_name"] == "staging-21.05"
    assert tree["accepted"] is True
    staging_next = tree["children"][0]
    assert staging_next["branch_name"] == "staging-next-21.05"
    assert staging_next["accepted"] is True
    assert staging_next["children"][0]["branch_name"] == "release-21.05"
    assert staging_next["children"][0]["accepted"] is False


def test_track_pr_tool_not_found(configured):
    github, _, _ = configured
    github.merge_info = None
    data = json.loads(_call("track_pr", {"pr": 9}))
    assert data["status"] == 404
    assert data["error"] == "No such nixpkgs PR #9."
    assert data["tree"] is None
