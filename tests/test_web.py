"""Tests for the HTML front end."""

from fastapi.testclient import TestClient

from pr_tracker.errors import ResponseError
from pr_tracker.models import MergeInfo, PullRequestStatus
from pr_tracker.web import create_app

from conftest import FakeGitHub, FakeNixpkgs


def _client(settings, github: FakeGitHub, nixpkgs: FakeNixpkgs | None = None) -> TestClient:
    app = create_app(settings, github_factory=lambda: github, nixpkgs=nixpkgs or FakeNixpkgs())
    return TestClient(app)


def _merged(branch: str = "staging-21.05", oid: str | None = "abc") -> FakeGitHub:
    return FakeGitHub(MergeInfo(
        branch=branch,
        title="hello: init <2.12>",
        status=PullRequestStatus.merged(oid),
    ))


class TestPage:
    def test_empty_form(self, settings):
        response = _client(settings, FakeGitHub()).get("/")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "<form" in response.text
        assert settings.source_url in response.text

    def test_tracked_pr(self, settings):
        nixpkgs = FakeNixpkgs({"staging-21.05", "staging-next-21.05"})
        response = _client(settings, _merged(), nixpkgs).get("/", params={"pr": "123"})

        assert response.status_code == 200
        text = response.text
        assert "https://github.com/NixOS/nixpkgs/pull/123" in text
        assert "staging-next-21.05" in text
        assert "nixos-21.05-small" in text
        assert 'class="state-accepted"' in text
        assert 'class="state-rejected"' in text
        assert "og:description" in text

    def test_title_escaped(self, settings):
        response = _client(settings, _merged()).get("/", params={"pr": "1"})
        assert "hello: init &lt;2.12&gt;" in response.text
        assert "<2.12>" not in response.text

    def test_invalid_number(self, settings):
        response = _client(settings, FakeGitHub()).get("/", params={"pr": "nope"})
        assert response.status_code == 400
        assert "Invalid PR number: nope" in response.text

    def test_not_found(self, settings):
        response = _client(settings, FakeGitHub()).get("/", params={"pr": "7"})
        assert response.status_code == 404
        assert "No such nixpkgs PR #7." in response.text

    def test_github_error(self, settings):
        github = FakeGitHub(error=ResponseError(503))
        response = _client(settings, github).get("/", params={"pr": "7"})
        assert response.status_code == 500
        assert "Unexpected response status: 503" in response.text

    def test_closed(self, settings):
        github = FakeGitHub(MergeInfo(branch="master", status=PullRequestStatus.closed()))
        response = _client(settings, github).get("/", params={"pr": "7"})
        assert response.status_code == 200
        assert "closed without being merged" in response.text
        assert "nixpkgs-unstable" not in response.text

    def test_old_pr_warning(self, settings):
        response = _client(settings, _merged(oid=None)).get("/", params={"pr": "7"})
        assert response.status_code == 200
        assert "doesn&#39;t tell us the merge commit" in response.text
        assert 'class="state-unknown"' in response.text


class TestMount:
    def test_served_under_mount(self, settings):
        settings = settings.model_copy(update={"mount": "/tracker/"})
        client = _client(settings, FakeGitHub())
        assert client.get("/tracker/").status_code == 200
        assert client.get("/tracker/health").json() == {"status": "ok"}
        assert client.get("/").status_code == 404

    def test_health(self, settings):
        assert _client(settings, FakeGitHub()).get("/health").json() == {"status": "ok"}
