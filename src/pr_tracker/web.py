"""FastAPI application serving the tracker page."""

from __future__ import annotations

import logging
import socket
from typing import Callable

import uvicorn
from fastapi import FastAPI
from fastapi.responses import HTMLResponse
from jinja2 import Environment, PackageLoader, select_autoescape

from .config import Settings
from .github import GitHub
from .models import OgMeta
from .nixpkgs import Nixpkgs
from .tracker import MergeInfoLookup, TrackResult, track_pr

logger = logging.getLogger(__name__)

templates = Environment(
    loader=PackageLoader("pr_tracker", "templates"),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


def render_page(result: TrackResult, source_url: str) -> str:
    """Render page.html for a tracking result."""
    ogmeta = OgMeta.from_tree(result.tree) if result.tree is not None else None
    return templates.get_template("page.html").render(
        error=result.error,
        pr_number=result.pr_number,
        title=result.title,
        closed=result.closed,
        tree=result.tree.to_dict() if result.tree is not None else None,
        ogmeta=ogmeta,
        source_url=source_url,
    )


def create_app(
    settings: Settings,
    github_factory: Callable[[], MergeInfoLookup] | None = None,
    nixpkgs: Nixpkgs | None = None,
) -> FastAPI:
    """Build the app.

    Args:
        settings: Service configuration.
        github_factory: Returns a GitHub client per request. Defaults to a
            real client using the configured token and user agent.
        nixpkgs: Local mirror. Defaults to the configured path and remote.
    """
    app = FastAPI(title="pr-tracker", docs_url=None, redoc_url=None, openapi_url=None)
    _nixpkgs = nixpkgs or Nixpkgs(settings.path, settings.remote)

    def default_github() -> GitHub:
        return GitHub(settings.github_token, settings.user_agent)

    _github_factory = github_factory or default_github

    # Sync on purpose: FastAPI runs these in its threadpool.
    @app.get(settings.mount, response_class=HTMLResponse)
    def handle_request(pr: str | None = None) -> HTMLResponse:
        github = _github_factory()
        try:
            result = track_pr(pr, github, _nixpkgs)
        finally:
            close = getattr(github, "close", None)
            if close is not None:
                close()

        return HTMLResponse(
            render_page(result, settings.source_url),
            status_code=result.status_code,
        )

    @app.get(settings.mount + "health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


def serve(
    app: FastAPI,
    sockets: list[socket.socket] | None = None,
    host: str = "127.0.0.1",
    port: int = 8000,
) -> None:
    """Run the app with uvicorn, on inherited sockets if given."""
    config = uvicorn.Config(app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)
    if sockets:
        server.run(sockets=sockets)
    else:
        server.run()
