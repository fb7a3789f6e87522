"""CLI for pr-tracker: serve the web page, or track a PR from the terminal."""

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from .branches import DEFAULT_RULES, next_branches
from .config import make_settings, resolve_token
from .errors import ConfigError, PrTrackerError
from .github import GitHub
from .models import TreeNode
from .nixpkgs import Nixpkgs
from .systemd import listen_fds, listen_sockets
from .tracker import track_pr

console = Console()

# sysexits.h
EX_USAGE = 64
EX_OSERR = 71
EX_IOERR = 74

_MARKERS = {
    True: "[green]✅[/green]",
    False: "[red]❌[/red]",
    None: "[yellow]❔[/yellow]",
}


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def _rich_tree(node: TreeNode, parent: Tree | None = None) -> Tree:
    label = f"{_MARKERS[node.accepted]} {escape(node.branch_name)}"
    branch = Tree(label) if parent is None else parent.add(label)
    for child in node.children:
        _rich_tree(child, branch)
    return branch


@click.group()
def cli():
    """pr-tracker - Follow a nixpkgs PR through the branches it reaches."""


def mirror_options(f):
    """Options shared by commands that need the local nixpkgs mirror."""
    f = click.option(
        "--remote",
        envvar="PR_TRACKER_REMOTE",
        required=True,
        help="Name of the upstream remote in the mirror",
    )(f)
    f = click.option(
        "--path",
        envvar="PR_TRACKER_PATH",
        required=True,
        type=click.Path(path_type=Path, file_okay=False),
        help="Path to a local nixpkgs clone",
    )(f)
    return f


@cli.command()
@mirror_options
@click.option("--user-agent", envvar="PR_TRACKER_USER_AGENT", required=True, help="User-Agent for GitHub requests")
@click.option("--source-url", envvar="PR_TRACKER_SOURCE_URL", required=True, help="Public URL of this service's source code")
@click.option("--mount", envvar="PR_TRACKER_MOUNT", default="/", show_default=True, help="URL prefix to serve under")
@click.option("--host", default=None, help="Listen on this host instead of inherited sockets")
@click.option("--port", type=int, default=None, help="Listen on this port instead of inherited sockets")
@click.option("-v", "--verbose", is_flag=True, help="Log debug output")
def serve(path, remote, user_agent, source_url, mount, host, port, verbose):
    """Serve the tracker page.

    The GitHub token is taken from GITHUB_TOKEN, or read from the first line
    of stdin. Listening sockets come from systemd socket activation unless
    --host or --port is given.
    """
    from .web import create_app, serve as run_server

    setup_logging(verbose)
    logger = logging.getLogger("pr_tracker")

    try:
        settings = make_settings(
            path=path,
            remote=remote,
            user_agent=user_agent,
            source_url=source_url,
            mount=mount,
            github_token=resolve_token(sys.stdin),
        )
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(EX_IOERR)

    app = create_app(settings)

    if host is not None or port is not None:
        run_server(app, host=host or "127.0.0.1", port=port or 8000)
        return

    try:
        fd_count = listen_fds(True)
    except PrTrackerError as e:
        logger.error(f"sd_listen_fds: {e}")
        sys.exit(EX_OSERR)

    if fd_count == 0:
        logger.error("No listen file descriptors given")
        sys.exit(EX_USAGE)

    try:
        sockets = listen_sockets(fd_count)
    except PrTrackerError as e:
        logger.error(str(e))
        sys.exit(EX_USAGE)

    run_server(app, sockets=sockets)


@cli.command()
@click.argument("pr")
@mirror_options
@click.option("--user-agent", envvar="PR_TRACKER_USER_AGENT", default="pr-tracker", show_default=True, help="User-Agent for GitHub requests")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def track(pr, path, remote, user_agent, as_json):
    """Show which branches PR has reached."""
    try:
        token = resolve_token(sys.stdin)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    with GitHub(token, user_agent) as github:
        result = track_pr(pr, github, Nixpkgs(path, remote))

    if as_json:
        click.echo(json.dumps({
            "pr_number": result.pr_number,
            "title": result.title,
            "closed": result.closed,
            "error": result.error,
            "tree": result.tree.to_dict() if result.tree is not None else None,
        }, indent=2))
    else:
        if result.pr_number is not None:
            heading = f"[bold]#{result.pr_number}[/bold]"
            if result.title:
                heading += f" {escape(result.title)}"
            console.print(heading)
        if result.closed:
            console.print("[yellow]Closed without being merged.[/yellow]")
        if result.tree is not None:
            console.print(_rich_tree(result.tree))
        if result.error:
            style = "red" if result.status_code != 200 else "yellow"
            console.print(f"[{style}]{escape(result.error)}[/{style}]")

    if result.status_code != 200:
        sys.exit(1)


@cli.command("next")
@click.argument("branch")
def next_(branch):
    """List the branches BRANCH flows into."""
    for name in next_branches(branch):
        click.echo(name)


@cli.command()
def rules():
    """Show the branch succession rules in the order they are tried."""
    table = Table(title="Succession rules")
    table.add_column("Pattern", style="cyan")
    table.add_column("Next branch", style="green")
    for rule in DEFAULT_RULES.edges():
        table.add_row(escape(rule.pattern), escape(rule.template))
    console.print(table)


if __name__ == "__main__":
    cli()
