"""MCP server exposing pr-tracker queries as tools."""

import asyncio
import json
import logging
import sys
import traceback

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .branches import next_branches
from .config import Settings, settings_from_env
from .github import GitHub
from .nixpkgs import Nixpkgs
from .tracker import track_pr

logger = logging.getLogger("pr_tracker")

server = Server("pr-tracker")

# Filled in by main(); tools that need GitHub or the mirror report an error
# until then.
settings: Settings | None = None


@server.list_tools()
async def list_tools() -> list[Tool]:
    """List available MCP tools."""
    return [
        Tool(
            name="track_pr",
            description=(
                "Show which nixpkgs branches a pull request has reached. "
                "Returns a tree rooted at the PR's base branch; each node has "
                "accepted=true (contains the PR), false (doesn't yet) or null (unknown)."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "pr": {
                        "type": "integer",
                        "description": "nixpkgs pull request number",
                    },
                },
                "required": ["pr"],
            },
        ),
        Tool(
            name="next_branches",
            description="List the branches a nixpkgs branch flows into next.",
            inputSchema={
                "type": "object",
                "properties": {
                    "branch": {
                        "type": "string",
                        "description": "Branch name, e.g. 'staging-next' or 'release-24.05'",
                    },
                },
                "required": ["branch"],
            },
        ),
    ]


def _track(pr: int) -> dict:
    if settings is None:
        raise RuntimeError("Server is not configured")

    with GitHub(settings.github_token, settings.user_agent) as github:
        result = track_pr(str(pr), github, Nixpkgs(settings.path, settings.remote))

    return {
        "status": result.status_code,
        "pr_number": result.pr_number,
        "title": result.title,
        "closed": result.closed,
        "error": result.error,
        "tree": result.tree.to_dict() if result.tree is not None else None,
    }


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    """Handle tool calls."""
    try:
        if name == "track_pr":
            # GitHub and git are blocking; keep them off the event loop.
            result = await asyncio.to_thread(_track, arguments["pr"])
            return [TextContent(type="text", text=json.dumps(result, indent=2))]

        elif name == "next_branches":
            result = next_branches(arguments["branch"])
            return [TextContent(type="text", text=json.dumps(result))]

        else:
            return [TextContent(type="text", text=f"Unknown tool: {name}")]

    except Exception as e:
        logger.error(f"Tool {name} failed: {e}")
        logger.error(traceback.format_exc())
        return [TextContent(type="text", text=f"Error: {e}")]


def main():
    """Entry point for the MCP server."""
    global settings

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    # stdin carries the MCP protocol, so the token must come from GITHUB_TOKEN.
    settings = settings_from_env()
    logger.info(f"pr-tracker MCP server starting (mirror={settings.path}, remote={settings.remote})")
    try:
        asyncio.run(_run_server())
    except Exception as e:
        logger.error(f"Server crashed: {e}")
        logger.error(traceback.format_exc())
        raise


async def _run_server():
    """Run the MCP server."""
    async with stdio_server() as (read, write):
        await server.run(read, write, server.create_initialization_options())


if __name__ == "__main__":
    main()
