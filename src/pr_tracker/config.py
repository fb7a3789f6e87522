"""Service configuration.

Options come from the command line (with PR_TRACKER_* environment variable
fallbacks); the GitHub token comes from GITHUB_TOKEN or the first line of
stdin, so it never shows up in the process list.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TextIO

from pydantic import BaseModel, ValidationError, field_validator

from .errors import ConfigError

ENV_PREFIX = "PR_TRACKER_"


def normalize_mount(mount: str) -> str:
    """Make sure a URL prefix starts and ends with exactly one slash."""
    stripped = mount.strip("/")
    return f"/{stripped}/" if stripped else "/"


class Settings(BaseModel):
    path: Path                  # local nixpkgs mirror
    remote: str                 # name of the upstream remote in that mirror
    user_agent: str
    source_url: str = ""        # where this service's source is published
    mount: str = "/"
    github_token: str

    @field_validator("mount")
    @classmethod
    def _normalize_mount(cls, value: str) -> str:
        return normalize_mount(value)

    @field_validator("remote", "user_agent", "github_token")
    @classmethod
    def _not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("must not be empty")
        return value


def read_token(stream: TextIO) -> str:
    """Read the GitHub token from the first line of `stream`."""
    try:
        line = stream.readline()
    except OSError as e:
        raise ConfigError(f"read: {e}") from e
    return line.rstrip("\n")


def resolve_token(stream: TextIO | None) -> str:
    """GITHUB_TOKEN if set, else the first line of `stream` (if given)."""
    if token := os.environ.get("GITHUB_TOKEN"):
        return token
    token = read_token(stream) if stream is not None else ""
    if not token:
        raise ConfigError("No GitHub token: set GITHUB_TOKEN or pass it on stdin")
    return token


def settings_from_env(stream: TextIO | None = None) -> Settings:
    """Build settings from PR_TRACKER_* variables, for the MCP server."""
    values = {}
    for field in ("path", "remote", "user_agent", "source_url", "mount"):
        name = ENV_PREFIX + field.upper()
        if name in os.environ:
            values[field] = os.environ[name]
    values.setdefault("user_agent", "pr-tracker")

    missing = [f for f in ("path", "remote") if f not in values]
    if missing:
        names = ", ".join(ENV_PREFIX + f.upper() for f in missing)
        raise ConfigError(f"Missing configuration: {names}")

    return make_settings(**values, github_token=resolve_token(stream))


def make_settings(**values) -> Settings:
    """Validate settings, reporting problems as ConfigError."""
    try:
        return Settings(**values)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration: {problems}") from e
