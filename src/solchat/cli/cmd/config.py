"""Configuration inspection commands."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import typer
from rich.console import Console

from ...core.config import ConfigManager
from ...core.global_paths import GlobalPath
from ...util.log import REDACTED, SECRET_TAGS

app = typer.Typer(help="Inspect configuration", no_args_is_help=True)
console = Console()


def redact(value: Any) -> Any:
    """Copy of ``value`` with secret-named keys masked at any depth."""
    if isinstance(value, dict):
        return {k: (REDACTED if k in SECRET_TAGS and v else redact(v)) for k, v in value.items()}
    if isinstance(value, list):
        return [redact(item) for item in value]
    return value


@app.command("show")
def show_command() -> None:
    """Print the merged configuration with secrets masked."""
    config = asyncio.run(ConfigManager.get())
    console.print_json(json.dumps(redact(config.model_dump(mode="json")), default=str))


@app.command("path")
def path_command() -> None:
    """Print the directory searched for solchat.json / solchat.jsonc."""
    typer.echo(GlobalPath.config())
