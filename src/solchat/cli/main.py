"""CLI entry point for solchat."""

import asyncio
from typing import Optional

import typer
from rich.console import Console

from .. import __version__
from .cmd import config as config_cmd

app = typer.Typer(
    name="solchat",
    help="Streaming chat API for a Solana tool-using agent",
    no_args_is_help=True,
    add_completion=False,
)
app.add_typer(config_cmd.app, name="config")

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"solchat {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
):
    """Streaming chat API for a Solana tool-using agent."""


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Interface to bind (default from config)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port to listen on (default from config)"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="debug, info, warn or error"),
):
    """Run the chat API server."""
    from ..core.config import ConfigManager
    from ..runtime.logging import bootstrap_logging
    from .cmd.serve import serve_command

    settings = bootstrap_logging(mode="web", level=log_level)
    server = asyncio.run(ConfigManager.get()).server
    serve_command(host=host or server.host, port=port or server.port, settings=settings)


@app.command()
def tools(
    all_tools: bool = typer.Option(False, "--all", help="Ignore the disabled list and env gating"),
):
    """Print tool metadata as newline-delimited JSON."""
    from ..core.config import ConfigManager
    from ..tool.registry import ToolRegistry

    registry = ToolRegistry()
    if all_tools:
        body = registry.metadata_lines(env={name: "set" for t in registry.list() for name in t.required_env_vars})
    else:
        body = registry.metadata_lines(asyncio.run(ConfigManager.get()).tools.disabled)
    if body:
        typer.echo(body)


if __name__ == "__main__":
    app()
