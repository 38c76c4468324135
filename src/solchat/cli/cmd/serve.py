"""Serve command - run the chat API server."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from rich.console import Console

from ...runtime.logging import LogSettings
from ...server.server import Server
from ...util.log import Log

log = Log.create({"service": "cli.serve"})
console = Console()


async def _wait_forever() -> None:
    await asyncio.Future()


async def serve_api(
    *,
    host: str,
    port: int,
    access_log: bool = True,
    wait: Callable[[], Awaitable[None]] | None = None,
) -> None:
    info = await Server.start(host=host, port=port, access_log=access_log)
    console.print(f"[green]solchat API[/green] running at {info.url}")
    log.info("api server started", {"host": host, "port": port})

    block = wait or _wait_forever
    try:
        await block()
    finally:
        await Server.stop()
        log.info("api server stopped", {"host": host, "port": port})


def serve_command(*, host: str, port: int, settings: LogSettings) -> None:
    try:
        asyncio.run(serve_api(host=host, port=port, access_log=settings.access_log))
    except KeyboardInterrupt:
        console.print("\nStopping solchat API...")
