"""HTTP server for the solchat API.

Example:
    from solchat.server import Server

    info = await Server.start(port=4096)
    print(f"Server running at {info.url}")
    await Server.stop()
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Optional

import uvicorn

from ..runtime import AppContext
from ..util.log import Log
from .app import create_app

log = Log.create({"service": "server"})

DEFAULT_PORT = 4096


@dataclass
class ServerInfo:
    """Information about a running server."""
    host: str
    port: int

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"


class Server:
    """Runs the FastAPI app under uvicorn inside the current event loop."""

    _server: Optional[Any] = None
    _task: Optional[asyncio.Task] = None
    _info: Optional[ServerInfo] = None

    @classmethod
    async def start(
        cls,
        host: str = "127.0.0.1",
        port: int = DEFAULT_PORT,
        *,
        ctx: Optional[AppContext] = None,
        access_log: bool = True,
    ) -> ServerInfo:
        ctx = ctx or await AppContext.create()
        app = create_app(ctx, manage_lifecycle=True, access_log=access_log)

        config = uvicorn.Config(app, host=host, port=port, log_level="warning")
        cls._server = uvicorn.Server(config)
        cls._info = ServerInfo(host=host, port=port)

        log.info("starting server", {"host": host, "port": port})
        cls._task = asyncio.create_task(cls._server.serve())

        while not cls._server.started:
            if cls._task.done():
                # serve() returned early, e.g. the port is taken
                cls._task.result()
                raise RuntimeError(f"server failed to start on {host}:{port}")
            await asyncio.sleep(0.1)

        log.info("server started", {"url": cls._info.url})
        return cls._info

    @classmethod
    async def stop(cls) -> None:
        if cls._server is None:
            return
        log.info("stopping server")
        cls._server.should_exit = True
        if cls._task is not None:
            await cls._task
        cls._server = None
        cls._task = None
        cls._info = None
        log.info("server stopped")

    @classmethod
    def info(cls) -> Optional[ServerInfo]:
        return cls._info
