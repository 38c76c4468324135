from __future__ import annotations

import asyncio

import pytest

from solchat.server.server import Server
from tests.helpers import make_app_context


class _Config:
    def __init__(self, app, **kwargs) -> None:  # type: ignore[no-untyped-def]
        self.app = app
        self.kwargs = kwargs


class _UvicornServer:
    instances: list["_UvicornServer"] = []

    def __init__(self, config) -> None:  # type: ignore[no-untyped-def]
        self.config = config
        self.started = False
        self.should_exit = False
        _UvicornServer.instances.append(self)

    async def serve(self) -> None:
        self.started = True
        while not self.should_exit:
            await asyncio.sleep(0)


@pytest.mark.anyio
async def test_start_and_stop(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("uvicorn.Config", _Config)
    monkeypatch.setattr("uvicorn.Server", _UvicornServer)
    ctx = make_app_context()

    info = await Server.start(host="127.0.0.1", port=4301, ctx=ctx, access_log=False)
    try:
        assert info.url == "http://127.0.0.1:4301"
        assert Server.info() == info
        server = _UvicornServer.instances[-1]
        assert server.config.kwargs["port"] == 4301
        assert server.config.app.state.ctx is ctx
    finally:
        await Server.stop()

    assert server.should_exit is True
    assert Server.info() is None
