"""FastAPI application factory."""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..core.id import Identifier
from ..runtime import AppContext
from ..util.log import Log
from .errors import register_error_handlers
from .routes import chat, system, tools
from .schemas import ErrorResponse

access = Log.create({"service": "server.access"})

ROUTERS = (system.router, chat.router, tools.router)
EXPOSED_HEADERS = ["X-Request-ID", "x-vercel-ai-data-stream"]


def _request_fields(request: Request, begin: float) -> Dict[str, Any]:
    return {
        "method": request.method,
        "path": request.url.path,
        "client_ip": request.client.host if request.client else None,
        "duration_ms": int((time.perf_counter() - begin) * 1000),
    }


def _install_request_scope(app: FastAPI, *, access_log: bool) -> None:
    """Tag each request with an id, echo it back and write the access line.

    The id is bound into the log context, so lines from a chat turn that
    keeps streaming after the handler returns still carry it.
    """

    @app.middleware("http")
    async def _request_scope(request: Request, call_next):
        rid = request.headers.get("x-request-id") or Identifier.ascending("request")
        request.state.request_id = rid
        token = Log.bind(request_id=rid)
        begin = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            if access_log:
                access.error("request failed", {**_request_fields(request, begin), "error": str(e)})
            raise
        finally:
            Log.unbind(token)
        response.headers["X-Request-ID"] = rid
        if access_log:
            access.info(
                "request",
                {**_request_fields(request, begin), "status": response.status_code, "request_id": rid},
            )
        return response


def create_app(
    ctx: AppContext,
    *,
    manage_lifecycle: bool = False,
    access_log: bool = True,
) -> FastAPI:
    """Build the chat API around ``ctx``.

    With ``manage_lifecycle`` the app opens and closes the context's
    resources (store, HTTP clients) together with the server.
    """

    @asynccontextmanager
    async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
        await ctx.startup()
        try:
            yield
        finally:
            await ctx.shutdown()

    app = FastAPI(
        title="solchat API",
        version=__version__,
        openapi_version="3.1.0",
        lifespan=_lifespan if manage_lifecycle else None,
        responses={code: {"model": ErrorResponse} for code in (400, 401, 404, 422, 500)},
    )
    app.state.ctx = ctx

    _install_request_scope(app, access_log=access_log)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=EXPOSED_HEADERS,
    )
    register_error_handlers(app)
    for router in ROUTERS:
        app.include_router(router)
    return app
