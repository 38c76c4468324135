"""FastAPI dependencies shared across transport handlers."""

from __future__ import annotations

from fastapi import Depends, Request

from ..app_services import ChatService
from ..auth import UserSession
from ..runtime import AppContext


def resolve_app_context(request: Request) -> AppContext:
    ctx = getattr(request.app.state, "ctx", None)
    if ctx is None:
        raise RuntimeError("Application context is not initialized")
    return ctx


async def resolve_user_session(
    request: Request,
    app: AppContext = Depends(resolve_app_context),
) -> UserSession:
    """Authenticated session; raises ``UnauthorizedError`` otherwise."""
    return await ChatService.authenticate(app, request.headers)
