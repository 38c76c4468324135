"""Tool metadata transport routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from starlette.responses import Response

from ...app_services import ChatService
from ...runtime import AppContext
from ..deps import resolve_app_context

router = APIRouter(prefix="/api/tools", tags=["tools"])


@router.get("")
async def list_tools(app: AppContext = Depends(resolve_app_context)) -> Response:
    body = ChatService.list_tools(app)
    return Response(body + "\n" if body else "", media_type="application/x-ndjson")
