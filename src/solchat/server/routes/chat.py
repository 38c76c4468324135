"""Chat transport routes."""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.responses import Response

from ...app_services import ChatService
from ...auth import UserSession
from ...runtime import AppContext
from ...session.stream import STREAM_HEADER, STREAM_PROTOCOL_VERSION
from ..deps import resolve_app_context, resolve_user_session
from ..schemas import ChatDeleteResponse

router = APIRouter(prefix="/api/chat", tags=["chat"])


async def _json_body(request: Request) -> Any:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValueError("Request body must be valid JSON") from e


@router.post("")
async def post_chat(
    request: Request,
    session: UserSession = Depends(resolve_user_session),
    app: AppContext = Depends(resolve_app_context),
) -> Response:
    reply = await ChatService.post_message(session, await _json_body(request), app)
    if reply.stream is None:
        return JSONResponse(reply.body)
    return StreamingResponse(
        reply.stream,
        media_type="text/plain; charset=utf-8",
        headers={
            STREAM_HEADER: STREAM_PROTOCOL_VERSION,
            "Cache-Control": "no-cache",
        },
    )


@router.delete("", response_model=ChatDeleteResponse)
async def delete_chat(
    request: Request,
    session: UserSession = Depends(resolve_user_session),
    app: AppContext = Depends(resolve_app_context),
) -> dict[str, Any]:
    return await ChatService.delete_conversation(session, await _json_body(request), app)
