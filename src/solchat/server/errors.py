"""Exception to error-envelope mapping for the HTTP layer.

Every error leaves as ``{"error": {"code", "message", "details"?}}``.
Unexpected exceptions are logged in full and answered with a generic 500
that carries no internals.
"""

from __future__ import annotations

import traceback
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..app_services.errors import NotFoundError, UnauthorizedError
from ..util.log import Log
from .schemas import ErrorInfo, ErrorResponse

log = Log.create({"service": "server.errors"})

# Checked in order; the first matching class wins.
MAPPED_ERRORS: tuple[tuple[type[Exception], int, str], ...] = (
    (UnauthorizedError, 401, "unauthorized"),
    (NotFoundError, 404, "not_found"),
    (ValueError, 400, "bad_request"),
)


def error_response(
    status_code: int,
    code: str,
    message: str,
    *,
    details: Any = None,
    request: Optional[Request] = None,
) -> JSONResponse:
    body = ErrorResponse(error=ErrorInfo(code=code, message=message, details=details))
    response = JSONResponse(body.model_dump(exclude_none=True), status_code=status_code)
    rid = getattr(request.state, "request_id", None) if request is not None else None
    if isinstance(rid, str) and rid:
        response.headers["X-Request-ID"] = rid
    return response


def _mapped_handler(status_code: int, code: str):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        if status_code >= 500:
            log.error("request failed", {"code": code, "error": str(exc)})
        return error_response(status_code, code, str(exc), request=request)

    return handler


async def _validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(
        422,
        "validation_error",
        "Request validation failed",
        details={"errors": exc.errors()},
        request=request,
    )


async def _unexpected_handler(request: Request, exc: Exception) -> JSONResponse:
    log.error(
        "route failed",
        {
            "method": request.method,
            "path": request.url.path,
            "error_type": type(exc).__name__,
            "error": str(exc),
            "traceback": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        },
    )
    return error_response(500, "internal_error", "Internal server error", request=request)


def register_error_handlers(app: FastAPI) -> None:
    for exc_type, status_code, code in MAPPED_ERRORS:
        app.add_exception_handler(exc_type, _mapped_handler(status_code, code))
    app.add_exception_handler(RequestValidationError, _validation_handler)
    app.add_exception_handler(Exception, _unexpected_handler)
