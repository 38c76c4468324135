"""Pydantic schemas for the FastAPI transport layer."""

from __future__ import annotations

from pydantic import BaseModel


class ErrorInfo(BaseModel):
    code: str
    message: str
    details: dict[str, object] | list[object] | str | None = None


class ErrorResponse(BaseModel):
    error: ErrorInfo


class HealthResponse(BaseModel):
    status: str = "ok"
    runtime: str | None = None


class ChatDeleteResponse(BaseModel):
    deleted: bool
