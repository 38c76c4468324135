"""Application service layer for HTTP/API orchestration."""

from .chat_service import ChatReply, ChatRequest, ChatService

__all__ = [
    "ChatReply",
    "ChatRequest",
    "ChatService",
]
