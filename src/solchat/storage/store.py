"""Durable storage interface for conversations, messages and token usage."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Protocol, Sequence

from pydantic import BaseModel, Field

from ..session.message import ChatMessage, ToolInvocation, UsageRecord, utcnow


class Conversation(BaseModel):
    id: str
    user_id: str
    title: str
    created_at: datetime = Field(default_factory=utcnow)


class TokenStat(BaseModel):
    """Usage recorded for one turn, keyed by the message ids it produced."""
    id: str
    user_id: str
    message_ids: List[str]
    usage: UsageRecord
    created_at: datetime = Field(default_factory=utcnow)


class ConversationStore(Protocol):
    async def get_conversation(self, conversation_id: str) -> Optional[Conversation]: ...

    async def create_conversation(self, conversation_id: str, user_id: str, title: str) -> Conversation: ...

    async def delete_conversation(self, conversation_id: str, user_id: str) -> bool: ...

    async def list_conversation_messages(self, conversation_id: str, limit: Optional[int] = None) -> List[ChatMessage]: ...

    async def get_message(self, message_id: str) -> Optional[ChatMessage]: ...

    async def upsert_messages(self, messages: Sequence[ChatMessage]) -> List[ChatMessage]: ...

    async def update_tool_invocations(
        self, message_id: str, invocations: Sequence[ToolInvocation]
    ) -> Optional[ChatMessage]: ...

    async def create_token_stat(self, user_id: str, message_ids: Sequence[str], usage: UsageRecord) -> TokenStat: ...

    async def list_token_stats(self, user_id: str) -> List[TokenStat]: ...

    def close(self) -> None: ...
