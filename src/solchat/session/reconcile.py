"""Merging and persistence of streamed response messages.

The streaming loop produces per-step assistant/tool messages. They are folded
into UI-shaped conversation turns, stamped with monotonically increasing
timestamps and upserted under ids that stay stable across repeated saves of
the same turn, so an abort-time flush followed by the final save never
duplicates rows.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence, Set

from ..storage.store import ConversationStore, TokenStat
from ..util.log import Log
from .message import ChatMessage, MessageRole, ResponseMessage, ToolCallState, ToolInvocation, UsageRecord, utcnow
from .stream import DataStreamWriter

log = Log.create({"service": "session.reconcile"})


def _join_text(current: str, addition: str) -> str:
    if not current:
        return addition
    if not addition:
        return current
    return f"{current}\n\n{addition}"


def append_response_messages(
    messages: Sequence[ChatMessage],
    response_messages: Sequence[ResponseMessage],
) -> List[ChatMessage]:
    """Fold response messages onto ``messages``.

    Consecutive assistant steps share one assistant turn; tool results
    resolve the matching invocation of the latest assistant turn.
    """
    merged = [m.model_copy(deep=True) for m in messages]
    conversation_id = merged[0].conversation_id if merged else ""

    for response in response_messages:
        last = merged[-1] if merged else None

        if response.role == MessageRole.ASSISTANT:
            invocations = [
                ToolInvocation(
                    tool_call_id=call.id,
                    tool_name=call.name,
                    state=ToolCallState.CALL,
                    args=call.args,
                )
                for call in response.tool_calls
            ]
            if last is not None and last.role == MessageRole.ASSISTANT:
                last.content = _join_text(last.content, response.content)
                last.tool_invocations.extend(invocations)
            else:
                merged.append(
                    ChatMessage(
                        id="",
                        conversation_id=conversation_id,
                        role=MessageRole.ASSISTANT,
                        content=response.content,
                        tool_invocations=invocations,
                    )
                )
            continue

        if response.role != MessageRole.TOOL:
            continue
        if last is None or last.role != MessageRole.ASSISTANT:
            log.warn("tool result without assistant message", {"results": len(response.tool_results)})
            continue
        by_id = {inv.tool_call_id: inv for inv in last.tool_invocations}
        for item in response.tool_results:
            invocation = by_id.get(item.tool_call_id)
            if invocation is None:
                log.warn("tool result for unknown call", {"tool_call_id": item.tool_call_id})
                continue
            invocation.state = ToolCallState.RESULT
            invocation.result = item.result

    return merged


def _no_follow_up(result: Any) -> bool:
    if not isinstance(result, dict):
        return False
    if result.get("noFollowUp"):
        return True
    data = result.get("data")
    return isinstance(data, dict) and bool(data.get("noFollowUp"))


def should_hide_assistant_message(message: ChatMessage) -> bool:
    """Whether every tool result of the message asks for no follow-up text."""
    invocations = message.tool_invocations
    if message.role != MessageRole.ASSISTANT or not invocations:
        return False
    return all(inv.resolved and _no_follow_up(inv.result) for inv in invocations)


class ResponseReconciler:
    """Persists one turn's response messages, idempotently."""

    def __init__(
        self,
        store: ConversationStore,
        conversation_id: str,
        writer: Optional[DataStreamWriter] = None,
        reference: Optional[datetime] = None,
    ) -> None:
        self.store = store
        self.conversation_id = conversation_id
        self.writer = writer
        self.reference = reference or utcnow()
        self._ids: Dict[int, str] = {}
        self._announced: Set[str] = set()

    def _message_id(self, index: int) -> str:
        if index not in self._ids:
            self._ids[index] = str(uuid.uuid4())
        return self._ids[index]

    def prepare(self, response_messages: Sequence[ResponseMessage]) -> List[ChatMessage]:
        """UI messages ready for storage, without touching the store."""
        placeholder = ChatMessage(id="", conversation_id=self.conversation_id, role=MessageRole.USER)
        merged = append_response_messages([placeholder], response_messages)

        final: List[ChatMessage] = []
        for message in merged:
            if message.role == MessageRole.ASSISTANT:
                message.tool_invocations = [
                    inv for inv in message.tool_invocations if inv.state != ToolCallState.CALL
                ]
                if should_hide_assistant_message(message):
                    message.content = ""
            if not message.is_empty():
                final.append(message)

        for index, message in enumerate(final):
            message.id = self._message_id(index)
            message.created_at = self.reference + timedelta(milliseconds=index)
        return final

    async def save(self, response_messages: Sequence[ResponseMessage]) -> List[ChatMessage]:
        """Upsert the turn's messages; failures are logged and yield ``[]``."""
        try:
            final = self.prepare(response_messages)
            if not final:
                return []
            saved = await self.store.upsert_messages(final)
        except Exception as e:
            log.error("failed to save response messages", {"conversation_id": self.conversation_id, "error": str(e)})
            return []

        if self.writer is not None:
            for message in saved:
                if message.role != MessageRole.ASSISTANT or message.id in self._announced:
                    continue
                self._announced.add(message.id)
                self.writer.write_message_annotation({"messageIdFromServer": message.id})

        log.info("saved response messages", {"conversation_id": self.conversation_id, "count": len(saved)})
        return saved


async def record_usage(
    store: ConversationStore,
    user_id: str,
    user_message: Optional[ChatMessage],
    saved: Sequence[ChatMessage],
    main: UsageRecord,
    orchestrator: Optional[UsageRecord] = None,
) -> Optional[TokenStat]:
    """Record a turn's token usage once.

    Skipped when nothing was saved, when the turn did not start from a new
    user message, or when the main usage is invalid.
    """
    if not saved or user_message is None or not main.is_valid():
        return None

    usage = main
    if orchestrator is not None and orchestrator.is_valid():
        usage = usage + orchestrator

    message_ids = [user_message.id] + [m.id for m in saved]
    try:
        stat = await store.create_token_stat(user_id, message_ids, usage)
    except Exception as e:
        log.error("failed to save token stat", {"user_id": user_id, "error": str(e)})
        return None
    log.info("saved token stat", {"user_id": user_id, "total_tokens": usage.total_tokens})
    return stat
