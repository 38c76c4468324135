"""Turn classification.

Decides whether an incoming message starts a new model turn or answers a
pending tool confirmation found in the stored history.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from ..tool.tool import ToolStep
from .message import ChatMessage, IncomingMessage, MessageRole, ToolInvocation


class TurnKind(str, Enum):
    NEW_USER_TURN = "new_user_turn"
    TOOL_UPDATE_PENDING = "tool_update_pending"
    TOOL_CANCELED = "tool_canceled"
    TOOL_COMPLETED = "tool_completed"


@dataclass
class ToolUpdate:
    """Correlation between an incoming payload and a stored tool call."""
    tool_call_id: str
    tool_name: str
    message_id_to_update: str
    results: Any = None
    args: Any = None
    stored: Optional[ToolInvocation] = None

    @property
    def step(self) -> Optional[ToolStep]:
        return ToolStep.of(self.results)

    @property
    def has_step(self) -> bool:
        """Whether the payload carries any step marker, known or not."""
        return isinstance(self.results, dict) and self.results.get("step") is not None


@dataclass
class Classification:
    kind: TurnKind
    update: Optional[ToolUpdate] = None

    @property
    def short_circuits(self) -> bool:
        return self.kind != TurnKind.NEW_USER_TURN


def relevant_history(messages: Sequence[ChatMessage]) -> List[ChatMessage]:
    """Drop placeholder rows and order by creation time."""
    kept = [m for m in messages if not m.is_empty()]
    return sorted(kept, key=lambda m: m.created_at)


def find_tool_update(message: IncomingMessage, history: Sequence[ChatMessage]) -> Optional[ToolUpdate]:
    """Locate the stored tool call the incoming message answers, if any.

    History is scanned newest first; the first assistant message holding an
    invocation whose id matches one carried by ``message`` wins.
    """
    incoming: Dict[str, ToolInvocation] = {inv.tool_call_id: inv for inv in message.tool_invocations}
    if not incoming:
        return None

    for stored_message in sorted(history, key=lambda m: m.created_at, reverse=True):
        if stored_message.role != MessageRole.ASSISTANT:
            continue
        for stored in stored_message.tool_invocations:
            answer = incoming.get(stored.tool_call_id)
            if answer is None:
                continue
            return ToolUpdate(
                tool_call_id=stored.tool_call_id,
                tool_name=stored.tool_name,
                message_id_to_update=stored_message.id,
                results=answer.result,
                args=answer.args if answer.args is not None else stored.args,
                stored=stored,
            )
    return None


def classify(message: IncomingMessage, history: Sequence[ChatMessage]) -> Classification:
    update = find_tool_update(message, relevant_history(history))
    if update is None:
        return Classification(TurnKind.NEW_USER_TURN)

    if update.stored is not None and not update.stored.pending:
        return Classification(TurnKind.TOOL_COMPLETED, update)

    step = update.step
    if step == ToolStep.CANCELED:
        return Classification(TurnKind.TOOL_CANCELED, update)
    if step == ToolStep.COMPLETED:
        return Classification(TurnKind.TOOL_COMPLETED, update)
    if not update.has_step:
        # no step marker: treat as ordinary conversation
        return Classification(TurnKind.NEW_USER_TURN)
    return Classification(TurnKind.TOOL_UPDATE_PENDING, update)
