"""Message types for chat conversations.

Defines the stored conversation turn, the request body message, the
per-step response messages produced by the streaming loop and the conversion
of stored history into provider (OpenAI-format) messages.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from ..tool.tool import ToolStep


class ToolCallState(str, Enum):
    """State of a tool invocation."""
    CALL = "call"
    PARTIAL_CALL = "partial-call"
    RESULT = "result"


class MessageRole(str, Enum):
    """Role of a message sender."""
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ToolInvocation(BaseModel):
    """A tool call as seen by the client and stored with its message."""
    tool_call_id: str = Field(alias="toolCallId")
    tool_name: str = Field(alias="toolName")
    state: ToolCallState = ToolCallState.CALL
    args: Any = None
    result: Any = None

    model_config = ConfigDict(populate_by_name=True)

    @property
    def step(self) -> Optional[ToolStep]:
        return ToolStep.of(self.result)

    @property
    def pending(self) -> bool:
        """Unresolved, or resolved to a ``pending`` confirmation step."""
        if self.state != ToolCallState.RESULT:
            return True
        return self.step == ToolStep.PENDING

    @property
    def resolved(self) -> bool:
        return self.state == ToolCallState.RESULT


class Attachment(BaseModel):
    """File attached to a user message."""
    name: Optional[str] = None
    content_type: Optional[str] = Field(None, alias="contentType")
    url: str

    model_config = ConfigDict(populate_by_name=True)


class ChatMessage(BaseModel):
    """One stored conversation turn."""
    id: str
    conversation_id: str = Field(alias="conversationId")
    role: MessageRole
    content: str = ""
    tool_invocations: List[ToolInvocation] = Field(default_factory=list, alias="toolInvocations")
    attachments: List[Attachment] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)

    def is_empty(self) -> bool:
        return self.content == "" and not self.tool_invocations


class IncomingMessage(BaseModel):
    """Message carried in a chat request body."""
    id: Optional[str] = None
    role: MessageRole
    content: str = ""
    attachments: List[Attachment] = Field(
        default_factory=list,
        validation_alias=AliasChoices("attachments", "experimental_attachments"),
    )
    tool_invocations: List[ToolInvocation] = Field(default_factory=list, alias="toolInvocations")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class UsageRecord(BaseModel):
    """Token usage for one or more model calls."""
    prompt_tokens: int = Field(0, alias="promptTokens")
    completion_tokens: int = Field(0, alias="completionTokens")
    total_tokens: int = Field(0, alias="totalTokens")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def of(cls, prompt: Optional[int], completion: Optional[int], total: Optional[int] = None) -> "UsageRecord":
        prompt = int(prompt or 0)
        completion = int(completion or 0)
        return cls(
            prompt_tokens=prompt,
            completion_tokens=completion,
            total_tokens=int(total) if total is not None else prompt + completion,
        )

    def is_valid(self) -> bool:
        return min(self.prompt_tokens, self.completion_tokens, self.total_tokens) >= 0

    def is_empty(self) -> bool:
        return self.prompt_tokens == 0 and self.completion_tokens == 0 and self.total_tokens == 0

    def __add__(self, other: "UsageRecord") -> "UsageRecord":
        if not isinstance(other, UsageRecord):
            return NotImplemented
        return UsageRecord(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


@dataclass
class ToolCallRecord:
    """A tool call requested by the model during one step."""
    id: str
    name: str
    args: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolResultRecord:
    """Outcome of one executed tool call."""
    tool_call_id: str
    tool_name: str
    args: Dict[str, Any]
    result: Any


@dataclass
class ResponseMessage:
    """A message produced by one step of the streaming loop.

    Assistant messages carry text and tool calls; tool messages carry the
    results of those calls.
    """
    role: MessageRole
    content: str = ""
    tool_calls: List[ToolCallRecord] = field(default_factory=list)
    tool_results: List[ToolResultRecord] = field(default_factory=list)

    def to_model_messages(self) -> List[Dict[str, Any]]:
        if self.role == MessageRole.TOOL:
            return [_tool_message(item.tool_call_id, item.result) for item in self.tool_results]
        message: Dict[str, Any] = {"role": "assistant", "content": self.content or None}
        if self.tool_calls:
            message["tool_calls"] = [_tool_call(call.id, call.name, call.args) for call in self.tool_calls]
        return [message]


def _tool_call(call_id: str, name: str, args: Any) -> Dict[str, Any]:
    return {
        "id": call_id,
        "type": "function",
        "function": {"name": name, "arguments": json.dumps(args if args is not None else {})},
    }


def _tool_message(call_id: str, result: Any) -> Dict[str, Any]:
    content = result if isinstance(result, str) else json.dumps(result, default=str)
    return {"role": "tool", "tool_call_id": call_id, "content": content}


def _user_content(message: ChatMessage) -> Any:
    images = [a for a in message.attachments if (a.content_type or "").startswith("image/")]
    if not images:
        return message.content
    parts: List[Dict[str, Any]] = [{"type": "text", "text": message.content}] if message.content else []
    parts.extend({"type": "image_url", "image_url": {"url": a.url}} for a in images)
    return parts


def to_model_messages(history: List[ChatMessage]) -> List[Dict[str, Any]]:
    """Convert stored turns into provider messages.

    Only resolved tool invocations are replayed; each becomes an assistant
    tool call followed by its tool result.
    """
    result: List[Dict[str, Any]] = []
    for message in history:
        if message.role == MessageRole.USER:
            result.append({"role": "user", "content": _user_content(message)})
            continue
        if message.role != MessageRole.ASSISTANT:
            continue

        resolved = [inv for inv in message.tool_invocations if inv.resolved]
        if not resolved:
            if message.content:
                result.append({"role": "assistant", "content": message.content})
            continue

        result.append(
            {
                "role": "assistant",
                "content": message.content or None,
                "tool_calls": [_tool_call(inv.tool_call_id, inv.tool_name, inv.args) for inv in resolved],
            }
        )
        result.extend(_tool_message(inv.tool_call_id, inv.result) for inv in resolved)
    return result
