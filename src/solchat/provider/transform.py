"""Request and response shape conversions between providers.

The session layer speaks OpenAI chat-completions shapes. Anthropic needs
tool results folded into user turns, tool calls as ``tool_use`` blocks and
the system prompt sent out of band; finish reasons from both providers
are normalised to the data-stream vocabulary.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional, Union

Message = Dict[str, Any]

FINISH_REASONS: Dict[str, str] = {
    "tool_calls": "tool-calls",
    "tool_call": "tool-calls",
    "tool_use": "tool-calls",
    "tool-use": "tool-calls",
    "stop": "stop",
    "end_turn": "stop",
    "end-turn": "stop",
    "done": "stop",
    "length": "length",
    "max_tokens": "length",
    "max-tokens": "length",
    "content_filter": "content-filter",
    "content-filter": "content-filter",
}

_EMPTY_SCHEMA = {"type": "object", "properties": {}}


def _arguments(value: Any) -> Dict[str, Any]:
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def _user_blocks(content: Any) -> Any:
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return str(content or "")
    blocks: List[Dict[str, Any]] = []
    for part in content:
        kind = part.get("type") if isinstance(part, dict) else None
        if kind == "text" and part.get("text"):
            blocks.append({"type": "text", "text": str(part["text"])})
        elif kind == "image_url":
            url = (part.get("image_url") or {}).get("url")
            if url:
                blocks.append({"type": "image", "source": {"type": "url", "url": str(url)}})
    return blocks


def _user(raw: Message, out: List[Message]) -> None:
    content = _user_blocks(raw.get("content"))
    if content:
        out.append({"role": "user", "content": content})


def _assistant(raw: Message, out: List[Message]) -> None:
    content = raw.get("content")
    blocks: List[Dict[str, Any]] = [{"type": "text", "text": content}] if isinstance(content, str) and content else []
    for call in raw.get("tool_calls") or []:
        fn = (call.get("function") or {}) if isinstance(call, dict) else {}
        if isinstance(call, dict) and call.get("id") and fn.get("name"):
            blocks.append(
                {"type": "tool_use", "id": str(call["id"]), "name": str(fn["name"]), "input": _arguments(fn.get("arguments"))}
            )
    # Empty assistant turns are rejected by the API.
    if blocks:
        out.append({"role": "assistant", "content": blocks})


def _tool(raw: Message, out: List[Message]) -> None:
    call_id = raw.get("tool_call_id")
    if not call_id:
        return
    block = {"type": "tool_result", "tool_use_id": str(call_id), "content": str(raw.get("content") or "")}
    last = out[-1] if out else None
    if last is not None and last["role"] == "user" and isinstance(last["content"], list):
        last["content"].append(block)
    else:
        out.append({"role": "user", "content": [block]})


_ANTHROPIC_ROLES: Dict[str, Callable[[Message, List[Message]], None]] = {
    "user": _user,
    "assistant": _assistant,
    "tool": _tool,
}


class ProviderTransform:
    OUTPUT_TOKEN_MAX = 32000

    @staticmethod
    def normalize_finish_reason(reason: Optional[str]) -> Optional[str]:
        if not reason:
            return None
        return FINISH_REASONS.get(reason.strip().lower(), "unknown")

    @staticmethod
    def anthropic_tools(tools: Optional[List[Dict[str, Any]]]) -> Optional[List[Dict[str, Any]]]:
        """``{"type": "function", "function": {...}}`` entries as Anthropic tools."""
        converted = []
        for item in tools or []:
            fn = (item.get("function") or {}) if isinstance(item, dict) else {}
            if fn.get("name"):
                converted.append(
                    {
                        "name": str(fn["name"]),
                        "description": str(fn.get("description", "")),
                        "input_schema": dict(fn.get("parameters") or _EMPTY_SCHEMA),
                    }
                )
        return converted or None

    @staticmethod
    def anthropic_tool_choice(tool_choice: Optional[Union[str, Dict[str, Any]]]) -> Optional[Dict[str, Any]]:
        if isinstance(tool_choice, str):
            return {"auto": {"type": "auto"}, "required": {"type": "any"}}.get(tool_choice)
        fn = tool_choice.get("function") if isinstance(tool_choice, dict) else None
        if isinstance(fn, dict) and fn.get("name"):
            return {"type": "tool", "name": str(fn["name"])}
        return None

    @staticmethod
    def anthropic_messages(messages: List[Message]) -> List[Message]:
        """Convert a chat-completions history; system messages are dropped."""
        out: List[Message] = []
        for raw in messages:
            convert = _ANTHROPIC_ROLES.get(raw.get("role")) if isinstance(raw, dict) else None
            if convert is not None:
                convert(raw, out)
        return out
