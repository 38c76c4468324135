"""Provider-neutral stream vocabulary shared by the SDK adapters.

Chunk types: ``message_start``, ``text``, ``tool_call_start``,
``tool_call_delta``, ``tool_call_end``, ``message_delta`` (usage and/or
stop reason) and ``message_end``.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class ToolCall:
    """A finished tool call.

    ``raw_input`` is the argument text exactly as streamed. ``input_error``
    is set (and ``input`` left empty) when that text is not a JSON object,
    which is what triggers argument repair downstream.
    """
    id: str
    name: str
    input: Dict[str, Any]
    raw_input: Optional[str] = None
    input_error: Optional[str] = None


@dataclass
class StreamChunk:
    type: str
    text: Optional[str] = None
    tool_call: Optional[ToolCall] = None
    tool_call_id: Optional[str] = None
    tool_call_name: Optional[str] = None
    tool_call_input_delta: Optional[str] = None
    usage: Optional[Dict[str, int]] = None
    stop_reason: Optional[str] = None


def parse_tool_arguments(call_id: str, name: str, raw: str) -> ToolCall:
    call = ToolCall(id=call_id, name=name, input={}, raw_input=raw)
    if not raw:
        return call
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        call.input_error = str(e)
        return call
    if isinstance(value, dict):
        call.input = value
    else:
        call.input_error = "arguments must be an object"
    return call
