"""Output sink speaking the AI data-stream protocol.

Each part is one line ``<code>:<json>\\n``. The writer is fed from the
streaming loop and tools and drained by the HTTP response.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, AsyncIterator, Dict, Optional

from .message import UsageRecord

STREAM_HEADER = "x-vercel-ai-data-stream"
STREAM_PROTOCOL_VERSION = "v1"
GENERIC_ERROR = "An error occurred"


def _usage(usage: Optional[UsageRecord]) -> Dict[str, int]:
    usage = usage or UsageRecord()
    return {"promptTokens": usage.prompt_tokens, "completionTokens": usage.completion_tokens}


def format_part(code: str, value: Any) -> str:
    return f"{code}:{json.dumps(value, separators=(',', ':'), default=str)}\n"


class DataStreamWriter:
    """Queue-backed writer; iterate it to read encoded lines until closed."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Optional[str]] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _put(self, code: str, value: Any) -> None:
        if self._closed:
            return
        self._queue.put_nowait(format_part(code, value))

    def write_text(self, text: str) -> None:
        if text:
            self._put("0", text)

    def write_data(self, value: Any) -> None:
        self._put("2", [value])

    def write_error(self, message: str = GENERIC_ERROR) -> None:
        self._put("3", message)

    def write_message_annotation(self, annotation: Dict[str, Any]) -> None:
        self._put("8", [annotation])

    def write_tool_call_start(self, tool_call_id: str, tool_name: str) -> None:
        self._put("b", {"toolCallId": tool_call_id, "toolName": tool_name})

    def write_tool_call_delta(self, tool_call_id: str, delta: str) -> None:
        self._put("c", {"toolCallId": tool_call_id, "argsTextDelta": delta})

    def write_tool_call(self, tool_call_id: str, tool_name: str, args: Any) -> None:
        self._put("9", {"toolCallId": tool_call_id, "toolName": tool_name, "args": args})

    def write_tool_result(self, tool_call_id: str, result: Any) -> None:
        self._put("a", {"toolCallId": tool_call_id, "result": result})

    def start_step(self, message_id: str) -> None:
        self._put("f", {"messageId": message_id})

    def finish_step(self, finish_reason: str, usage: Optional[UsageRecord] = None, is_continued: bool = False) -> None:
        self._put("e", {"finishReason": finish_reason, "usage": _usage(usage), "isContinued": is_continued})

    def finish_message(self, finish_reason: str, usage: Optional[UsageRecord] = None) -> None:
        self._put("d", {"finishReason": finish_reason, "usage": _usage(usage)})

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)

    async def __aiter__(self) -> AsyncIterator[str]:
        while True:
            line = await self._queue.get()
            if line is None:
                return
            yield line
