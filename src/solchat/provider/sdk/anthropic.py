"""Anthropic Messages API adapter.

Raw stream events are folded into the same ``StreamChunk`` vocabulary the
OpenAI adapter produces, so the session layer never sees provider types.
"""

import json
from typing import Any, AsyncIterator, Dict, Iterator, List, Optional

from anthropic import AsyncAnthropic

from ..transform import ProviderTransform
from ...util.log import Log
from .types import StreamChunk, parse_tool_arguments

log = Log.create({"service": "sdk.anthropic"})


class _ContentBlocks:
    """Open content blocks of one streamed message, keyed by block index."""

    def __init__(self) -> None:
        self.text: set[int] = set()
        self.tools: Dict[int, Dict[str, str]] = {}

    def start(self, event: Any) -> Iterator[StreamChunk]:
        block = event.content_block
        if block.type == "text":
            self.text.add(event.index)
            if block.text:
                yield StreamChunk(type="text", text=block.text)
        elif block.type == "tool_use":
            self.tools[event.index] = {
                "id": block.id,
                "name": block.name,
                "json": json.dumps(block.input) if block.input else "",
            }
            yield StreamChunk(type="tool_call_start", tool_call_id=block.id, tool_call_name=block.name)

    def delta(self, event: Any) -> Iterator[StreamChunk]:
        delta = event.delta
        if delta.type == "text_delta" and event.index in self.text and delta.text:
            yield StreamChunk(type="text", text=delta.text)
        elif delta.type == "input_json_delta" and event.index in self.tools and delta.partial_json:
            tool = self.tools[event.index]
            tool["json"] += delta.partial_json
            yield StreamChunk(type="tool_call_delta", tool_call_id=tool["id"], tool_call_input_delta=delta.partial_json)

    def stop(self, index: int) -> Iterator[StreamChunk]:
        self.text.discard(index)
        tool = self.tools.pop(index, None)
        if tool is not None:
            yield StreamChunk(type="tool_call_end", tool_call=parse_tool_arguments(tool["id"], tool["name"], tool["json"]))

    def drain(self) -> Iterator[StreamChunk]:
        """Close tool blocks the provider never stopped."""
        for index in sorted(self.tools):
            yield from self.stop(index)


class AnthropicSDK:
    def __init__(self, api_key: str, base_url: Optional[str] = None):
        self.client = AsyncAnthropic(api_key=api_key, base_url=base_url)

    async def stream(
        self,
        model: str,
        messages: List[Dict[str, Any]],
        system: Optional[str] = None,
        tools: Optional[List[Dict[str, Any]]] = None,
        tool_choice: Optional[Any] = None,
        max_tokens: int = ProviderTransform.OUTPUT_TOKEN_MAX,
        temperature: Optional[float] = None,
    ) -> AsyncIterator[StreamChunk]:
        """Stream one message; ``messages`` and ``tools`` are already in Anthropic shape."""
        optional = {"system": system or None, "tools": tools or None, "tool_choice": tool_choice, "temperature": temperature}
        params: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            **{key: value for key, value in optional.items() if value is not None},
        }
        log.info("streaming", {"model": model, "message_count": len(messages), "tool_count": len(tools or [])})

        blocks = _ContentBlocks()
        events = await self.client.messages.create(stream=True, **params)
        async for event in events:
            kind = event.type
            if kind == "message_start":
                yield StreamChunk(type="message_start", usage={"input_tokens": event.message.usage.input_tokens})
            elif kind == "content_block_start":
                for chunk in blocks.start(event):
                    yield chunk
            elif kind == "content_block_delta":
                for chunk in blocks.delta(event):
                    yield chunk
            elif kind == "content_block_stop":
                for chunk in blocks.stop(event.index):
                    yield chunk
            elif kind == "message_delta":
                yield StreamChunk(
                    type="message_delta",
                    stop_reason=event.delta.stop_reason,
                    usage={"output_tokens": event.usage.output_tokens},
                )
            elif kind == "message_stop":
                for chunk in blocks.drain():
                    yield chunk
                yield StreamChunk(type="message_end")
