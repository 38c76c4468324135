"""Adapter for OpenAI-compatible chat completion streams."""

from typing import Any, AsyncIterator, Dict, Iterator, List, Optional

from openai import AsyncOpenAI

from ...util.log import Log
from .types import StreamChunk, ToolCall, parse_tool_arguments

log = Log.create({"service": "sdk.openai"})

__all__ = ["OpenAISDK", "StreamChunk", "ToolCall", "parse_tool_arguments"]

# Keys callers may not override through ``options``.
_FIXED_PARAMS = frozenset(
    {"model", "messages", "stream", "stream_options", "tools", "tool_choice", "max_tokens", "temperature"}
)


class _ToolCallBuffer:
    """Accumulates one tool call that arrives in fragments at a given index."""

    def __init__(self, index: int) -> None:
        self.index = index
        self.id = ""
        self.name = ""
        self.arguments = ""
        self.announced = False

    def feed(self, fragment: Any) -> Iterator[StreamChunk]:
        function = fragment.function
        self.id = fragment.id or self.id
        if function and function.name:
            self.name = function.name
        if not self.announced and self.id and self.name:
            self.announced = True
            yield StreamChunk(type="tool_call_start", tool_call_id=self.id, tool_call_name=self.name)
        if function and function.arguments:
            self.arguments += function.arguments
            yield StreamChunk(
                type="tool_call_delta",
                tool_call_id=self.id or f"tool_call_{self.index}",
                tool_call_input_delta=function.arguments,
            )

    def finish(self) -> StreamChunk:
        return StreamChunk(type="tool_call_end", tool_call=parse_tool_arguments(self.id, self.name, self.arguments))


class OpenAISDK:
    def __init__(self, api_key: str, base_url: Optional[str] = None):
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)

    async def stream(
        self,
        model: str,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        tool_choice: Optional[Any] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> AsyncIterator[StreamChunk]:
        """Stream one completion as provider-neutral chunks.

        Usage arrives in a trailing choice-less chunk because
        ``include_usage`` is requested.
        """
        params: Dict[str, Any] = {
            key: value for key, value in (options or {}).items() if key not in _FIXED_PARAMS
        }
        params.update(model=model, messages=messages, stream=True, stream_options={"include_usage": True})
        optional = {"tools": tools or None, "tool_choice": tool_choice, "max_tokens": max_tokens, "temperature": temperature}
        params.update({key: value for key, value in optional.items() if value is not None})

        log.info("streaming", {"model": model, "message_count": len(messages), "tool_count": len(tools or [])})

        pending: Dict[int, _ToolCallBuffer] = {}
        completion = await self.client.chat.completions.create(**params)
        yield StreamChunk(type="message_start")

        async for chunk in completion:
            if not chunk.choices:
                if chunk.usage:
                    usage = {"input_tokens": chunk.usage.prompt_tokens, "output_tokens": chunk.usage.completion_tokens}
                    yield StreamChunk(type="message_delta", usage=usage)
                continue

            choice = chunk.choices[0]
            if choice.delta.content:
                yield StreamChunk(type="text", text=choice.delta.content)
            for fragment in choice.delta.tool_calls or []:
                buffer = pending.setdefault(fragment.index, _ToolCallBuffer(fragment.index))
                for out in buffer.feed(fragment):
                    yield out

            if choice.finish_reason:
                for index in sorted(pending):
                    yield pending[index].finish()
                pending.clear()
                yield StreamChunk(type="message_delta", stop_reason=choice.finish_reason)

        yield StreamChunk(type="message_end")
