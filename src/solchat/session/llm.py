"""LLM streaming interface.

Provides a unified interface for streaming chat completions from different
providers, plus structured-output and plain completion helpers built on it.
"""

from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Tuple, Type, Union

from pydantic import BaseModel, ValidationError

from ..provider import Provider, ProviderInfo
from ..provider.sdk.anthropic import AnthropicSDK
from ..provider.sdk.openai import OpenAISDK
from ..provider.sdk.types import StreamChunk as SDKChunk, ToolCall
from ..provider.transform import ProviderTransform
from ..tool.schema import parameters_schema, strictify_schema
from ..util.log import Log
from .message import UsageRecord

log = Log.create({"service": "llm"})

__all__ = [
    "LLM",
    "LLMError",
    "StreamChunk",
    "StreamInput",
    "StreamResult",
    "ToolCall",
]


class LLMError(RuntimeError):
    """Raised when a provider call fails."""


@dataclass
class StreamChunk:
    """Unified stream chunk across providers."""
    type: str  # "text", "tool_call_start", "tool_call_delta", "tool_call_end", "message_*", "error"
    text: Optional[str] = None
    tool_call: Optional[ToolCall] = None
    tool_call_id: Optional[str] = None
    tool_call_name: Optional[str] = None
    tool_call_input_delta: Optional[str] = None
    usage: Optional[Dict[str, int]] = None
    stop_reason: Optional[str] = None
    error: Optional[str] = None


@dataclass
class StreamInput:
    """Input for streaming completion.

    ``model`` defaults to the configured chat model; ``purpose`` only labels
    log lines.
    """
    messages: List[Dict[str, Any]]
    system: Optional[Union[str, List[str]]] = None
    tools: Optional[List[Dict[str, Any]]] = None
    tool_choice: Optional[Union[str, Dict[str, Any]]] = None
    model: Optional[str] = None
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    purpose: str = "chat"


@dataclass
class StreamResult:
    """Result of a completed stream."""
    text: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)
    usage: UsageRecord = field(default_factory=UsageRecord)
    stop_reason: Optional[str] = None


def usage_from(raw: Dict[str, int]) -> UsageRecord:
    return UsageRecord.of(raw.get("input_tokens"), raw.get("output_tokens"))


class LLM:
    """LLM streaming interface."""

    @staticmethod
    def _join_system_prompt(system: Optional[Union[str, Sequence[str]]]) -> Optional[str]:
        if system is None:
            return None
        if isinstance(system, str):
            return system or None
        parts = [str(item) for item in system if str(item).strip()]
        return "\n\n".join(parts) if parts else None

    @staticmethod
    def _convert(chunk: SDKChunk) -> StreamChunk:
        return StreamChunk(
            type=chunk.type,
            text=chunk.text,
            tool_call=chunk.tool_call,
            tool_call_id=chunk.tool_call_id,
            tool_call_name=chunk.tool_call_name,
            tool_call_input_delta=chunk.tool_call_input_delta,
            usage=chunk.usage,
            stop_reason=ProviderTransform.normalize_finish_reason(chunk.stop_reason),
        )

    @classmethod
    async def stream(cls, input: StreamInput) -> AsyncIterator[StreamChunk]:
        """Stream a chat completion.

        Provider failures surface as a single ``error`` chunk.
        """
        try:
            provider = await Provider.get()
        except Exception as e:
            yield StreamChunk(type="error", error=str(e))
            return

        model = input.model or provider.model
        system = cls._join_system_prompt(input.system)
        log.info("streaming", {"provider": provider.type, "model": model, "purpose": input.purpose})

        try:
            if provider.type == "anthropic":
                sdk_stream = cls._stream_anthropic(provider, model, system, input)
            else:
                sdk_stream = cls._stream_openai(provider, model, system, input)
            async for chunk in sdk_stream:
                yield cls._convert(chunk)
        except Exception as e:
            log.error("stream error", {"error": str(e), "purpose": input.purpose})
            yield StreamChunk(type="error", error=str(e))

    @staticmethod
    def _stream_anthropic(
        provider: ProviderInfo, model: str, system: Optional[str], input: StreamInput
    ) -> AsyncIterator[SDKChunk]:
        sdk = AnthropicSDK(api_key=provider.api_key, base_url=provider.base_url)
        return sdk.stream(
            model=model,
            messages=ProviderTransform.anthropic_messages(input.messages),
            system=system,
            tools=ProviderTransform.anthropic_tools(input.tools),
            tool_choice=ProviderTransform.anthropic_tool_choice(input.tool_choice),
            max_tokens=input.max_tokens or provider.max_tokens,
            temperature=input.temperature if input.temperature is not None else provider.temperature,
        )

    @staticmethod
    def _stream_openai(
        provider: ProviderInfo, model: str, system: Optional[str], input: StreamInput
    ) -> AsyncIterator[SDKChunk]:
        sdk = OpenAISDK(api_key=provider.api_key, base_url=provider.base_url)
        messages = input.messages
        if system:
            messages = [{"role": "system", "content": system}] + messages
        return sdk.stream(
            model=model,
            messages=messages,
            tools=input.tools,
            tool_choice=input.tool_choice,
            max_tokens=input.max_tokens or provider.max_tokens,
            temperature=input.temperature if input.temperature is not None else provider.temperature,
        )

    @classmethod
    async def complete(cls, input: StreamInput) -> StreamResult:
        """Non-streaming completion; raises ``LLMError`` on provider failure."""
        result = StreamResult()
        usage: Dict[str, int] = {}

        async for chunk in cls.stream(input):
            if chunk.type == "text" and chunk.text:
                result.text += chunk.text
            elif chunk.type == "tool_call_end" and chunk.tool_call:
                result.tool_calls.append(chunk.tool_call)
            elif chunk.type in {"message_start", "message_delta"}:
                if chunk.usage:
                    usage.update(chunk.usage)
                if chunk.stop_reason:
                    result.stop_reason = chunk.stop_reason
            elif chunk.type == "error":
                raise LLMError(chunk.error or "provider error")

        result.usage = usage_from(usage)
        return result

    @classmethod
    async def generate_object(
        cls,
        schema: Union[Type[BaseModel], Dict[str, Any]],
        prompt: str,
        *,
        system: Optional[str] = None,
        name: str = "respond",
        description: str = "Respond with an object matching the schema.",
        model: Optional[str] = None,
        purpose: str = "object",
    ) -> Tuple[Dict[str, Any], UsageRecord]:
        """Generate one object conforming to ``schema``.

        The model is forced to call a single function whose parameters are the
        schema; its arguments are the object.
        """
        if isinstance(schema, dict):
            json_schema = strictify_schema(schema)
        else:
            json_schema = parameters_schema(schema)

        result = await cls.complete(
            StreamInput(
                messages=[{"role": "user", "content": prompt}],
                system=system,
                tools=[
                    {
                        "type": "function",
                        "function": {"name": name, "description": description, "parameters": json_schema},
                    }
                ],
                tool_choice={"type": "function", "function": {"name": name}},
                model=model,
                purpose=purpose,
            )
        )
        call = next((c for c in result.tool_calls if c.name == name), None)
        if call is None or call.input_error:
            raise LLMError(f"model did not produce a {name} object")

        value = call.input
        if not isinstance(schema, dict):
            try:
                value = schema.model_validate(value).model_dump(by_alias=True, exclude_none=True)
            except ValidationError as e:
                raise LLMError(f"generated object failed validation: {e}") from e
        return value, result.usage
