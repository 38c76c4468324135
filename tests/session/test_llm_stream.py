import pytest
from pydantic import BaseModel, Field

from solchat.provider.sdk.types import ToolCall
from solchat.session.llm import LLM, LLMError, StreamChunk, StreamInput
from solchat.session.title import fallback_title, generate_title
from tests.helpers import usage_chunk


class _Pick(BaseModel):
    symbol: str
    amount: float = Field(..., gt=0)


def _serve(monkeypatch: pytest.MonkeyPatch, chunks):  # type: ignore[no-untyped-def]
    captured = []

    async def fake_stream(cls, stream_input):  # type: ignore[no-untyped-def]
        captured.append(stream_input)
        for chunk in chunks:
            yield chunk

    monkeypatch.setattr(LLM, "stream", classmethod(fake_stream))
    return captured


@pytest.mark.anyio
async def test_complete_collects_text_calls_and_usage(monkeypatch: pytest.MonkeyPatch) -> None:
    _serve(
        monkeypatch,
        [
            StreamChunk(type="text", text="Hi"),
            StreamChunk(type="tool_call_end", tool_call=ToolCall(id="c1", name="echo", input={"query": "x"})),
            usage_chunk(7, 2),
        ],
    )

    result = await LLM.complete(StreamInput(messages=[]))

    assert result.text == "Hi"
    assert [call.name for call in result.tool_calls] == ["echo"]
    assert result.usage.total_tokens == 9
    assert result.stop_reason == "stop"


@pytest.mark.anyio
async def test_complete_raises_on_error_chunk(monkeypatch: pytest.MonkeyPatch) -> None:
    _serve(monkeypatch, [StreamChunk(type="error", error="rate limited")])

    with pytest.raises(LLMError, match="rate limited"):
        await LLM.complete(StreamInput(messages=[]))


@pytest.mark.anyio
async def test_generate_object_forces_single_function(monkeypatch: pytest.MonkeyPatch) -> None:
    captured = _serve(
        monkeypatch,
        [
            StreamChunk(
                type="tool_call_end",
                tool_call=ToolCall(id="c1", name="pick", input={"symbol": "SOL", "amount": "2.5"}),
            ),
            usage_chunk(4, 1),
        ],
    )

    value, usage = await LLM.generate_object(_Pick, "pick one", name="pick", purpose="test")

    assert value == {"symbol": "SOL", "amount": 2.5}
    assert usage.total_tokens == 5
    request = captured[0]
    assert request.tool_choice == {"type": "function", "function": {"name": "pick"}}
    assert request.tools[0]["function"]["parameters"]["required"] == ["symbol", "amount"]
    assert request.purpose == "test"


@pytest.mark.anyio
async def test_generate_object_rejects_invalid_object(monkeypatch: pytest.MonkeyPatch) -> None:
    _serve(
        monkeypatch,
        [StreamChunk(type="tool_call_end", tool_call=ToolCall(id="c1", name="pick", input={"symbol": "SOL", "amount": -1}))],
    )

    with pytest.raises(LLMError, match="failed validation"):
        await LLM.generate_object(_Pick, "pick one", name="pick")


@pytest.mark.anyio
async def test_generate_object_requires_the_function_call(monkeypatch: pytest.MonkeyPatch) -> None:
    _serve(monkeypatch, [StreamChunk(type="text", text="I would pick SOL")])

    with pytest.raises(LLMError):
        await LLM.generate_object(_Pick, "pick one", name="pick")


@pytest.mark.anyio
async def test_title_strips_quotes_and_falls_back(monkeypatch: pytest.MonkeyPatch) -> None:
    _serve(monkeypatch, [StreamChunk(type="text", text='"Swap SOL for USDC"')])
    assert await generate_title("swap 1 sol to usdc") == "Swap SOL for USDC"

    _serve(monkeypatch, [StreamChunk(type="error", error="down")])
    assert await generate_title("  swap   1 sol ") == "swap 1 sol"


def test_fallback_title_truncates_long_messages() -> None:
    title = fallback_title("word " * 40)

    assert len(title) == 80
    assert title.endswith("...")
    assert fallback_title("   ") == "New conversation"
