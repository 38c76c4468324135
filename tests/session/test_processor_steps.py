import json

import pytest
from pydantic import BaseModel

from solchat.session.llm import LLM, StreamChunk
from solchat.session.message import MessageRole, UsageRecord
from solchat.session.processor import ChatProcessor, ProviderStreamError
from solchat.session.repair import ToolCallRepairer
from solchat.session.stream import DataStreamWriter
from solchat.tool.registry import ToolRegistry
from solchat.tool.swap import SwapTool
from solchat.tool.tool import AbortContext, Tool, ToolContext, tool_success
from solchat.tool.wrapper import wrap_tools
from tests.helpers import FakeAgentKit, parse_stream, tool_call_chunks, usage_chunk


class _EchoParams(BaseModel):
    query: str


async def _echo(params: _EchoParams, ctx: ToolContext):  # type: ignore[no-untyped-def]
    return tool_success(echo=params.query)


EchoTool = Tool.define("echo", "Echo the query back", _EchoParams, _echo)


async def _stop(params: _EchoParams, ctx: ToolContext):  # type: ignore[no-untyped-def]
    ctx.abort.abort()
    return tool_success(stopped=params.query)


StopTool = Tool.define("stop", "Cancel the rest of the turn", _EchoParams, _stop)


def _script(monkeypatch: pytest.MonkeyPatch, *steps):  # type: ignore[no-untyped-def]
    """Serve one list of chunks per model step and record the inputs."""
    inputs = []

    async def fake_stream(cls, stream_input):  # type: ignore[no-untyped-def]
        inputs.append(stream_input)
        for chunk in steps[len(inputs) - 1]:
            yield chunk

    monkeypatch.setattr(LLM, "stream", classmethod(fake_stream))
    return inputs


def _processor(*, extra=None, names=("echo",), **kwargs):  # type: ignore[no-untyped-def]
    abort = AbortContext()
    writer = DataStreamWriter()
    ctx = ToolContext(abort=abort, writer=writer, extra=extra or {})
    tools = wrap_tools(ToolRegistry([EchoTool, StopTool, SwapTool]), ctx, list(names))
    processor = ChatProcessor(tools, abort=abort, writer=writer, smooth_delay_ms=0, **kwargs)
    return processor, abort, writer


async def _body(writer: DataStreamWriter) -> str:
    writer.close()
    return "".join([line async for line in writer])


class _Recorder:
    def __init__(self) -> None:
        self.steps = []
        self.flushes = []
        self.finishes = []

    def on_step_finish(self, step):  # type: ignore[no-untyped-def]
        self.steps.append(step)

    async def on_flush(self, response):  # type: ignore[no-untyped-def]
        self.flushes.append(response)

    async def on_finish(self, response, usage):  # type: ignore[no-untyped-def]
        self.finishes.append((response, usage))

    def callbacks(self):  # type: ignore[no-untyped-def]
        return {"on_step_finish": self.on_step_finish, "on_flush": self.on_flush, "on_finish": self.on_finish}


@pytest.mark.anyio
async def test_text_only_turn_stops_after_one_step(monkeypatch: pytest.MonkeyPatch) -> None:
    inputs = _script(
        monkeypatch,
        [StreamChunk(type="text", text="Hello there "), StreamChunk(type="text", text="friend"), usage_chunk(12, 3)],
    )
    processor, _, writer = _processor()
    recorder = _Recorder()

    result = await processor.run("system", [{"role": "user", "content": "hi"}], **recorder.callbacks())

    assert result.status == "stop"
    assert result.steps == 1
    assert result.text == "Hello there friend"
    assert result.usage == UsageRecord.of(12, 3)
    assert inputs[0].system == "system"
    assert inputs[0].tools[0]["function"]["name"] == "echo"
    assert len(recorder.finishes) == 1
    assert recorder.flushes == []

    parts = parse_stream(await _body(writer))
    codes = [code for code, _ in parts]
    assert codes[0] == "f"
    assert "".join(value for code, value in parts if code == "0") == "Hello there friend"
    assert codes[-2:] == ["e", "d"]
    assert parts[-1][1] == {"finishReason": "stop", "usage": {"promptTokens": 12, "completionTokens": 3}}


@pytest.mark.anyio
async def test_tool_step_feeds_results_into_next_step(monkeypatch: pytest.MonkeyPatch) -> None:
    inputs = _script(
        monkeypatch,
        [*tool_call_chunks("call_1", "echo", {"query": "bonk"}), usage_chunk(10, 5)],
        [StreamChunk(type="text", text="Bonk found."), usage_chunk(20, 4)],
    )
    processor, _, writer = _processor()
    recorder = _Recorder()

    result = await processor.run(None, [{"role": "user", "content": "find bonk"}], **recorder.callbacks())

    assert result.status == "stop"
    assert result.steps == 2
    assert result.usage.total_tokens == 39
    assert [m.role for m in result.response] == [MessageRole.ASSISTANT, MessageRole.TOOL, MessageRole.ASSISTANT]
    assert result.response[1].tool_results[0].result == {"success": True, "echo": "bonk"}

    second = inputs[1].messages
    assert second[1]["tool_calls"][0]["function"]["name"] == "echo"
    assert second[2] == {
        "role": "tool",
        "tool_call_id": "call_1",
        "content": json.dumps({"success": True, "echo": "bonk"}),
    }
    assert [step.finish_reason for step in recorder.steps] == ["tool-calls", "stop"]

    parts = parse_stream(await _body(writer))
    codes = [code for code, _ in parts]
    assert {"b", "c", "9", "a"} <= set(codes)
    assert codes.index("9") < codes.index("a")
    assert dict(parts)["a"] == {"toolCallId": "call_1", "result": {"success": True, "echo": "bonk"}}


@pytest.mark.anyio
async def test_unknown_tool_call_is_dropped(monkeypatch: pytest.MonkeyPatch) -> None:
    _script(monkeypatch, [*tool_call_chunks("call_1", "launchRocket", {})])
    processor, _, writer = _processor(repairer=ToolCallRepairer())
    recorder = _Recorder()

    result = await processor.run(None, [], **recorder.callbacks())

    assert result.steps == 1
    assert recorder.steps[0].dropped_calls == ["launchRocket"]
    assert result.response == []
    parts = parse_stream(await _body(writer))
    codes = [code for code, _ in parts]
    assert codes.index("b") < codes.index("9") < codes.index("a")
    assert dict(parts)["a"]["toolCallId"] == "call_1"
    assert dict(parts)["a"]["result"]["success"] is False


@pytest.mark.anyio
async def test_invalid_arguments_are_repaired_once(monkeypatch: pytest.MonkeyPatch) -> None:
    _script(
        monkeypatch,
        [*tool_call_chunks("call_1", "echo", {})],
        [StreamChunk(type="text", text="ok")],
    )
    repairs = []

    async def fake_generate_object(cls, schema, prompt, **kwargs):  # type: ignore[no-untyped-def]
        repairs.append(kwargs["name"])
        return {"query": "fixed"}, UsageRecord.of(3, 1)

    monkeypatch.setattr(LLM, "generate_object", classmethod(fake_generate_object))
    repairer = ToolCallRepairer()
    processor, _, _ = _processor(repairer=repairer)

    result = await processor.run(None, [])

    assert repairs == ["echo"]
    assert result.response[1].tool_results[0].result == {"success": True, "echo": "fixed"}
    assert repairer.usage.total_tokens == 4
    assert result.usage.total_tokens == 0


@pytest.mark.anyio
async def test_failed_repair_drops_call(monkeypatch: pytest.MonkeyPatch) -> None:
    _script(monkeypatch, [*tool_call_chunks("call_1", "echo", {})])

    async def fake_generate_object(cls, schema, prompt, **kwargs):  # type: ignore[no-untyped-def]
        raise RuntimeError("no object")

    monkeypatch.setattr(LLM, "generate_object", classmethod(fake_generate_object))
    processor, _, _ = _processor(repairer=ToolCallRepairer())

    result = await processor.run(None, [])

    assert result.steps == 1
    assert result.response == []


@pytest.mark.anyio
async def test_confirmation_tool_stops_loop_with_hard_abort(monkeypatch: pytest.MonkeyPatch) -> None:
    inputs = _script(
        monkeypatch,
        [*tool_call_chunks("call_swap", "swapTokens", {"outputMint": "USDC_MINT", "inputAmount": 1})],
        [StreamChunk(type="text", text="never streamed")],
    )
    kit = FakeAgentKit()
    processor, abort, _ = _processor(
        extra={"ask_for_confirmation": True, "agent_kit": kit},
        names=("swapTokens",),
    )
    recorder = _Recorder()

    result = await processor.run(None, [], **recorder.callbacks())

    assert result.status == "aborted"
    assert len(inputs) == 1
    assert abort.is_set is True
    assert kit.calls == []
    assert len(recorder.flushes) == 1
    assert len(recorder.finishes) == 1
    assert recorder.flushes[0][1].tool_results[0].result["step"] == "pending"


@pytest.mark.anyio
async def test_executed_swap_flushes_and_continues(monkeypatch: pytest.MonkeyPatch) -> None:
    _script(
        monkeypatch,
        [*tool_call_chunks("call_swap", "swapTokens", {"outputMint": "USDC_MINT", "inputAmount": 1})],
        [StreamChunk(type="text", text="Swap done.")],
    )
    kit = FakeAgentKit()
    processor, abort, _ = _processor(
        extra={"ask_for_confirmation": False, "agent_kit": kit},
        names=("swapTokens",),
    )
    recorder = _Recorder()

    result = await processor.run(None, [], **recorder.callbacks())

    assert result.status == "stop"
    assert result.steps == 2
    assert kit.calls[0][0] == "trade"
    assert len(recorder.flushes) == 1
    assert abort.aborted is False
    assert abort.is_set is False


@pytest.mark.anyio
async def test_step_ceiling_ends_turn(monkeypatch: pytest.MonkeyPatch) -> None:
    _script(
        monkeypatch,
        [*tool_call_chunks("call_1", "echo", {"query": "a"})],
        [*tool_call_chunks("call_2", "echo", {"query": "b"})],
    )
    processor, _, _ = _processor(max_steps=2)
    recorder = _Recorder()

    result = await processor.run(None, [], **recorder.callbacks())

    assert result.status == "max_steps"
    assert result.steps == 2
    assert len(recorder.finishes) == 1


@pytest.mark.anyio
async def test_provider_error_raises_without_finishing(monkeypatch: pytest.MonkeyPatch) -> None:
    _script(monkeypatch, [StreamChunk(type="text", text="partial "), StreamChunk(type="error", error="overloaded")])
    processor, _, _ = _processor()
    recorder = _Recorder()

    with pytest.raises(ProviderStreamError, match="overloaded"):
        await processor.run(None, [], **recorder.callbacks())

    assert recorder.finishes == []


@pytest.mark.anyio
async def test_abort_signal_from_tool_stops_at_step_boundary(monkeypatch: pytest.MonkeyPatch) -> None:
    inputs = _script(
        monkeypatch,
        [*tool_call_chunks("call_stop", "stop", {"query": "enough"})],
        [StreamChunk(type="text", text="never streamed")],
    )
    processor, abort, _ = _processor(names=("stop",))
    recorder = _Recorder()

    result = await processor.run(None, [], **recorder.callbacks())

    assert result.status == "aborted"
    assert result.steps == 1
    assert len(inputs) == 1
    assert abort.should_abort is False
    assert len(recorder.flushes) == 1
    assert recorder.flushes[0][1].tool_results[0].result == {"success": True, "stopped": "enough"}
    assert len(recorder.finishes) == 1


@pytest.mark.anyio
async def test_abort_signal_before_first_step_skips_model(monkeypatch: pytest.MonkeyPatch) -> None:
    inputs = _script(monkeypatch, [StreamChunk(type="text", text="never streamed")])
    processor, abort, _ = _processor()
    abort.abort()
    recorder = _Recorder()

    result = await processor.run(None, [], **recorder.callbacks())

    assert result.status == "aborted"
    assert result.steps == 0
    assert inputs == []
    assert len(recorder.finishes) == 1
