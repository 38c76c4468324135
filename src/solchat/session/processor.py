"""Streaming execution loop for one chat turn.

Drives the model across up to ``max_steps`` reasoning/tool steps, forwards
smoothed text and tool activity to the output sink, and honours the request's
abort context at every step boundary.
"""

import asyncio
import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from ..core.id import Identifier
from ..tool.tool import AbortContext, InvalidToolArgumentsError, NoSuchToolError, tool_failure
from ..tool.wrapper import BoundTool
from ..util.log import Log
from .llm import LLM, StreamInput, ToolCall, usage_from
from .message import MessageRole, ResponseMessage, ToolCallRecord, ToolResultRecord, UsageRecord
from .repair import ToolCallRepairer
from .smoothing import WordSmoother
from .stream import DataStreamWriter

log = Log.create({"service": "session.processor"})

DEFAULT_MAX_STEPS = 15


class ProviderStreamError(RuntimeError):
    """The model provider failed mid-turn."""


@dataclass
class StepResult:
    """Everything one model step produced."""
    index: int
    text: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)
    tool_results: List[ToolResultRecord] = field(default_factory=list)
    dropped_calls: List[str] = field(default_factory=list)
    usage: UsageRecord = field(default_factory=UsageRecord)
    finish_reason: str = "stop"
    messages: List[ResponseMessage] = field(default_factory=list)


@dataclass
class ProcessorResult:
    """Result of a processed turn."""
    status: str  # "stop", "aborted", "max_steps"
    steps: int = 0
    text: str = ""
    response: List[ResponseMessage] = field(default_factory=list)
    usage: UsageRecord = field(default_factory=UsageRecord)
    finish_reason: str = "stop"


Callback = Callable[..., Union[None, Awaitable[None]]]


class ChatProcessor:
    """Processor for model responses and tool execution.

    Manages the loop:
    1. Stream one step from the model
    2. Validate, repair and execute requested tool calls
    3. Buffer the step's messages and report them
    4. Stop on a text-only step, the step ceiling, or a hard abort
    """

    def __init__(
        self,
        tools: Dict[str, BoundTool],
        *,
        abort: AbortContext,
        writer: Optional[DataStreamWriter] = None,
        repairer: Optional[ToolCallRepairer] = None,
        max_steps: int = DEFAULT_MAX_STEPS,
        smooth_delay_ms: int = 10,
        model: Optional[str] = None,
    ):
        self.tools = tools
        self.abort = abort
        self.writer = writer
        self.repairer = repairer
        self.max_steps = max_steps
        self.smooth_delay_ms = smooth_delay_ms
        self.model = model
        self.response: List[ResponseMessage] = []
        self.messages: List[Dict[str, Any]] = []
        self.usage = UsageRecord()

    async def run(
        self,
        system: Optional[str],
        messages: List[Dict[str, Any]],
        *,
        on_step_finish: Optional[Callback] = None,
        on_flush: Optional[Callback] = None,
        on_finish: Optional[Callback] = None,
    ) -> ProcessorResult:
        """Run the loop.

        ``on_step_finish(step)`` fires after every step, ``on_flush(response)``
        whenever a tool requested an abort, and ``on_finish(response, usage)``
        exactly once when the loop ends without a provider failure, which
        raises ``ProviderStreamError``.
        """
        self.messages = list(messages)
        result = ProcessorResult(status="stop")
        definitions = [tool.definition() for tool in self.tools.values()] or None

        for index in range(self.max_steps):
            if self.abort.is_set:
                log.info("abort signal set before step", {"step": index})
                result.status = "aborted"
                break

            log.info("processing step", {"step": index, "tools": len(self.tools)})
            step = await self._run_step(index, system, definitions)
            result.steps = index + 1
            result.text += step.text
            result.finish_reason = step.finish_reason
            self.usage = self.usage + step.usage

            self.response.extend(step.messages)
            for message in step.messages:
                self.messages.extend(message.to_model_messages())

            await self._call_callback(on_step_finish, step)

            # a raised signal counts as a hard abort
            hard = self.abort.should_abort or self.abort.is_set
            if hard or self.abort.aborted:
                log.info("abort requested", {"step": index, "hard": hard})
                await self._call_callback(on_flush, list(self.response))
                self.abort.aborted = False
                if hard:
                    self.abort.abort()
                    result.status = "aborted"
                    break

            if not step.tool_results:
                break
        else:
            result.status = "max_steps"
            log.info("step ceiling reached", {"max_steps": self.max_steps})

        result.response = list(self.response)
        result.usage = self.usage
        if self.writer is not None:
            self.writer.finish_message(result.finish_reason, result.usage)
        await self._call_callback(on_finish, result.response, result.usage)
        return result

    async def _run_step(
        self,
        index: int,
        system: Optional[str],
        definitions: Optional[List[Dict[str, Any]]],
    ) -> StepResult:
        step = StepResult(index=index)
        smoother = WordSmoother(self.smooth_delay_ms)
        usage: Dict[str, int] = {}
        calls: List[ToolCall] = []
        stop_reason: Optional[str] = None

        if self.writer is not None:
            self.writer.start_step(Identifier.ascending("message"))

        stream_input = StreamInput(
            messages=self.messages,
            system=system,
            tools=definitions,
            model=self.model,
        )
        async for chunk in LLM.stream(stream_input):
            if chunk.type == "text" and chunk.text:
                step.text += chunk.text
                for piece in smoother.push(chunk.text):
                    await self._emit_text(piece, smoother.delay)

            elif chunk.type == "tool_call_start" and self.writer is not None:
                self.writer.write_tool_call_start(chunk.tool_call_id or "", chunk.tool_call_name or "")

            elif chunk.type == "tool_call_delta" and self.writer is not None:
                self.writer.write_tool_call_delta(chunk.tool_call_id or "", chunk.tool_call_input_delta or "")

            elif chunk.type == "tool_call_end" and chunk.tool_call:
                calls.append(chunk.tool_call)

            elif chunk.type in {"message_start", "message_delta"}:
                if chunk.usage:
                    usage.update(chunk.usage)
                if chunk.stop_reason:
                    stop_reason = chunk.stop_reason

            elif chunk.type == "error":
                raise ProviderStreamError(chunk.error or "provider error")

        tail = smoother.flush()
        if tail:
            await self._emit_text(tail, 0)

        for call in calls:
            prepared = await self._prepare_call(call)
            if prepared is None:
                step.dropped_calls.append(call.name)
                self._close_dropped(call)
                continue
            step.tool_calls.append(prepared)

        for call in step.tool_calls:
            step.tool_results.append(await self._execute(call))

        step.usage = usage_from(usage)
        step.finish_reason = "tool-calls" if step.tool_calls else (stop_reason or "stop")
        step.messages = self._step_messages(step)

        if self.writer is not None:
            self.writer.finish_step(step.finish_reason, step.usage, is_continued=False)
        return step

    async def _emit_text(self, text: str, delay: float) -> None:
        if self.writer is None:
            return
        self.writer.write_text(text)
        if delay > 0:
            await asyncio.sleep(delay)

    def _validate(self, call: ToolCall) -> ToolCall:
        tool = self.tools.get(call.name)
        if tool is None:
            raise NoSuchToolError(call.name, tuple(self.tools))
        if call.input_error:
            raise InvalidToolArgumentsError(call.name, call.raw_input, ValueError(call.input_error))
        try:
            parsed = tool.parameters_type.model_validate(call.input)
        except ValidationError as e:
            raise InvalidToolArgumentsError(call.name, call.input, e) from e
        return ToolCall(
            id=call.id,
            name=call.name,
            input=parsed.model_dump(by_alias=True, exclude_none=True),
            raw_input=call.raw_input,
        )

    async def _prepare_call(self, call: ToolCall) -> Optional[ToolCall]:
        """Validated call, repaired at most once; ``None`` drops it."""
        try:
            return self._validate(call)
        except (NoSuchToolError, InvalidToolArgumentsError) as error:
            log.warn("invalid tool call", {"tool": call.name, "error": str(error)})
            if self.repairer is None:
                return None
            repaired = await self.repairer.repair(call, error, self.tools)

        if repaired is None:
            return None
        try:
            return self._validate(repaired)
        except (NoSuchToolError, InvalidToolArgumentsError) as error:
            log.warn("repaired tool call still invalid", {"tool": call.name, "error": str(error)})
            return None

    def _close_dropped(self, call: ToolCall) -> None:
        """Resolve the streamed partial call so the client does not keep it open."""
        if self.writer is None:
            return
        self.writer.write_tool_call(call.id, call.name, call.input)
        self.writer.write_tool_result(call.id, tool_failure(f"Tool call {call.name} could not be run"))

    async def _execute(self, call: ToolCall) -> ToolResultRecord:
        tool = self.tools[call.name]
        if self.writer is not None:
            self.writer.write_tool_call(call.id, call.name, call.input)
        try:
            result = await tool(call.input, call_id=call.id)
        except Exception as e:
            log.error("tool execution error", {"tool": call.name, "error": str(e)})
            result = tool_failure(e)
        if self.writer is not None:
            self.writer.write_tool_result(call.id, result)
        return ToolResultRecord(tool_call_id=call.id, tool_name=call.name, args=call.input, result=result)

    @staticmethod
    def _step_messages(step: StepResult) -> List[ResponseMessage]:
        messages: List[ResponseMessage] = []
        if step.text or step.tool_calls:
            messages.append(
                ResponseMessage(
                    role=MessageRole.ASSISTANT,
                    content=step.text,
                    tool_calls=[ToolCallRecord(id=c.id, name=c.name, args=c.input) for c in step.tool_calls],
                )
            )
        if step.tool_results:
            messages.append(ResponseMessage(role=MessageRole.TOOL, tool_results=list(step.tool_results)))
        return messages

    @staticmethod
    async def _call_callback(callback: Optional[Callback], *args: Any) -> None:
        """Call a callback, handling both sync and async."""
        if callback is None:
            return
        outcome = callback(*args)
        if inspect.isawaitable(outcome):
            await outcome
