"""Repair of tool calls whose arguments fail schema validation."""

from __future__ import annotations

import json
from typing import Mapping, Optional

from ..tool.schema import parameters_schema
from ..tool.tool import NoSuchToolError
from ..tool.wrapper import BoundTool
from ..util.log import Log
from .llm import LLM, ToolCall
from .message import UsageRecord

log = Log.create({"service": "session.repair"})

REPAIR_PROMPT = """\
The model tried to call the tool "{name}" with the following arguments:
{args}
The tool accepts the following schema:
{schema}
Please fix the arguments."""


class ToolCallRepairer:
    """Regenerates invalid tool arguments with one side model call."""

    def __init__(self, model: Optional[str] = None) -> None:
        self.model = model
        self.usage = UsageRecord()

    async def repair(
        self,
        call: ToolCall,
        error: Exception,
        tools: Mapping[str, BoundTool],
    ) -> Optional[ToolCall]:
        """Return a corrected call, or ``None`` when the call cannot be repaired."""
        if isinstance(error, NoSuchToolError):
            return None
        tool = tools.get(call.name)
        if tool is None:
            return None

        args = call.raw_input if call.input_error else json.dumps(call.input)
        prompt = REPAIR_PROMPT.format(
            name=call.name,
            args=args or "{}",
            schema=json.dumps(parameters_schema(tool.parameters_type)),
        )
        try:
            value, usage = await LLM.generate_object(
                tool.parameters_type,
                prompt,
                name=call.name,
                description=tool.description,
                model=self.model,
                purpose="repair",
            )
        except Exception as e:
            log.warn("tool call repair failed", {"tool": call.name, "error": str(e)})
            return None

        self.usage = self.usage + usage
        log.info("tool call repaired", {"tool": call.name, "call_id": call.id})
        return ToolCall(id=call.id, name=call.name, input=value, raw_input=json.dumps(value))
