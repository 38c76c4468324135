"""Preliminary tool selection.

A cheap side call picks which tools the main turn should see, so the model
is never handed the full catalog.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from ..tool.registry import ToolRegistry
from ..util.log import Log
from .llm import LLM
from .message import UsageRecord

log = Log.create({"service": "session.orchestrator"})

INVALID_TOOL = "INVALID_TOOL"
_CONTEXT_MESSAGES = 6

ORCHESTRATOR_PROMPT = """\
You route requests for a Solana assistant. Given the recent conversation and
the list of available tools, return the names of the tools needed to answer
the latest user message. Return an empty list when no tool is needed. If the
user asks for something no tool can do, return "{invalid}".

Degen Mode: {degen}

Available tools (one JSON object per line):
{tools}"""


class ToolsRequired(BaseModel):
    tools_required: List[str] = Field(
        default_factory=list,
        alias="toolsRequired",
        description="Names of the tools needed for the latest user message",
    )

    model_config = ConfigDict(populate_by_name=True)


@dataclass
class ToolSelection:
    tools: List[str] = field(default_factory=list)
    usage: UsageRecord = field(default_factory=UsageRecord)


def _transcript(messages: Sequence[Dict[str, Any]]) -> str:
    lines = []
    for message in list(messages)[-_CONTEXT_MESSAGES:]:
        role = message.get("role")
        if role not in {"user", "assistant"}:
            continue
        content = message.get("content")
        if isinstance(content, list):
            content = " ".join(str(p.get("text", "")) for p in content if isinstance(p, dict))
        if content:
            lines.append(f"{role}: {content}")
    return "\n".join(lines)


async def select_tools(
    messages: Sequence[Dict[str, Any]],
    *,
    degen_mode: bool,
    registry: ToolRegistry,
    disabled: Sequence[str] = (),
    model: Optional[str] = None,
) -> ToolSelection:
    """Ask the model which enabled tools the turn needs.

    Failures are logged and yield an empty selection.
    """
    enabled = registry.enabled(disabled)
    system = ORCHESTRATOR_PROMPT.format(
        invalid=INVALID_TOOL,
        degen=json.dumps(degen_mode),
        tools=registry.metadata_lines(disabled),
    )
    try:
        value, usage = await LLM.generate_object(
            ToolsRequired,
            _transcript(messages),
            system=system,
            name="selectTools",
            description="Select the tools required for the latest user message.",
            model=model,
            purpose="orchestrator",
        )
    except Exception as e:
        log.error("tool selection failed", {"error": str(e)})
        return ToolSelection()

    requested = ToolsRequired.model_validate(value).tools_required
    tools = [name for name in requested if INVALID_TOOL not in name and name in enabled]
    log.info("tools selected", {"tools": tools, "dropped": len(requested) - len(tools)})
    return ToolSelection(tools=list(dict.fromkeys(tools)), usage=usage)
