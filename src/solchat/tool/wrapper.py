"""Bind registry tools to one request's runtime context."""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence, Type

from pydantic import BaseModel

from .registry import ToolRegistry
from .schema import parameters_schema
from .tool import ToolContext, ToolInfo, ToolPayload

DEFAULT_TOOLS = ("searchTokenByName",)


class BoundTool:
    """A tool closed over the request's context; call it with parsed args."""

    def __init__(self, tool: ToolInfo, ctx: ToolContext) -> None:
        self.tool = tool
        self.ctx = ctx

    @property
    def name(self) -> str:
        return self.tool.id

    @property
    def description(self) -> str:
        return self.tool.description

    @property
    def parameters_type(self) -> Type[BaseModel]:
        return self.tool.parameters_type

    def definition(self) -> Dict[str, Any]:
        """OpenAI-style function definition for the provider."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": parameters_schema(self.parameters_type),
            },
        }

    async def __call__(self, args: Any, *, call_id: Optional[str] = None) -> ToolPayload:
        ctx = self.ctx.for_call(call_id) if call_id else self.ctx
        return await self.tool.execute(self.tool.parse(args), ctx)

    def __repr__(self) -> str:
        return f"BoundTool({self.name!r})"


def wrap_tools(
    registry: ToolRegistry,
    ctx: ToolContext,
    requested: Optional[Sequence[str]] = None,
) -> Dict[str, BoundTool]:
    """Build the active tool set for one request.

    An empty or missing selection yields only the default search tool so a
    failed selection step never exposes the full catalog. Unknown names are
    skipped.
    """
    names = list(requested) if requested else list(DEFAULT_TOOLS)
    bound: Dict[str, BoundTool] = {}
    for name in names:
        tool = registry.get(name)
        if tool is not None and name not in bound:
            bound[name] = BoundTool(tool, ctx)
    return bound
