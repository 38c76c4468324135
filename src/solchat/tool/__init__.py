"""Tool system modules with lazy exports to avoid import cycles."""

from __future__ import annotations

from importlib import import_module
from typing import Dict, Tuple

from .tool import AbortContext, Tool, ToolContext, ToolInfo, ToolStep

_EXPORTS: Dict[str, Tuple[str, str]] = {
    "ToolRegistry": (".registry", "ToolRegistry"),
    "BoundTool": (".wrapper", "BoundTool"),
    "wrap_tools": (".wrapper", "wrap_tools"),
    "AgentKit": (".agent_kit", "AgentKit"),
    "GatewayAgentKit": (".agent_kit", "GatewayAgentKit"),
    "SwapTool": (".swap", "SwapTool"),
    "TransferTool": (".transfer", "TransferTool"),
    "SearchTokenTool": (".search_token", "SearchTokenTool"),
}


def __getattr__(name: str):
    target = _EXPORTS.get(name)
    if not target:
        raise AttributeError(name)

    module_name, attr_name = target
    module = import_module(module_name, __name__)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value


__all__ = [
    "AbortContext",
    "Tool",
    "ToolContext",
    "ToolInfo",
    "ToolStep",
    *_EXPORTS.keys(),
]
