"""Tool registry for the built-in tool catalog."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Mapping, Optional, Type

from pydantic import BaseModel

from ..core.env import Env
from ..util.log import Log
from .birdeye import TopTradersTool
from .confirmation import AskForConfirmationTool
from .dexscreener import TokenPairsTool
from .drift import DriftAccountInfoTool, DriftApyTool, DriftDepositTool
from .jina import ReadWebPageTool
from .schema import parameters_schema
from .search_token import SearchTokenTool
from .swap import SwapTool
from .tool import ToolInfo
from .transfer import TransferTool

log = Log.create({"service": "tool.registry"})

BUILTIN_TOOLS: List[ToolInfo] = [
    SwapTool,
    TransferTool,
    AskForConfirmationTool,
    SearchTokenTool,
    TokenPairsTool,
    TopTradersTool,
    ReadWebPageTool,
    DriftAccountInfoTool,
    DriftDepositTool,
    DriftApyTool,
]


class ToolRegistry:
    """Central name -> tool table, read-only once the app has started."""

    def __init__(self, tools: Optional[Iterable[ToolInfo]] = None) -> None:
        self._tools: Optional[Dict[str, ToolInfo]] = None
        if tools is not None:
            self._tools = {tool.id: tool for tool in tools}

    async def init(self) -> None:
        """Eagerly initialize the tool registry during startup."""
        self._all()

    def _all(self) -> Dict[str, ToolInfo]:
        if self._tools is None:
            self._tools = {tool.id: tool for tool in BUILTIN_TOOLS}
            log.info("tool registry initialized", {"count": len(self._tools)})
        return self._tools

    @staticmethod
    def filter(
        tools: Mapping[str, ToolInfo],
        disabled: Iterable[str] = (),
        env: Optional[Mapping[str, Optional[str]]] = None,
    ) -> Dict[str, ToolInfo]:
        """Drop disabled tools and tools missing a required env var."""
        blocked = set(disabled)
        result: Dict[str, ToolInfo] = {}
        for name, tool in tools.items():
            if name in blocked:
                continue
            if Env.missing(tool.required_env_vars, env):
                continue
            result[name] = tool
        return result

    def enabled(
        self,
        disabled: Iterable[str] = (),
        env: Optional[Mapping[str, Optional[str]]] = None,
    ) -> Dict[str, ToolInfo]:
        return self.filter(self._all(), disabled, env)

    def list_metadata(
        self,
        disabled: Iterable[str] = (),
        env: Optional[Mapping[str, Optional[str]]] = None,
    ) -> List[Dict[str, Any]]:
        return [
            {
                "name": name,
                "description": tool.description,
                "parameters": parameters_schema(tool.parameters_type),
            }
            for name, tool in self.enabled(disabled, env).items()
        ]

    def metadata_lines(
        self,
        disabled: Iterable[str] = (),
        env: Optional[Mapping[str, Optional[str]]] = None,
    ) -> str:
        """Enabled tool metadata as newline-delimited JSON."""
        return "\n".join(json.dumps(item) for item in self.list_metadata(disabled, env))

    def get(self, tool_id: str) -> Optional[ToolInfo]:
        return self._all().get(tool_id)

    def get_parameters(self, tool_id: str) -> Optional[Type[BaseModel]]:
        tool = self.get(tool_id)
        if tool is None:
            return None
        return tool.parameters_type

    def get_update_parameters(self, tool_id: str) -> Optional[Type[BaseModel]]:
        tool = self.get(tool_id)
        if tool is None:
            return None
        return tool.update_type

    def names(self) -> List[str]:
        return list(self._all().keys())

    def list(self) -> List[ToolInfo]:
        return list(self._all().values())

    def register(self, tool: ToolInfo) -> None:
        self._all()[tool.id] = tool

    def reset(self) -> None:
        self._tools = None
