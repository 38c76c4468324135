"""Tool framework for agent tools.

Provides the base class tools subclass, the runtime context every tool call
receives explicitly, and the request-scoped abort handle shared between tools
and the streaming loop.
"""

from __future__ import annotations

import asyncio
import dataclasses
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Generic, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel

if TYPE_CHECKING:
    from ..session.stream import DataStreamWriter

T = TypeVar('T', bound=BaseModel)

ToolPayload = Dict[str, Any]


class ToolStep(str, Enum):
    """Step marker carried in the result payload of confirmation tools."""
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELED = "canceled"
    FAILED = "failed"

    @classmethod
    def of(cls, payload: Any) -> Optional["ToolStep"]:
        """Read the step from a result payload; unknown shapes yield None."""
        if not isinstance(payload, dict):
            return None
        raw = payload.get("step")
        if raw is None:
            return None
        try:
            return cls(str(raw))
        except ValueError:
            return None


class NoSuchToolError(LookupError):
    """Raised when the model calls a tool that is not in the active set."""

    def __init__(self, tool_name: str, available: Tuple[str, ...] = ()):
        self.tool_name = tool_name
        self.available = available
        super().__init__(f"Model tried to call unavailable tool '{tool_name}'")


class InvalidToolArgumentsError(ValueError):
    """Raised when tool call arguments fail schema validation."""

    def __init__(self, tool_name: str, args: Any, cause: Exception):
        self.tool_name = tool_name
        self.args_value = args
        self.cause = cause
        super().__init__(f"Invalid arguments for tool '{tool_name}': {cause}")


@dataclass
class AbortContext:
    """Cooperative cancellation handle for one request.

    ``aborted`` asks the loop to persist what it has at the next step
    boundary; ``should_abort`` additionally stops the loop there. Setting
    ``signal`` through ``abort()`` counts as a hard abort, and the loop sets it
    itself once it has stopped.
    """
    aborted: bool = False
    should_abort: bool = False
    signal: asyncio.Event = field(default_factory=asyncio.Event)

    def request_abort(self, hard: bool = False) -> None:
        if hard:
            self.should_abort = True
        else:
            self.aborted = True

    def abort(self) -> None:
        self.signal.set()

    @property
    def requested(self) -> bool:
        return self.aborted or self.should_abort

    @property
    def is_set(self) -> bool:
        return self.signal.is_set()


@dataclass
class ToolContext:
    """Runtime context passed to every tool invocation."""
    abort: AbortContext = field(default_factory=AbortContext)
    writer: Optional["DataStreamWriter"] = None
    extra: Dict[str, Any] = field(default_factory=dict)
    call_id: Optional[str] = None

    @property
    def wallet_address(self) -> Optional[str]:
        return self.extra.get("wallet_address")

    @property
    def ask_for_confirmation(self) -> bool:
        return bool(self.extra.get("ask_for_confirmation"))

    def for_call(self, call_id: str) -> "ToolContext":
        """Same context bound to one tool call id."""
        return dataclasses.replace(self, call_id=call_id)

    def write_data(self, data: Any) -> None:
        """Stream an intermediate UI update, if a writer is attached."""
        if self.writer is not None:
            self.writer.write_data({"toolCallId": self.call_id, **data} if isinstance(data, dict) else data)

    def request_abort(self, hard: bool = False) -> None:
        self.abort.request_abort(hard=hard)


def tool_success(**fields: Any) -> ToolPayload:
    return {"success": True, **fields}


def tool_failure(error: Any, fallback: str = "Tool execution failed") -> ToolPayload:
    """Structured failure payload; exceptions contribute their message."""
    if isinstance(error, BaseException):
        message = str(error) or fallback
    elif isinstance(error, str) and error:
        message = error
    else:
        message = fallback
    return {"success": False, "error": message}


class ToolInfo(ABC, Generic[T]):
    """Base class for tool definitions.

    Example:
        class MyTool(ToolInfo[MyParams]):
            id = "myTool"
            description = "Does something useful"
            parameters_type = MyParams

            async def execute(self, args: MyParams, ctx: ToolContext) -> ToolPayload:
                return tool_success(result="done")
    """

    id: str
    description: str
    parameters_type: Type[T]
    update_parameters_type: Optional[Type[BaseModel]] = None
    required_env_vars: Tuple[str, ...] = ()

    @abstractmethod
    async def execute(self, args: T, ctx: ToolContext) -> ToolPayload:
        """Run the tool. Implementations catch their own errors and return
        a ``tool_failure`` payload instead of raising."""
        raise NotImplementedError

    async def confirm(self, args: BaseModel, extra: Dict[str, Any]) -> ToolPayload:
        """Perform the confirmed action for a pending tool call."""
        raise NotImplementedError(f"{self.id} does not support confirmation")

    @property
    def supports_confirmation(self) -> bool:
        return type(self).confirm is not ToolInfo.confirm

    @property
    def update_type(self) -> Type[BaseModel]:
        return self.update_parameters_type or self.parameters_type

    def parse(self, args: Any) -> T:
        if isinstance(args, self.parameters_type):
            return args
        return self.parameters_type.model_validate(args or {})


class Tool:
    """Tool factory helpers."""

    @staticmethod
    def define(
        tool_id: str,
        description: str,
        parameters_type: Type[T],
        execute_fn: Callable[[T, ToolContext], Awaitable[ToolPayload]],
        *,
        required_env_vars: Tuple[str, ...] = (),
        update_parameters_type: Optional[Type[BaseModel]] = None,
        confirm_fn: Optional[Callable[[BaseModel, Dict[str, Any]], Awaitable[ToolPayload]]] = None,
    ) -> ToolInfo[T]:
        """Define a tool from plain async functions."""
        _tool_id = tool_id
        _description = description
        _parameters_type = parameters_type
        _update_type = update_parameters_type
        _env = tuple(required_env_vars)

        class FunctionalTool(ToolInfo[T]):
            id = _tool_id
            description = _description
            parameters_type = _parameters_type
            update_parameters_type = _update_type
            required_env_vars = _env

            async def execute(self, args: T, ctx: ToolContext) -> ToolPayload:
                return await execute_fn(self.parse(args), ctx)

        if confirm_fn is not None:
            async def _confirm(self: ToolInfo, args: BaseModel, extra: Dict[str, Any]) -> ToolPayload:
                return await confirm_fn(args, extra)

            FunctionalTool.confirm = _confirm  # type: ignore[method-assign]

        FunctionalTool.__name__ = f"{tool_id}Tool"
        return FunctionalTool()
