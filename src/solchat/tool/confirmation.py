"""Explicit user confirmation before a sensitive action."""

from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, Field

from .tool import Tool, ToolContext, ToolPayload, ToolStep, tool_success


class AskForConfirmationParams(BaseModel):
    message: str = Field(..., description="The question to put to the user")


async def ask_for_confirmation_execute(params: AskForConfirmationParams, ctx: ToolContext) -> ToolPayload:
    # stop the loop; the answer arrives as a tool update
    ctx.request_abort(hard=True)
    return tool_success(step=ToolStep.PENDING.value, result={"message": params.message})


async def ask_for_confirmation_confirm(params: BaseModel, extra: Dict[str, Any]) -> ToolPayload:
    return tool_success(step=ToolStep.COMPLETED.value, result={"confirmed": True, **params.model_dump()})


AskForConfirmationTool = Tool.define(
    tool_id="askForConfirmation",
    description="Ask the user to confirm before proceeding with an action.",
    parameters_type=AskForConfirmationParams,
    execute_fn=ask_for_confirmation_execute,
    confirm_fn=ask_for_confirmation_confirm,
)
