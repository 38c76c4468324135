"""Token transfer tool."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ..util.log import Log
from .agent_kit import agent_kit_for, resolve_agent_kit
from .tool import Tool, ToolContext, ToolPayload, ToolStep, tool_failure, tool_success

log = Log.create({"service": "tool.transfer"})


class TransferParams(BaseModel):
    receiver: str = Field(..., description="Recipient wallet address")
    amount: float = Field(..., gt=0, description="Amount of tokens to send")
    token_address: Optional[str] = Field(
        None, alias="tokenAddress", description="Token mint address; omit to send SOL"
    )
    token_symbol: Optional[str] = Field(None, alias="tokenSymbol", description="Token symbol for display")

    model_config = {"populate_by_name": True}


async def _send(params: TransferParams, extra: Dict[str, Any]) -> ToolPayload:
    kit = resolve_agent_kit(extra)
    if kit is None:
        return {**tool_failure("Failed to retrieve agent"), "step": ToolStep.FAILED.value}
    try:
        signature = await kit.transfer(params.receiver, params.amount, mint=params.token_address)
    except Exception as e:
        log.warn("transfer failed", {"receiver": params.receiver, "error": str(e)})
        return {**tool_failure(e, "Failed to transfer tokens"), "step": ToolStep.FAILED.value}
    return tool_success(
        step=ToolStep.COMPLETED.value,
        result={"signature": signature, **params.model_dump(by_alias=True)},
    )


async def transfer_execute(params: TransferParams, ctx: ToolContext) -> ToolPayload:
    if ctx.ask_for_confirmation:
        ctx.request_abort(hard=True)
        return tool_success(step=ToolStep.PENDING.value, result=params.model_dump(by_alias=True))

    if agent_kit_for(ctx) is None:
        return {**tool_failure("Failed to retrieve agent"), "step": ToolStep.FAILED.value}
    result = await _send(params, ctx.extra)
    if result.get("success"):
        ctx.request_abort(hard=False)
    return result


async def transfer_confirm(params: BaseModel, extra: Dict[str, Any]) -> ToolPayload:
    return await _send(TransferParams.model_validate(params.model_dump(by_alias=True)), extra)


TransferTool = Tool.define(
    tool_id="transferTokens",
    description="Transfer SOL or an SPL token to another wallet.",
    parameters_type=TransferParams,
    execute_fn=transfer_execute,
    confirm_fn=transfer_confirm,
)
