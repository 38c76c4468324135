"""Token swap tool.

With confirmation enabled the call resolves to a ``pending`` step and ends
the turn; the user then confirms (optionally editing the amount or slippage)
and ``confirm`` performs the trade without another model turn.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ..util.log import Log
from .agent_kit import agent_kit_for, resolve_agent_kit
from .tool import Tool, ToolContext, ToolPayload, ToolStep, tool_failure, tool_success

log = Log.create({"service": "tool.swap"})

SOL_MINT = "So11111111111111111111111111111111111111112"


class SwapParams(BaseModel):
    output_mint: str = Field(..., alias="outputMint", description="Mint address of the token to receive")
    input_amount: float = Field(..., alias="inputAmount", gt=0, description="Amount of the input token to swap")
    input_mint: str = Field(SOL_MINT, alias="inputMint", description="Mint address of the token to spend")
    input_symbol: Optional[str] = Field(None, alias="inputSymbol", description="Symbol of the input token")
    output_symbol: Optional[str] = Field(None, alias="outputSymbol", description="Symbol of the output token")
    slippage_bps: Optional[int] = Field(None, alias="slippageBps", ge=1, le=5000, description="Slippage in bps")

    model_config = {"populate_by_name": True}


class SwapUpdateParams(BaseModel):
    input_amount: float = Field(..., alias="inputAmount", gt=0)
    slippage_bps: Optional[int] = Field(None, alias="slippageBps", ge=1, le=5000)

    model_config = {"populate_by_name": True}


async def _trade(params: SwapParams, extra: Dict[str, Any]) -> ToolPayload:
    kit = resolve_agent_kit(extra)
    if kit is None:
        return {**tool_failure("Failed to retrieve agent"), "step": ToolStep.FAILED.value}
    try:
        result = await kit.trade(
            params.output_mint,
            params.input_amount,
            input_mint=params.input_mint,
            slippage_bps=params.slippage_bps,
        )
    except Exception as e:
        log.warn("swap failed", {"output_mint": params.output_mint, "error": str(e)})
        return {**tool_failure(e, "Failed to swap tokens"), "step": ToolStep.FAILED.value}
    return tool_success(
        step=ToolStep.COMPLETED.value,
        result={"transaction": result, **params.model_dump(by_alias=True)},
    )


async def swap_execute(params: SwapParams, ctx: ToolContext) -> ToolPayload:
    if ctx.ask_for_confirmation:
        ctx.request_abort(hard=True)
        return tool_success(step=ToolStep.PENDING.value, result=params.model_dump(by_alias=True))

    if agent_kit_for(ctx) is None:
        return {**tool_failure("Failed to retrieve agent"), "step": ToolStep.FAILED.value}
    result = await _trade(params, ctx.extra)
    if result.get("success"):
        # persist the executed trade at the step boundary
        ctx.request_abort(hard=False)
    return result


async def swap_confirm(params: BaseModel, extra: Dict[str, Any]) -> ToolPayload:
    return await _trade(SwapParams.model_validate(params.model_dump(by_alias=True)), extra)


SwapTool = Tool.define(
    tool_id="swapTokens",
    description=(
        "Swap tokens on Solana. Use searchTokenByName first to resolve token mint "
        "addresses; inputMint defaults to SOL."
    ),
    parameters_type=SwapParams,
    execute_fn=swap_execute,
    update_parameters_type=SwapUpdateParams,
    confirm_fn=swap_confirm,
)
