"""Drift lending tools."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from .agent_kit import agent_kit_for
from .tool import Tool, ToolContext, ToolPayload, tool_failure, tool_success


class DriftAccountInfoParams(BaseModel):
    pass


class DriftDepositParams(BaseModel):
    amount: float = Field(..., gt=0, description="The amount of tokens to deposit")
    symbol: str = Field(..., description="The symbol of the token to deposit")


class DriftApyParams(BaseModel):
    symbols: Optional[List[str]] = Field(None, description="The symbols of the tokens")


async def drift_account_info_execute(params: DriftAccountInfoParams, ctx: ToolContext) -> ToolPayload:
    kit = agent_kit_for(ctx)
    if kit is None:
        return tool_failure("Failed to retrieve agent")
    try:
        info = await kit.drift_user_account_info()
    except Exception as e:
        return tool_failure(e, "Failed to get drift account")
    return tool_success(result=info, noFollowUp=True)


async def drift_deposit_execute(params: DriftDepositParams, ctx: ToolContext) -> ToolPayload:
    kit = agent_kit_for(ctx)
    if kit is None:
        return tool_failure("Failed to retrieve agent")
    try:
        result = await kit.deposit_to_drift_user_account(params.amount, params.symbol)
    except Exception as e:
        return tool_failure(e, "Failed to deposit to drift account")
    return tool_success(data=result)


async def drift_apy_execute(params: DriftApyParams, ctx: ToolContext) -> ToolPayload:
    kit = agent_kit_for(ctx)
    if kit is None:
        return tool_failure("Failed to retrieve agent")
    try:
        rates = await kit.drift_lending_apy(params.symbols)
    except Exception as e:
        return tool_failure(e, "Failed to get drift APY")
    if params.symbols:
        wanted = set(params.symbols)
        rates = [r for r in rates if (r.get("tokenData") or {}).get("symbol") in wanted]
    return tool_success(data={"rates": rates, "noFollowUp": True})


DriftAccountInfoTool = Tool.define(
    tool_id="driftAccountInfo",
    description="Get drift account info",
    parameters_type=DriftAccountInfoParams,
    execute_fn=drift_account_info_execute,
)

DriftDepositTool = Tool.define(
    tool_id="depositToDriftUserAccount",
    description="Deposit to drift user account",
    parameters_type=DriftDepositParams,
    execute_fn=drift_deposit_execute,
)

DriftApyTool = Tool.define(
    tool_id="getDriftAPY",
    description="Get Drift APY for a given symbol or all symbols (if no symbol is provided)",
    parameters_type=DriftApyParams,
    execute_fn=drift_apy_execute,
)
