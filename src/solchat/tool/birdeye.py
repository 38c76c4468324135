"""Birdeye trader analytics."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from ..core.env import Env
from ..util.log import Log
from . import http
from .tool import Tool, ToolContext, ToolPayload, tool_failure, tool_success

log = Log.create({"service": "tool.birdeye"})

BIRDEYE_API = "https://public-api.birdeye.so"


class TopTradersParams(BaseModel):
    address: str = Field(..., description="Token mint address")
    time_frame: Literal["30m", "1h", "2h", "4h", "6h", "8h", "12h", "24h"] = Field(
        "24h", alias="timeFrame", description="Aggregation window"
    )
    limit: int = Field(10, ge=1, le=10, description="Number of traders to return")

    model_config = {"populate_by_name": True}


async def top_traders_execute(params: TopTradersParams, ctx: ToolContext) -> ToolPayload:
    headers = {
        "X-API-KEY": Env.get("BIRDEYE_API_KEY") or "",
        "x-chain": "solana",
        "accept": "application/json",
    }
    query = {
        "address": params.address,
        "time_frame": params.time_frame,
        "sort_type": "desc",
        "sort_by": "volume",
        "offset": 0,
        "limit": params.limit,
    }
    try:
        payload = await http.get_json(
            f"{BIRDEYE_API}/defi/v2/tokens/top_traders",
            params=query,
            headers=headers,
            timeout=http.timeout_for(ctx.extra),
        )
    except Exception as e:
        log.warn("top traders lookup failed", {"address": params.address, "error": str(e)})
        return tool_failure(e, "Failed to get top traders")

    if not isinstance(payload, dict) or payload.get("success") is False:
        message = payload.get("message") if isinstance(payload, dict) else None
        return tool_failure(message, "Failed to get top traders")
    items = ((payload.get("data") or {}).get("items")) or []
    return tool_success(data={"traders": items})


TopTradersTool = Tool.define(
    tool_id="getTopTraders",
    description="Get the top traders of a Solana token by volume over a time frame.",
    parameters_type=TopTradersParams,
    execute_fn=top_traders_execute,
    required_env_vars=("BIRDEYE_API_KEY",),
)
