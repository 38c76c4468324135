"""DexScreener market-data tools."""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, Field

from ..util.log import Log
from . import http
from .tool import Tool, ToolContext, ToolPayload, tool_failure, tool_success

log = Log.create({"service": "tool.dexscreener"})

DEXSCREENER_API = "https://api.dexscreener.com"
MAX_RESULTS = 10


def _pair_summary(pair: Dict[str, Any]) -> Dict[str, Any]:
    base = pair.get("baseToken") or {}
    quote = pair.get("quoteToken") or {}
    return {
        "chainId": pair.get("chainId"),
        "dexId": pair.get("dexId"),
        "pairAddress": pair.get("pairAddress"),
        "baseToken": {k: base.get(k) for k in ("address", "name", "symbol")},
        "quoteToken": {k: quote.get(k) for k in ("address", "name", "symbol")},
        "priceUsd": pair.get("priceUsd"),
        "liquidityUsd": (pair.get("liquidity") or {}).get("usd"),
        "volume24h": (pair.get("volume") or {}).get("h24"),
        "priceChange24h": (pair.get("priceChange") or {}).get("h24"),
        "fdv": pair.get("fdv"),
        "url": pair.get("url"),
    }


def solana_pairs(payload: Any) -> List[Dict[str, Any]]:
    """Solana pairs from a DexScreener response, most liquid first."""
    if isinstance(payload, dict):
        pairs = payload.get("pairs") or []
    elif isinstance(payload, list):
        pairs = payload
    else:
        pairs = []
    found = [p for p in pairs if isinstance(p, dict) and p.get("chainId") == "solana"]
    found.sort(key=lambda p: float((p.get("liquidity") or {}).get("usd") or 0), reverse=True)
    return found


class TokenPairsParams(BaseModel):
    contract_address: str = Field(..., alias="contractAddress", description="The token mint address")

    model_config = {"populate_by_name": True}


async def token_pairs_execute(params: TokenPairsParams, ctx: ToolContext) -> ToolPayload:
    try:
        payload = await http.get_json(
            f"{DEXSCREENER_API}/token-pairs/v1/solana/{params.contract_address}",
            timeout=http.timeout_for(ctx.extra),
        )
    except Exception as e:
        log.warn("token pairs lookup failed", {"address": params.contract_address, "error": str(e)})
        return tool_failure(e, "Failed to get token pairs")

    pairs = [_pair_summary(pair) for pair in solana_pairs(payload)[:MAX_RESULTS]]
    return tool_success(data={"pairs": pairs})


TokenPairsTool = Tool.define(
    tool_id="getTokenPairs",
    description="Get the trading pairs for a Solana token by its contract address.",
    parameters_type=TokenPairsParams,
    execute_fn=token_pairs_execute,
)
