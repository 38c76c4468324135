"""Token search by name or ticker.

This is the tool every turn falls back to when tool selection yields nothing.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from ..util.log import Log
from . import http
from .dexscreener import DEXSCREENER_API, MAX_RESULTS, solana_pairs
from .tool import Tool, ToolContext, ToolPayload, tool_failure, tool_success

log = Log.create({"service": "tool.search_token"})


class SearchTokenParams(BaseModel):
    query: str = Field(..., min_length=1, description="Token name, ticker or symbol to search for")


async def search_token_execute(params: SearchTokenParams, ctx: ToolContext) -> ToolPayload:
    query = params.query.strip().lstrip("$")
    try:
        payload = await http.get_json(
            f"{DEXSCREENER_API}/latest/dex/search",
            params={"q": query},
            timeout=http.timeout_for(ctx.extra),
        )
    except Exception as e:
        log.warn("token search failed", {"query": query, "error": str(e)})
        return tool_failure(e, "Failed to search tokens")

    seen: set[str] = set()
    tokens = []
    for pair in solana_pairs(payload):
        base = pair.get("baseToken") or {}
        address = base.get("address")
        if not address or address in seen:
            continue
        seen.add(address)
        tokens.append(
            {
                "address": address,
                "name": base.get("name"),
                "symbol": base.get("symbol"),
                "priceUsd": pair.get("priceUsd"),
                "liquidityUsd": (pair.get("liquidity") or {}).get("usd"),
                "url": pair.get("url"),
            }
        )
        if len(tokens) >= MAX_RESULTS:
            break

    if not tokens:
        return tool_failure(f"No Solana tokens found for '{query}'")
    return tool_success(data={"tokens": tokens})


SearchTokenTool = Tool.define(
    tool_id="searchTokenByName",
    description=(
        "Search for Solana tokens by name, ticker or symbol. Returns the matching "
        "token mint addresses ordered by liquidity."
    ),
    parameters_type=SearchTokenParams,
    execute_fn=search_token_execute,
)
