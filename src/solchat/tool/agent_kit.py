"""Capability client for on-chain actions.

Tools never talk to the chain directly; they go through an ``AgentKit``
resolved from the tool context. The default implementation forwards each
action as JSON to an HTTP gateway that holds the signing keys.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

import httpx

from ..util.log import Log
from .tool import ToolContext

log = Log.create({"service": "tool.agent_kit"})


class AgentKitError(RuntimeError):
    """Raised when the gateway rejects or fails an action."""


class AgentKit(Protocol):
    async def trade(
        self,
        output_mint: str,
        input_amount: float,
        input_mint: Optional[str] = None,
        slippage_bps: Optional[int] = None,
    ) -> Dict[str, Any]: ...

    async def transfer(self, receiver: str, amount: float, mint: Optional[str] = None) -> Dict[str, Any]: ...

    async def drift_user_account_info(self) -> Dict[str, Any]: ...

    async def deposit_to_drift_user_account(self, amount: float, symbol: str) -> Dict[str, Any]: ...

    async def drift_lending_apy(self, symbols: Optional[List[str]] = None) -> List[Dict[str, Any]]: ...


class GatewayAgentKit:
    """``AgentKit`` backed by ``POST <base_url>/<action>``."""

    def __init__(
        self,
        base_url: str,
        *,
        wallet_address: Optional[str] = None,
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.wallet_address = wallet_address
        self.timeout = timeout
        self._transport = transport

    def for_wallet(self, wallet_address: Optional[str]) -> "GatewayAgentKit":
        return GatewayAgentKit(
            self.base_url,
            wallet_address=wallet_address,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _call(self, action: str, params: Dict[str, Any]) -> Any:
        body = {"wallet": self.wallet_address, "params": params}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(f"{self.base_url}/{action}", json=body)
        if response.status_code >= 400:
            log.warn("agent gateway error", {"action": action, "status": response.status_code})
            raise AgentKitError(f"{action} failed with status code: {response.status_code}")
        payload = response.json()
        if isinstance(payload, dict) and payload.get("error"):
            raise AgentKitError(str(payload["error"]))
        if isinstance(payload, dict) and "data" in payload:
            return payload["data"]
        return payload

    async def trade(
        self,
        output_mint: str,
        input_amount: float,
        input_mint: Optional[str] = None,
        slippage_bps: Optional[int] = None,
    ) -> Dict[str, Any]:
        return await self._call(
            "trade",
            {
                "outputMint": output_mint,
                "inputAmount": input_amount,
                "inputMint": input_mint,
                "slippageBps": slippage_bps,
            },
        )

    async def transfer(self, receiver: str, amount: float, mint: Optional[str] = None) -> Dict[str, Any]:
        return await self._call("transfer", {"receiver": receiver, "amount": amount, "mint": mint})

    async def drift_user_account_info(self) -> Dict[str, Any]:
        return await self._call("driftUserAccountInfo", {})

    async def deposit_to_drift_user_account(self, amount: float, symbol: str) -> Dict[str, Any]:
        return await self._call("depositToDriftUserAccount", {"amount": amount, "symbol": symbol})

    async def drift_lending_apy(self, symbols: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        result = await self._call("driftLendingApy", {"symbols": symbols or []})
        return list(result or [])


def resolve_agent_kit(ctx_extra: Dict[str, Any]) -> Optional[AgentKit]:
    """Agent kit for the current request, if one is configured."""
    kit = ctx_extra.get("agent_kit")
    if kit is None:
        return None
    if isinstance(kit, GatewayAgentKit):
        return kit.for_wallet(ctx_extra.get("wallet_address"))
    return kit


def agent_kit_for(ctx: ToolContext) -> Optional[AgentKit]:
    return resolve_agent_kit(ctx.extra)
