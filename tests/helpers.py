"""Shared test helpers."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from solchat.core.config import Config, ConfigManager
from solchat.provider.sdk.types import ToolCall
from solchat.runtime import AppContext
from solchat.session.llm import StreamChunk
from solchat.storage import SQLiteConversationStore
from solchat.tool.registry import ToolRegistry


class FakeAgentKit:
    """Records capability calls and returns canned results."""

    def __init__(self, *, fail: Optional[str] = None) -> None:
        self.fail = fail
        self.calls: List[tuple[str, Dict[str, Any]]] = []

    async def _record(self, action: str, **params: Any) -> Any:
        self.calls.append((action, params))
        if self.fail:
            raise RuntimeError(self.fail)
        return f"sig_{action}_{len(self.calls)}"

    async def trade(self, output_mint, input_amount, input_mint=None, slippage_bps=None):  # type: ignore[no-untyped-def]
        return await self._record(
            "trade",
            output_mint=output_mint,
            input_amount=input_amount,
            input_mint=input_mint,
            slippage_bps=slippage_bps,
        )

    async def transfer(self, receiver, amount, mint=None):  # type: ignore[no-untyped-def]
        return await self._record("transfer", receiver=receiver, amount=amount, mint=mint)

    async def drift_user_account_info(self):  # type: ignore[no-untyped-def]
        await self._record("driftUserAccountInfo")
        return {"balance": 10}

    async def deposit_to_drift_user_account(self, amount, symbol):  # type: ignore[no-untyped-def]
        return await self._record("depositToDriftUserAccount", amount=amount, symbol=symbol)

    async def drift_lending_apy(self, symbols=None):  # type: ignore[no-untyped-def]
        await self._record("driftLendingApy", symbols=symbols)
        return [
            {"tokenData": {"symbol": "USDC"}, "depositApy": 5.1},
            {"tokenData": {"symbol": "SOL"}, "depositApy": 2.3},
        ]


def tool_call_chunks(call_id: str, name: str, args: Dict[str, Any]) -> List[StreamChunk]:
    """Stream chunks a provider emits for one complete tool call."""
    return [
        StreamChunk(type="tool_call_start", tool_call_id=call_id, tool_call_name=name),
        StreamChunk(type="tool_call_delta", tool_call_id=call_id, tool_call_input_delta="{}"),
        StreamChunk(type="tool_call_end", tool_call=ToolCall(id=call_id, name=name, input=args)),
    ]


def usage_chunk(prompt: int, completion: int) -> StreamChunk:
    return StreamChunk(
        type="message_delta",
        usage={"input_tokens": prompt, "output_tokens": completion},
        stop_reason="stop",
    )


def make_app_context(**overrides: Any) -> AppContext:
    """AppContext over an in-memory store with a test configuration."""
    config = overrides.pop("config", None) or Config.model_validate(
        {"chat": {"smoothDelayMs": 0}, "provider": {"apiKey": "test-key"}}
    )
    ConfigManager.set(config)
    return AppContext(
        config=config,
        registry=overrides.pop("registry", None) or ToolRegistry(),
        store=overrides.pop("store", None) or SQLiteConversationStore(":memory:"),
        agent_kit=overrides.pop("agent_kit", None),
        **overrides,
    )


def parse_stream(body: str) -> List[tuple[str, Any]]:
    """Split a data-stream body into ``(code, value)`` parts."""
    import json

    parts = []
    for line in body.splitlines():
        if not line:
            continue
        code, _, value = line.partition(":")
        parts.append((code, json.loads(value)))
    return parts
