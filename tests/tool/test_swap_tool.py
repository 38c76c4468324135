import pytest

from solchat.tool.swap import SOL_MINT, SwapTool
from solchat.tool.tool import AbortContext, ToolContext
from solchat.tool.transfer import TransferTool
from tests.helpers import FakeAgentKit


def _ctx(kit=None, *, confirm: bool) -> ToolContext:  # type: ignore[no-untyped-def]
    return ToolContext(
        abort=AbortContext(),
        extra={"ask_for_confirmation": confirm, "agent_kit": kit, "wallet_address": "wallet"},
        call_id="call_swap",
    )


@pytest.mark.anyio
async def test_swap_with_confirmation_returns_pending_and_requests_hard_abort() -> None:
    kit = FakeAgentKit()
    ctx = _ctx(kit, confirm=True)

    result = await SwapTool.execute({"outputMint": "USDC", "inputAmount": 1}, ctx)

    assert result["success"] is True
    assert result["step"] == "pending"
    assert result["result"]["inputMint"] == SOL_MINT
    assert ctx.abort.should_abort is True
    assert kit.calls == []


@pytest.mark.anyio
async def test_swap_without_confirmation_trades_and_requests_soft_abort() -> None:
    kit = FakeAgentKit()
    ctx = _ctx(kit, confirm=False)

    result = await SwapTool.execute({"outputMint": "USDC", "inputAmount": 2, "slippageBps": 50}, ctx)

    assert result["success"] is True
    assert result["step"] == "completed"
    assert result["result"]["transaction"] == "sig_trade_1"
    assert kit.calls[0][1]["slippage_bps"] == 50
    assert ctx.abort.aborted is True
    assert ctx.abort.should_abort is False


@pytest.mark.anyio
async def test_swap_failure_is_a_structured_payload() -> None:
    ctx = _ctx(FakeAgentKit(fail="insufficient funds"), confirm=False)

    result = await SwapTool.execute({"outputMint": "USDC", "inputAmount": 2}, ctx)

    assert result == {"success": False, "error": "insufficient funds", "step": "failed"}
    assert ctx.abort.requested is False


@pytest.mark.anyio
async def test_swap_without_agent_kit_fails() -> None:
    result = await SwapTool.execute({"outputMint": "USDC", "inputAmount": 2}, _ctx(None, confirm=False))

    assert result["success"] is False
    assert result["error"] == "Failed to retrieve agent"


@pytest.mark.anyio
async def test_swap_confirm_runs_trade_with_params() -> None:
    kit = FakeAgentKit()
    params = SwapTool.parameters_type.model_validate({"outputMint": "USDC", "inputAmount": 3})

    result = await SwapTool.confirm(params, {"agent_kit": kit})

    assert result["step"] == "completed"
    assert kit.calls == [
        ("trade", {"output_mint": "USDC", "input_amount": 3.0, "input_mint": SOL_MINT, "slippage_bps": None})
    ]


@pytest.mark.anyio
async def test_transfer_confirmation_flow() -> None:
    kit = FakeAgentKit()
    ctx = _ctx(kit, confirm=True)

    pending = await TransferTool.execute({"receiver": "dest", "amount": 1.5}, ctx)
    assert pending["step"] == "pending"
    assert ctx.abort.should_abort is True

    params = TransferTool.parameters_type.model_validate({"receiver": "dest", "amount": 1.5})
    done = await TransferTool.confirm(params, {"agent_kit": kit})

    assert done["step"] == "completed"
    assert kit.calls[0] == ("transfer", {"receiver": "dest", "amount": 1.5, "mint": None})


@pytest.mark.anyio
async def test_transfer_without_agent_kit_fails_without_abort() -> None:
    ctx = _ctx(None, confirm=False)

    result = await TransferTool.execute({"receiver": "dest", "amount": 1.5}, ctx)

    assert result == {"success": False, "error": "Failed to retrieve agent", "step": "failed"}
    assert ctx.abort.requested is False


def test_confirmation_support_is_declared_by_tools() -> None:
    from solchat.tool.search_token import SearchTokenTool

    assert SwapTool.supports_confirmation is True
    assert TransferTool.supports_confirmation is True
    assert SearchTokenTool.supports_confirmation is False
