import pytest

from solchat.tool.registry import ToolRegistry
from solchat.tool.tool import AbortContext, ToolContext
from solchat.tool.wrapper import DEFAULT_TOOLS, wrap_tools


def test_wrap_tools_returns_only_requested_known_tools() -> None:
    registry = ToolRegistry()
    ctx = ToolContext()

    bound = wrap_tools(registry, ctx, ["swapTokens", "getTokenPairs", "nope"])

    assert list(bound) == ["swapTokens", "getTokenPairs"]
    assert all(tool.ctx is ctx for tool in bound.values())


@pytest.mark.parametrize("requested", [None, []])
def test_wrap_tools_falls_back_to_default_tool(requested) -> None:  # type: ignore[no-untyped-def]
    bound = wrap_tools(ToolRegistry(), ToolContext(), requested)

    assert list(bound) == list(DEFAULT_TOOLS)


def test_bound_tool_definition_is_openai_function() -> None:
    bound = wrap_tools(ToolRegistry(), ToolContext(), ["transferTokens"])["transferTokens"]

    definition = bound.definition()

    assert definition["type"] == "function"
    assert definition["function"]["name"] == "transferTokens"
    assert definition["function"]["parameters"]["additionalProperties"] is False


@pytest.mark.anyio
async def test_bound_tools_share_the_request_abort_context() -> None:
    abort = AbortContext()
    ctx = ToolContext(abort=abort, extra={"ask_for_confirmation": True})
    bound = wrap_tools(ToolRegistry(), ctx, ["askForConfirmation"])

    result = await bound["askForConfirmation"]({"message": "Proceed?"}, call_id="call_1")

    assert result["step"] == "pending"
    assert abort.should_abort is True
    assert abort.requested is True
