import pytest

from solchat.session.llm import LLM
from solchat.session.message import UsageRecord
from solchat.session.orchestrator import INVALID_TOOL, select_tools
from solchat.tool.registry import ToolRegistry


def _answer(monkeypatch: pytest.MonkeyPatch, value=None, error=None):  # type: ignore[no-untyped-def]
    calls = []

    async def fake_generate_object(cls, schema, prompt, **kwargs):  # type: ignore[no-untyped-def]
        calls.append({"prompt": prompt, **kwargs})
        if error is not None:
            raise error
        return value, UsageRecord.of(30, 5)

    monkeypatch.setattr(LLM, "generate_object", classmethod(fake_generate_object))
    return calls


@pytest.mark.anyio
async def test_selection_keeps_enabled_known_tools(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _answer(
        monkeypatch,
        {"toolsRequired": ["searchTokenByName", "swapTokens", INVALID_TOOL, "launchRocket", "swapTokens"]},
    )
    messages = [
        {"role": "user", "content": "swap 1 sol to bonk"},
        {"role": "tool", "tool_call_id": "c", "content": "{}"},
    ]

    selection = await select_tools(
        messages,
        degen_mode=True,
        registry=ToolRegistry(),
        disabled=["searchTokenByName"],
    )

    assert selection.tools == ["swapTokens"]
    assert selection.usage.total_tokens == 35
    assert calls[0]["prompt"] == "user: swap 1 sol to bonk"
    assert calls[0]["purpose"] == "orchestrator"
    assert "Degen Mode: true" in calls[0]["system"]
    assert '"name": "searchTokenByName"' not in calls[0]["system"]


@pytest.mark.anyio
async def test_selection_failure_yields_empty_selection(monkeypatch: pytest.MonkeyPatch) -> None:
    _answer(monkeypatch, error=RuntimeError("provider down"))

    selection = await select_tools([], degen_mode=False, registry=ToolRegistry())

    assert selection.tools == []
    assert selection.usage.is_empty()
