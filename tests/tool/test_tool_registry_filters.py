import json

from pydantic import BaseModel

from solchat.tool.registry import BUILTIN_TOOLS, ToolRegistry
from solchat.tool.tool import Tool, ToolContext, tool_success


class _EchoParams(BaseModel):
    text: str


async def _echo(params: _EchoParams, ctx: ToolContext):  # type: ignore[no-untyped-def]
    return tool_success(text=params.text)


def _gated(name: str, *env: str):  # type: ignore[no-untyped-def]
    return Tool.define(
        tool_id=name,
        description=f"{name} tool",
        parameters_type=_EchoParams,
        execute_fn=_echo,
        required_env_vars=tuple(env),
    )


def test_filter_drops_disabled_tools() -> None:
    registry = ToolRegistry([_gated("alpha"), _gated("beta")])

    names = [item["name"] for item in registry.list_metadata(disabled=["beta"], env={})]

    assert names == ["alpha"]


def test_filter_requires_every_env_var_present_and_non_empty() -> None:
    registry = ToolRegistry([_gated("alpha", "A_KEY", "B_KEY"), _gated("beta", "A_KEY")])

    assert registry.enabled(env={"A_KEY": "x"}).keys() == {"beta"}
    assert registry.enabled(env={"A_KEY": "x", "B_KEY": ""}).keys() == {"beta"}
    assert registry.enabled(env={"A_KEY": "x", "B_KEY": "y"}).keys() == {"alpha", "beta"}
    assert registry.enabled(env={}).keys() == set()


def test_metadata_is_excluded_iff_disabled_or_env_missing() -> None:
    registry = ToolRegistry()
    env = {"BIRDEYE_API_KEY": "k"}

    names = {item["name"] for item in registry.list_metadata(disabled=["swapTokens"], env=env)}

    assert "swapTokens" not in names
    assert "getTopTraders" in names
    assert "readWebPage" not in names
    assert "transferTokens" in names


def test_builtin_catalog_names_are_unique() -> None:
    names = [tool.id for tool in BUILTIN_TOOLS]

    assert len(names) == len(set(names))
    assert set(ToolRegistry().names()) == set(names)


def test_metadata_lines_are_ndjson_with_schemas() -> None:
    registry = ToolRegistry([_gated("alpha"), _gated("beta")])

    lines = registry.metadata_lines(env={}).splitlines()
    items = [json.loads(line) for line in lines]

    assert [item["name"] for item in items] == ["alpha", "beta"]
    assert items[0]["description"] == "alpha tool"
    assert items[0]["parameters"]["properties"]["text"]["type"] == "string"


def test_update_parameters_fall_back_to_input_schema() -> None:
    registry = ToolRegistry()

    assert registry.get_update_parameters("searchTokenByName") is registry.get_parameters("searchTokenByName")
    assert registry.get_update_parameters("swapTokens") is not registry.get_parameters("swapTokens")
    assert registry.get_parameters("missing") is None
    assert registry.get_update_parameters("missing") is None


def test_registry_reads_env_snapshot_when_no_env_given(monkeypatch) -> None:  # type: ignore[no-untyped-def]
    from solchat.core.env import Env

    registry = ToolRegistry([_gated("alpha", "ALPHA_KEY")])
    Env.set("ALPHA_KEY", "")
    assert registry.enabled().keys() == set()

    Env.set("ALPHA_KEY", "value")
    assert registry.enabled().keys() == {"alpha"}
