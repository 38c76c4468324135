"""Config layers: JSONC files, inline JSON and environment overrides.

Each source produces a plain dict; ``merge_layer`` folds them together in
precedence order before the result is validated against ``Config``.
"""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import commentjson

from ..util.log import Log

log = Log.create({"service": "config.loader"})

Layer = Dict[str, Any]

# Keys whose list values accumulate across layers instead of replacing.
UNION_KEYS = frozenset({"disabled"})

# Environment variables holding a JSON array of tool names to disable.
DISABLED_TOOLS_ENV = ("SOLCHAT_DISABLED_TOOLS", "NEXT_PUBLIC_DISABLED_TOOLS")

ENV_OVERRIDES: Tuple[Tuple[str, Tuple[str, str]], ...] = (
    ("SOLCHAT_PROVIDER", ("provider", "type")),
    ("SOLCHAT_MODEL", ("provider", "model")),
    ("SOLCHAT_ORCHESTRATOR_MODEL", ("provider", "orchestrator_model")),
    ("SOLCHAT_BASE_URL", ("provider", "base_url")),
    ("SOLCHAT_MAX_STEPS", ("chat", "max_steps")),
    ("SOLCHAT_MAX_HISTORY", ("chat", "max_history_messages")),
    ("SOLCHAT_AGENT_GATEWAY_URL", ("tools", "agent_gateway_url")),
    ("SOLCHAT_DATABASE", ("storage", "database")),
    ("SOLCHAT_GATEWAY_KEY", ("server", "gateway_key")),
    ("SOLCHAT_LOG_LEVEL", ("logging", "level")),
    ("SOLCHAT_LOG_FORMAT", ("logging", "format")),
)

_ENV_REF = re.compile(r"\{env:([^}]+)\}")


def merge_layer(base: Layer, layer: Layer) -> Layer:
    """Return ``base`` overlaid with ``layer``; neither input is mutated."""
    merged = dict(base)
    for key, value in layer.items():
        current = merged.get(key)
        if key in UNION_KEYS and isinstance(current, list) and isinstance(value, list):
            merged[key] = current + [item for item in value if item not in current]
        elif isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_layer(current, value)
        else:
            merged[key] = value
    return merged


def expand_env_refs(text: str) -> str:
    """Replace ``{env:NAME}`` with the variable's value, or nothing."""
    return _ENV_REF.sub(lambda m: os.environ.get(m.group(1), ""), text)


def read_file_layer(path: str) -> Layer:
    """Parse a JSON/JSONC config file; a missing or broken file is empty."""
    file = Path(path)
    if not file.is_file():
        return {}
    try:
        data = commentjson.loads(expand_env_refs(file.read_text(encoding="utf-8")))
    except (OSError, ValueError, UnicodeDecodeError) as e:
        log.error("failed to load config file", {"path": path, "error": str(e)})
        return {}
    if not isinstance(data, dict):
        log.error("config file is not an object", {"path": path})
        return {}
    log.info("loaded config file", {"path": path})
    return data


def read_inline_layer(raw: Optional[str]) -> Layer:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        log.error("failed to parse inline config")
        return {}
    return data if isinstance(data, dict) else {}


def parse_disabled_tools(raw: Optional[str]) -> List[str]:
    """Parse a JSON array of tool names; malformed values disable nothing."""
    if raw is None or not raw.strip():
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        log.error("invalid disabled tools value", {"value": raw})
        return []
    if not isinstance(value, list):
        log.error("disabled tools must be a JSON array", {"value": raw})
        return []
    return [str(item) for item in value]


def env_layer(environ: Optional[Dict[str, str]] = None) -> Layer:
    """Overrides from individual environment variables."""
    env = os.environ if environ is None else environ
    layer: Layer = {}
    for name, (section, key) in ENV_OVERRIDES:
        value = env.get(name)
        if value:
            layer.setdefault(section, {})[key] = value

    disabled: List[str] = []
    for name in DISABLED_TOOLS_ENV:
        disabled.extend(parse_disabled_tools(env.get(name)))
    if disabled:
        layer.setdefault("tools", {})["disabled"] = disabled
    return layer


def fold_layers(layers: Iterable[Layer]) -> Layer:
    result: Layer = {}
    for layer in layers:
        if layer:
            result = merge_layer(result, layer)
    return result
