"""Portable JSON schema export for tool parameter models."""

from __future__ import annotations

from copy import deepcopy
from typing import Any, Type

from pydantic import BaseModel

_CHILD_MAPS = ("properties", "patternProperties", "$defs", "definitions")
_CHILD_LISTS = ("anyOf", "oneOf", "allOf", "prefixItems")
_CHILD_NODES = ("items", "additionalProperties", "not", "contains")


def _is_null(branch: Any) -> bool:
    return isinstance(branch, dict) and branch.get("type") == "null"


def _collapse_optional(node: dict[str, Any]) -> None:
    """Rewrite ``Optional[X]`` renderings into plain ``X``.

    Pydantic renders optional fields either as ``type: [X, "null"]`` or as an
    ``anyOf`` with a null branch; providers handle the plain form better.
    """
    kind = node.get("type")
    if isinstance(kind, list) and len(kind) == 2 and "null" in kind:
        node["type"] = next(item for item in kind if item != "null")
        if node.get("default") is None:
            node.pop("default", None)
        return

    branches = node.get("anyOf")
    if not isinstance(branches, list) or len(branches) != 2:
        return
    if sum(1 for item in branches if _is_null(item)) != 1:
        return
    other = next((item for item in branches if isinstance(item, dict) and not _is_null(item)), None)
    if other is None:
        return
    node.pop("anyOf")
    if node.get("default") is None:
        node.pop("default", None)
    for key, value in other.items():
        if key != "title":
            node.setdefault(key, value)


def _walk(node: Any) -> None:
    if isinstance(node, list):
        for item in node:
            _walk(item)
        return
    if not isinstance(node, dict):
        return

    node.pop("title", None)
    _collapse_optional(node)
    if node.get("type") == "object" and isinstance(node.get("properties"), dict):
        node.setdefault("additionalProperties", False)

    for key in _CHILD_MAPS:
        children = node.get(key)
        if isinstance(children, dict):
            for child in children.values():
                _walk(child)
    for key in _CHILD_LISTS:
        children = node.get(key)
        if isinstance(children, list):
            _walk(children)
    for key in _CHILD_NODES:
        child = node.get(key)
        if isinstance(child, (dict, list)):
            _walk(child)


def strictify_schema(schema: dict[str, Any]) -> dict[str, Any]:
    """Return a normalized copy of ``schema``.

    Titles are dropped, optional unions collapse to their non-null branch and
    object schemas with explicit properties default to
    ``additionalProperties: false``.
    """
    result = deepcopy(schema or {})
    _walk(result)
    return result


def _inline_refs(node: Any, defs: dict[str, Any]) -> Any:
    if isinstance(node, list):
        return [_inline_refs(item, defs) for item in node]
    if not isinstance(node, dict):
        return node
    ref = node.get("$ref")
    if isinstance(ref, str) and ref.startswith("#/$defs/"):
        target = defs.get(ref.split("/")[-1], {})
        merged = {k: v for k, v in node.items() if k != "$ref"}
        merged.update(_inline_refs(deepcopy(target), defs))
        return merged
    return {key: _inline_refs(value, defs) for key, value in node.items() if key != "$defs"}


def parameters_schema(model: Type[BaseModel]) -> dict[str, Any]:
    """JSON schema for a tool parameters model, with ``$ref``s inlined."""
    raw = model.model_json_schema()
    defs = raw.get("$defs", {})
    return strictify_schema(_inline_refs(raw, defs))
