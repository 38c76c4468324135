"""Chat turn pipeline with lazy exports to avoid import cycles."""

from __future__ import annotations

from importlib import import_module
from typing import Dict, Tuple

_EXPORTS: Dict[str, Tuple[str, str]] = {
    "ChatMessage": (".message", "ChatMessage"),
    "IncomingMessage": (".message", "IncomingMessage"),
    "ToolInvocation": (".message", "ToolInvocation"),
    "UsageRecord": (".message", "UsageRecord"),
    "ResponseMessage": (".message", "ResponseMessage"),
    "TurnKind": (".classifier", "TurnKind"),
    "classify": (".classifier", "classify"),
    "LLM": (".llm", "LLM"),
    "LLMError": (".llm", "LLMError"),
    "StreamInput": (".llm", "StreamInput"),
    "StreamChunk": (".llm", "StreamChunk"),
    "StreamResult": (".llm", "StreamResult"),
    "ChatProcessor": (".processor", "ChatProcessor"),
    "ProcessorResult": (".processor", "ProcessorResult"),
    "ProviderStreamError": (".processor", "ProviderStreamError"),
    "ResponseReconciler": (".reconcile", "ResponseReconciler"),
    "DataStreamWriter": (".stream", "DataStreamWriter"),
    "SystemPrompt": (".system", "SystemPrompt"),
}


def __getattr__(name: str):
    target = _EXPORTS.get(name)
    if not target:
        raise AttributeError(name)

    module_name, attr_name = target
    module = import_module(module_name, __name__)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value


__all__ = list(_EXPORTS.keys())
