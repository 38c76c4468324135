"""Confirmation flow for pending tool calls.

A confirmed or edited tool call is executed directly through the tool's
``confirm`` hook and written back into the stored message. No model turn is
involved.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..storage.store import ConversationStore
from ..tool.registry import ToolRegistry
from ..tool.tool import ToolPayload, ToolStep, tool_failure
from ..util.log import Log
from .classifier import ToolUpdate
from .message import ToolCallState, ToolInvocation

log = Log.create({"service": "session.confirmation"})


def _as_dict(value: Any) -> Dict[str, Any]:
    return dict(value) if isinstance(value, dict) else {}


async def _write_back(
    store: ConversationStore,
    update: ToolUpdate,
    args: Any,
    result: ToolPayload,
) -> None:
    try:
        message = await store.get_message(update.message_id_to_update)
        if message is None:
            log.warn("message to update not found", {"message_id": update.message_id_to_update})
            return
        invocations: List[ToolInvocation] = []
        for inv in message.tool_invocations:
            if inv.tool_call_id == update.tool_call_id:
                inv = inv.model_copy(update={"state": ToolCallState.RESULT, "args": args, "result": result})
            invocations.append(inv)
        await store.update_tool_invocations(message.id, invocations)
    except Exception as e:
        log.error("failed to persist tool update", {"tool_call_id": update.tool_call_id, "error": str(e)})


async def handle_tool_update(
    update: ToolUpdate,
    *,
    registry: ToolRegistry,
    store: ConversationStore,
    extra: Optional[Dict[str, Any]] = None,
) -> ToolPayload:
    """Run the confirmed action for a pending tool call and persist it."""
    tool = registry.get(update.tool_name)
    if tool is None or not tool.supports_confirmation:
        log.warn("tool does not support confirmation", {"tool": update.tool_name})
        result = {**tool_failure(f"Tool '{update.tool_name}' cannot be confirmed"), "step": ToolStep.FAILED.value}
        await _write_back(store, update, update.args, result)
        return result

    stored_args = _as_dict(update.stored.args if update.stored else None)
    merged = {**stored_args, **_as_dict(update.args)}
    try:
        edits = tool.update_type.model_validate(merged)
        params = tool.parameters_type.model_validate(
            {**merged, **edits.model_dump(by_alias=True, exclude_none=True)}
        )
    except ValidationError as e:
        # leave the call pending so the user can correct the edit
        log.info("rejected tool update arguments", {"tool": update.tool_name, "errors": e.error_count()})
        return tool_failure(e, "Invalid tool arguments")

    try:
        result = await tool.confirm(params, dict(extra or {}))
    except Exception as e:
        log.error("tool confirmation failed", {"tool": update.tool_name, "error": str(e)})
        result = {**tool_failure(e, "Tool confirmation failed"), "step": ToolStep.FAILED.value}

    if ToolStep.of(result) is None:
        step = ToolStep.COMPLETED if result.get("success") else ToolStep.FAILED
        result = {**result, "step": step.value}

    await _write_back(store, update, params.model_dump(by_alias=True), result)
    log.info("tool update handled", {"tool": update.tool_name, "step": result["step"]})
    return result


async def handle_tool_cancel(update: ToolUpdate, *, store: ConversationStore) -> ToolPayload:
    """Resolve a pending tool call as canceled."""
    stored = _as_dict(update.stored.result if update.stored is not None else None)
    result = {**stored, **_as_dict(update.results), "step": ToolStep.CANCELED.value}
    args = update.stored.args if update.stored is not None else update.args
    await _write_back(store, update, args, result)
    log.info("tool call canceled", {"tool": update.tool_name, "tool_call_id": update.tool_call_id})
    return result
