from datetime import datetime, timedelta, timezone

from solchat.session.classifier import TurnKind, classify, find_tool_update, relevant_history
from solchat.session.message import ChatMessage, IncomingMessage, MessageRole, ToolCallState, ToolInvocation

_BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _assistant(message_id: str, *invocations: ToolInvocation, offset: int = 0) -> ChatMessage:
    return ChatMessage(
        id=message_id,
        conversation_id="conv",
        role=MessageRole.ASSISTANT,
        tool_invocations=list(invocations),
        created_at=_BASE + timedelta(seconds=offset),
    )


def _invocation(call_id: str, state: ToolCallState, result=None, name: str = "transferTokens") -> ToolInvocation:  # type: ignore[no-untyped-def]
    return ToolInvocation(tool_call_id=call_id, tool_name=name, state=state, args={"amount": 1}, result=result)


def _incoming(call_id: str, result=None) -> IncomingMessage:  # type: ignore[no-untyped-def]
    return IncomingMessage.model_validate(
        {
            "role": "user",
            "content": "",
            "toolInvocations": [
                {"toolCallId": call_id, "toolName": "transferTokens", "state": "result", "result": result}
            ],
        }
    )


def test_plain_user_message_is_new_turn() -> None:
    history = [_assistant("m1", _invocation("c1", ToolCallState.CALL))]
    message = IncomingMessage(role=MessageRole.USER, content="hello")

    assert classify(message, history).kind == TurnKind.NEW_USER_TURN


def test_pending_call_with_canceled_step_is_cancellation() -> None:
    history = [_assistant("m1", _invocation("c1", ToolCallState.CALL))]

    classification = classify(_incoming("c1", {"step": "canceled"}), history)

    assert classification.kind == TurnKind.TOOL_CANCELED
    assert classification.update.message_id_to_update == "m1"
    assert classification.short_circuits is True


def test_completed_step_is_already_resolved() -> None:
    history = [_assistant("m1", _invocation("c1", ToolCallState.RESULT, {"step": "pending"}))]

    classification = classify(_incoming("c1", {"step": "completed"}), history)

    assert classification.kind == TurnKind.TOOL_COMPLETED
    assert classification.short_circuits is True


def test_confirmation_of_pending_step_is_tool_update() -> None:
    history = [_assistant("m1", _invocation("c1", ToolCallState.RESULT, {"success": True, "step": "pending"}))]

    classification = classify(_incoming("c1", {"step": "confirmed"}), history)

    assert classification.kind == TurnKind.TOOL_UPDATE_PENDING
    assert classification.update.tool_name == "transferTokens"
    assert classification.update.stored.args == {"amount": 1}


def test_stored_resolved_call_is_never_reprocessed() -> None:
    history = [_assistant("m1", _invocation("c1", ToolCallState.RESULT, {"success": True, "step": "completed"}))]

    assert classify(_incoming("c1", {"step": "confirmed"}), history).kind == TurnKind.TOOL_COMPLETED


def test_correlated_payload_without_step_is_new_turn() -> None:
    history = [_assistant("m1", _invocation("c1", ToolCallState.CALL))]

    assert classify(_incoming("c1", {"anything": 1}), history).kind == TurnKind.NEW_USER_TURN


def test_uncorrelated_call_id_is_new_turn() -> None:
    history = [_assistant("m1", _invocation("c1", ToolCallState.CALL))]

    assert classify(_incoming("other", {"step": "canceled"}), history).kind == TurnKind.NEW_USER_TURN


def test_most_recent_matching_message_wins() -> None:
    history = [
        _assistant("new", _invocation("c1", ToolCallState.RESULT, {"step": "pending"}), offset=10),
        _assistant("old", _invocation("c1", ToolCallState.CALL), offset=0),
    ]

    update = find_tool_update(_incoming("c1", {"step": "canceled"}), history)

    assert update is not None
    assert update.message_id_to_update == "new"


def test_relevant_history_drops_empty_rows_and_sorts() -> None:
    later = ChatMessage(id="b", conversation_id="c", role=MessageRole.USER, content="b", created_at=_BASE + timedelta(1))
    empty = ChatMessage(id="e", conversation_id="c", role=MessageRole.ASSISTANT, content="", created_at=_BASE)
    earlier = ChatMessage(id="a", conversation_id="c", role=MessageRole.USER, content="a", created_at=_BASE)

    assert [m.id for m in relevant_history([later, empty, earlier])] == ["a", "b"]
