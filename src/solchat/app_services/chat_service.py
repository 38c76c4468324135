"""Chat application service."""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Set

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from ..auth import UserSession
from ..runtime import AppContext
from ..session.classifier import TurnKind, classify, relevant_history
from ..session.confirmation import handle_tool_cancel, handle_tool_update
from ..session.message import ChatMessage, IncomingMessage, MessageRole, UsageRecord, to_model_messages
from ..session.orchestrator import select_tools
from ..session.processor import ChatProcessor, ProviderStreamError
from ..session.reconcile import ResponseReconciler, record_usage
from ..session.repair import ToolCallRepairer
from ..session.stream import GENERIC_ERROR, DataStreamWriter
from ..session.system import SystemPrompt
from ..session.title import generate_title
from ..tool.tool import AbortContext, ToolContext
from ..tool.wrapper import wrap_tools
from ..util.log import Log, LogTimer
from .errors import NotFoundError, UnauthorizedError

log = Log.create({"service": "chat"})


class ChatRequest(BaseModel):
    """Body of ``POST /api/chat``."""
    conversation_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("conversationId", "id")
    )
    message: Optional[IncomingMessage] = None

    model_config = ConfigDict(extra="ignore")


@dataclass
class ChatReply:
    """Outcome of a chat request: a JSON body or a data stream."""
    body: Any = None
    stream: Optional[DataStreamWriter] = None


class ChatService:
    """Thin orchestration for chat turns."""

    _tasks: Set[asyncio.Task[None]] = set()

    @classmethod
    async def authenticate(cls, app: AppContext, headers: Mapping[str, str]) -> UserSession:
        session = await app.authenticator.authenticate(headers)
        if session is None:
            raise UnauthorizedError()
        return session

    @classmethod
    def _spawn(cls, coro: Any) -> asyncio.Task[None]:
        task = asyncio.create_task(coro)
        cls._tasks.add(task)
        task.add_done_callback(cls._tasks.discard)
        return task

    @classmethod
    def reset_runtime(cls) -> None:
        for task in list(cls._tasks):
            task.cancel()
        cls._tasks.clear()

    @classmethod
    def parse_request(cls, payload: Any) -> ChatRequest:
        if not isinstance(payload, dict):
            raise ValueError("Request body must be a JSON object")
        try:
            request = ChatRequest.model_validate(payload)
        except ValidationError as e:
            raise ValueError(f"Invalid message: {e.errors()[0].get('msg', 'invalid')}") from e
        if request.message is None:
            raise ValueError("No message found")
        if not request.conversation_id:
            raise ValueError("No conversation id found")
        return request

    @classmethod
    async def _ensure_conversation(
        cls,
        app: AppContext,
        session: UserSession,
        conversation_id: str,
        message: IncomingMessage,
        history: List[ChatMessage],
    ) -> None:
        conversation = await app.store.get_conversation(conversation_id)
        if conversation is not None:
            if conversation.user_id != session.id:
                raise NotFoundError("Conversation", conversation_id)
            return
        if history:
            return
        title = await generate_title(message.content)
        await app.store.create_conversation(conversation_id, session.id, title)
        log.info("conversation created", {"conversation_id": conversation_id, "user_id": session.id})

    @classmethod
    async def post_message(cls, session: UserSession, payload: Any, app: AppContext) -> ChatReply:
        """Handle one incoming chat message.

        Confirmation, cancellation and already-resolved tool payloads return a
        JSON body without running the model. Everything else starts a
        background turn that writes to the returned stream.
        """
        if not session.public_key:
            log.error("no public key found", {"user_id": session.id})
            raise ValueError("No public key found")

        request = cls.parse_request(payload)
        message = request.message
        conversation_id = request.conversation_id
        timer = log.time("chat request", {"conversation_id": conversation_id, "user_id": session.id})
        timer.mark("message received", {"role": message.role.value})

        if message.role == MessageRole.ASSISTANT:
            timer.stop()
            return ChatReply(body={"ok": True})

        history = await app.store.list_conversation_messages(
            conversation_id, limit=app.config.chat.max_history_messages
        )
        timer.mark("fetched existing messages", {"count": len(history)})

        if not history and message.role != MessageRole.USER:
            timer.stop()
            raise ValueError("No user message found")

        await cls._ensure_conversation(app, session, conversation_id, message, history)

        classification = classify(message, history)
        update = classification.update
        if classification.kind == TurnKind.TOOL_UPDATE_PENDING:
            result = await handle_tool_update(
                update,
                registry=app.registry,
                store=app.store,
                extra=app.tool_extra(session, conversation_id),
            )
            timer.stop()
            return ChatReply(body={"toolCallId": update.tool_call_id, "result": result})
        if classification.kind == TurnKind.TOOL_CANCELED:
            result = await handle_tool_cancel(update, store=app.store)
            timer.stop()
            return ChatReply(body={"toolCallId": update.tool_call_id, "result": result})
        if classification.kind == TurnKind.TOOL_COMPLETED:
            log.info("tool call already resolved", {"tool_call_id": update.tool_call_id})
            timer.stop()
            stored = update.stored.result if update.stored is not None else update.results
            return ChatReply(body={"toolCallId": update.tool_call_id, "result": stored})

        system = SystemPrompt.build(
            history,
            public_key=session.public_key,
            degen_mode=session.degen_mode,
            base=app.config.chat.system_prompt,
        )
        relevant = relevant_history(history)

        user_message: Optional[ChatMessage] = None
        if message.role == MessageRole.USER:
            user_message = ChatMessage(
                id=str(uuid.uuid4()),
                conversation_id=conversation_id,
                role=MessageRole.USER,
                content=message.content,
                attachments=message.attachments,
            )
            try:
                await app.store.upsert_messages([user_message])
            except Exception as e:
                log.error("failed to save user message", {"conversation_id": conversation_id, "error": str(e)})
                user_message = None
            relevant.append(
                user_message
                or ChatMessage(
                    id="",
                    conversation_id=conversation_id,
                    role=MessageRole.USER,
                    content=message.content,
                    attachments=message.attachments,
                )
            )

        writer = DataStreamWriter()
        cls._spawn(
            cls._run_turn(
                app,
                session,
                conversation_id,
                system=system,
                relevant=relevant,
                user_message=user_message,
                writer=writer,
                timer=timer,
            )
        )
        return ChatReply(stream=writer)

    @classmethod
    async def _run_turn(
        cls,
        app: AppContext,
        session: UserSession,
        conversation_id: str,
        *,
        system: str,
        relevant: List[ChatMessage],
        user_message: Optional[ChatMessage],
        writer: DataStreamWriter,
        timer: LogTimer,
    ) -> None:
        config = app.config
        abort = AbortContext()
        reconciler = ResponseReconciler(app.store, conversation_id, writer)
        processor: Optional[ChatProcessor] = None
        orchestrator_usage = UsageRecord()

        async def on_finish(response: List[Any], usage: UsageRecord) -> None:
            saved = await reconciler.save(response)
            timer.mark("messages saved", {"count": len(saved)})
            stat = await record_usage(
                app.store, session.id, user_message, saved, usage, orchestrator_usage
            )
            if stat is not None:
                timer.mark("token stat saved", {"total_tokens": stat.usage.total_tokens})

        try:
            messages = to_model_messages(relevant)
            selection = await select_tools(
                messages,
                degen_mode=session.degen_mode,
                registry=app.registry,
                disabled=config.tools.disabled,
                model=config.provider.orchestrator_model,
            )
            orchestrator_usage = selection.usage
            timer.mark("tools selected", {"tools": selection.tools})

            ctx = ToolContext(abort=abort, writer=writer, extra=app.tool_extra(session, conversation_id))
            processor = ChatProcessor(
                wrap_tools(app.registry, ctx, selection.tools),
                abort=abort,
                writer=writer,
                repairer=ToolCallRepairer(),
                max_steps=config.chat.max_steps,
                smooth_delay_ms=config.chat.smooth_delay_ms,
            )
            result = await processor.run(system, messages, on_flush=reconciler.save, on_finish=on_finish)
            log.info("turn finished", {"conversation_id": conversation_id, "status": result.status, "steps": result.steps})
        except ProviderStreamError as e:
            log.error("provider stream failed", {"conversation_id": conversation_id, "error": str(e)})
            if processor is not None and processor.response:
                await reconciler.save(processor.response)
            writer.write_error(GENERIC_ERROR)
        except Exception as e:
            log.error("chat turn failed", {"conversation_id": conversation_id, "error": str(e)})
            writer.write_error(GENERIC_ERROR)
        finally:
            timer.stop()
            writer.close()

    @classmethod
    async def delete_conversation(cls, session: UserSession, payload: Any, app: AppContext) -> dict[str, Any]:
        conversation_id = payload.get("id") if isinstance(payload, dict) else None
        if not isinstance(conversation_id, str) or not conversation_id:
            raise ValueError("No conversation id found")
        deleted = await app.store.delete_conversation(conversation_id, session.id)
        log.info("conversation deleted", {"conversation_id": conversation_id, "deleted": deleted})
        return {"deleted": deleted}

    @classmethod
    def list_tools(cls, app: AppContext) -> str:
        return app.registry.metadata_lines(app.config.tools.disabled)
