"""Application runtime context and lifecycle container."""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional, TypedDict

from ..auth import Authenticator, HeaderAuthenticator, UserSession
from ..core.config import Config, ConfigManager
from ..storage import ConversationStore, SQLiteConversationStore
from ..tool.agent_kit import AgentKit, GatewayAgentKit
from ..tool.registry import ToolRegistry
from ..util.log import Log

log = Log.create({"service": "runtime"})


HealthStatus = Literal["ready", "failed"]


class AppHealth(TypedDict):
    status: HealthStatus
    error: Optional[str]


class AppContext:
    """Application-level service container.

    Created once per process (CLI run or web server) and threaded through
    every request handler. Holds the tool registry, the conversation store,
    the authenticator and the optional agent-kit gateway.
    """

    __slots__ = (
        "config",
        "registry",
        "store",
        "authenticator",
        "agent_kit",
        "started",
        "health",
    )

    def __init__(
        self,
        *,
        config: Optional[Config] = None,
        registry: Optional[ToolRegistry] = None,
        store: Optional[ConversationStore] = None,
        authenticator: Optional[Authenticator] = None,
        agent_kit: Optional[AgentKit] = None,
    ) -> None:
        self.config = config or Config()
        self.registry = registry or ToolRegistry()
        self.store = store or SQLiteConversationStore(self.config.storage.database)
        self.authenticator = authenticator or HeaderAuthenticator(self.config.server.gateway_key)
        if agent_kit is None and self.config.tools.agent_gateway_url:
            agent_kit = GatewayAgentKit(self.config.tools.agent_gateway_url, timeout=self.config.tools.http_timeout)
        self.agent_kit = agent_kit
        self.started = False
        self.health: AppHealth = {"status": "failed", "error": "runtime not started"}

    @classmethod
    async def create(cls, **kwargs: Any) -> "AppContext":
        """Build a context from the resolved configuration."""
        return cls(config=await ConfigManager.get(), **kwargs)

    async def startup(self) -> None:
        if self.started:
            return
        try:
            await self.registry.init()
            initialize = getattr(self.store, "initialize", None)
            if initialize is not None:
                await initialize()
        except Exception as e:
            self.health = {"status": "failed", "error": str(e)}
            log.error("runtime startup failed", {"error": str(e)})
            raise
        self.started = True
        self.health = {"status": "ready", "error": None}
        log.info("runtime started", {"tools": len(self.registry.enabled(self.config.tools.disabled))})

    async def shutdown(self) -> None:
        self.store.close()
        self.started = False
        self.health = {"status": "failed", "error": "runtime stopped"}

    def tool_extra(self, session: UserSession, conversation_id: str) -> Dict[str, Any]:
        """Per-request values every tool receives through its context."""
        return {
            "wallet_address": session.public_key,
            "ask_for_confirmation": True,
            "user_id": session.id,
            "conversation_id": conversation_id,
            "agent_kit": self.agent_kit,
            "http_timeout": self.config.tools.http_timeout,
        }
