"""Pydantic models for solchat config files."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProviderConfig(BaseModel):
    """Model provider selection."""
    type: Literal["openai", "anthropic"] = "openai"
    model: str = "gpt-4o"
    orchestrator_model: Optional[str] = Field(None, alias="orchestratorModel")
    api_key: Optional[str] = Field(None, alias="apiKey")
    base_url: Optional[str] = Field(None, alias="baseURL")
    max_tokens: int = Field(4096, alias="maxTokens")
    temperature: Optional[float] = None

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class ChatConfig(BaseModel):
    """Streaming loop and history limits."""
    max_steps: int = Field(15, alias="maxSteps", ge=1)
    max_history_messages: int = Field(50, alias="maxHistoryMessages", ge=1)
    smooth_delay_ms: int = Field(10, alias="smoothDelayMs", ge=0)
    system_prompt: Optional[str] = Field(None, alias="systemPrompt")

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class ToolsConfig(BaseModel):
    """Tool availability."""
    disabled: List[str] = Field(default_factory=list)
    agent_gateway_url: Optional[str] = Field(None, alias="agentGatewayURL")
    http_timeout: float = Field(20.0, alias="httpTimeout", gt=0)

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    @field_validator("disabled", mode="before")
    @classmethod
    def _strings(cls, value: object) -> object:
        if isinstance(value, list):
            return [str(item) for item in value if str(item).strip()]
        return value


class StorageConfig(BaseModel):
    """Durable storage location."""
    database: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: Optional[str] = None
    format: Optional[Literal["kv", "json", "pretty"]] = None
    console: Optional[bool] = None
    file: Optional[bool] = None
    access_log: Optional[bool] = Field(None, alias="accessLog")

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class ServerConfig(BaseModel):
    """HTTP server binding."""
    host: str = "127.0.0.1"
    port: int = 4096
    gateway_key: Optional[str] = Field(None, alias="gatewayKey")

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class Config(BaseModel):
    """Root configuration."""
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    model_config = ConfigDict(extra="ignore")
