"""Model provider resolution from configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from ..core.config import ConfigManager, ProviderConfig

# Environment variables consulted when the config carries no API key.
API_KEY_ENV = {
    "openai": ("SOLCHAT_API_KEY", "OPENAI_API_KEY"),
    "anthropic": ("SOLCHAT_API_KEY", "ANTHROPIC_API_KEY"),
}


class ProviderNotConfiguredError(RuntimeError):
    """Raised when no API key is available for the configured provider."""


@dataclass
class ProviderInfo:
    type: str
    api_key: str
    model: str
    orchestrator_model: str
    base_url: Optional[str] = None
    max_tokens: int = 4096
    temperature: Optional[float] = None


class Provider:
    """Resolves the active provider and its credentials."""

    @staticmethod
    def from_config(config: ProviderConfig) -> ProviderInfo:
        api_key = config.api_key
        if not api_key:
            for env_var in API_KEY_ENV.get(config.type, ()):
                api_key = os.environ.get(env_var)
                if api_key:
                    break
        if not api_key:
            raise ProviderNotConfiguredError(f"No API key found for provider '{config.type}'")
        return ProviderInfo(
            type=config.type,
            api_key=api_key,
            model=config.model,
            orchestrator_model=config.orchestrator_model or config.model,
            base_url=config.base_url,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
        )

    @classmethod
    async def get(cls) -> ProviderInfo:
        config = await ConfigManager.get()
        return cls.from_config(config.provider)
