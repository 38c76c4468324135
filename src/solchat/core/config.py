"""Configuration management.

The merged ``Config`` is built from layers, lowest precedence first:

1. Global config (``<config dir>/solchat.json`` then ``solchat.jsonc``)
2. File named by ``SOLCHAT_CONFIG``
3. Inline JSON in ``SOLCHAT_CONFIG_CONTENT``
4. Individual environment variable overrides
"""

import os
from contextvars import ContextVar, Token
from typing import List, Optional

from .config_loader import (
    DISABLED_TOOLS_ENV,
    Layer,
    env_layer,
    fold_layers,
    parse_disabled_tools,
    read_file_layer,
    read_inline_layer,
)
from .config_schema import (
    ChatConfig,
    Config,
    LoggingConfig,
    ProviderConfig,
    ServerConfig,
    StorageConfig,
    ToolsConfig,
)
from .global_paths import GlobalPath
from ..util.log import Log

log = Log.create({"service": "config"})

__all__ = [
    "ChatConfig",
    "Config",
    "ConfigError",
    "ConfigManager",
    "DISABLED_TOOLS_ENV",
    "LoggingConfig",
    "ProviderConfig",
    "ServerConfig",
    "StorageConfig",
    "ToolsConfig",
    "parse_disabled_tools",
]


class ConfigError(Exception):
    """Configuration error."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"Config error in {path}: {message}")


_config_var: ContextVar['ConfigManager'] = ContextVar('_config_var')


class ConfigManager:
    """Holds the merged configuration for the current context.

    Class methods delegate to the instance installed with ``provide`` (or
    a lazily created default).
    """

    def __init__(self) -> None:
        self._cache: Optional[Config] = None

    @classmethod
    def current(cls) -> 'ConfigManager':
        try:
            return _config_var.get()
        except LookupError:
            instance = cls()
            _config_var.set(instance)
            return instance

    @classmethod
    def provide(cls, instance: 'ConfigManager') -> Token['ConfigManager']:
        return _config_var.set(instance)

    @classmethod
    def restore(cls, token: Token['ConfigManager']) -> None:
        _config_var.reset(token)

    @classmethod
    def reset(cls) -> None:
        """Drop the cached configuration; the next ``get`` reloads it."""
        cls.current()._cache = None

    @classmethod
    async def get(cls) -> Config:
        inst = cls.current()
        if inst._cache is None:
            inst._cache = inst._load()
        return inst._cache

    @classmethod
    def set(cls, config: Config) -> None:
        """Install an explicit configuration (tests, embedding)."""
        cls.current()._cache = config

    @staticmethod
    def layers() -> List[Layer]:
        config_dir = GlobalPath.config()
        layers = [read_file_layer(os.path.join(config_dir, name)) for name in ("solchat.json", "solchat.jsonc")]
        explicit = os.environ.get("SOLCHAT_CONFIG")
        if explicit:
            layers.append(read_file_layer(explicit))
        layers.append(read_inline_layer(os.environ.get("SOLCHAT_CONFIG_CONTENT")))
        layers.append(env_layer())
        return layers

    def _load(self) -> Config:
        merged = fold_layers(self.layers())
        try:
            return Config.model_validate(merged)
        except ValueError as e:
            raise ConfigError("merged config", str(e)) from e
