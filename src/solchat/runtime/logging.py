"""Process logging setup for the CLI entry points."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional

from ..core.config import ConfigManager, LoggingConfig
from ..util.log import Log, LogFormat, LogLevel

LogMode = Literal["cli", "web"]

# Sink defaults when neither arguments nor config decide.
MODE_DEFAULTS: Dict[str, Dict[str, bool]] = {
    "web": {"console": True, "file": True, "access_log": True},
    "cli": {"console": False, "file": True, "access_log": False},
}


@dataclass(frozen=True)
class LogSettings:
    level: LogLevel
    format: LogFormat
    console: bool
    file: bool
    access_log: bool


def _first(*values: Any) -> Any:
    return next((v for v in values if v is not None), None)


def resolve_settings(mode: LogMode, cfg: LoggingConfig, **overrides: Any) -> LogSettings:
    """Arguments win over config, config over the mode defaults."""
    defaults = MODE_DEFAULTS[mode]
    sinks = {
        name: _first(overrides.get(name), getattr(cfg, name), default)
        for name, default in defaults.items()
    }
    return LogSettings(
        level=LogLevel.parse(_first(overrides.get("level"), cfg.level)),
        format=LogFormat.parse(_first(overrides.get("format"), cfg.format)),
        **sinks,
    )


async def _logging_config() -> LoggingConfig:
    return (await ConfigManager.get()).logging


def bootstrap_logging(
    *,
    mode: LogMode,
    level: Optional[str] = None,
    format: Optional[str] = None,
    access_log: Optional[bool] = None,
    console: Optional[bool] = None,
    file: Optional[bool] = None,
) -> LogSettings:
    """Resolve logging settings and configure the process sinks."""
    settings = resolve_settings(
        mode,
        asyncio.run(_logging_config()),
        level=level,
        format=format,
        access_log=access_log,
        console=console,
        file=file,
    )
    Log.configure(
        level=settings.level,
        format=settings.format,
        console=settings.console,
        file=settings.file,
    )
    return settings
