"""Structured logging for the chat service.

Modules create one service-tagged logger at import time::

    log = Log.create({"service": "session.processor"})
    log.info("processing step", {"step": 0})

Request-scoped tags (request id, conversation id) are bound with
``Log.bind`` and ride along on every line written from that context,
including background turns spawned from it. Lines go to stderr and/or a
rotated file under the platform log directory as ``kv``, ``json`` or
``pretty`` text.
"""

import json
import sys
import time
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TextIO

from ..core.global_paths import GlobalPath


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"

    @classmethod
    def parse(cls, value: Optional[str]) -> "LogLevel":
        if value is None:
            return cls.INFO
        level = _LEVEL_NAMES.get(value.strip().lower())
        if level is None:
            raise ValueError(f"invalid log level: {value}")
        return level


_LEVEL_NAMES = {
    "debug": LogLevel.DEBUG,
    "info": LogLevel.INFO,
    "warn": LogLevel.WARN,
    "warning": LogLevel.WARN,
    "error": LogLevel.ERROR,
}
_PRIORITY = {LogLevel.DEBUG: 0, LogLevel.INFO: 1, LogLevel.WARN: 2, LogLevel.ERROR: 3}


class LogFormat(str, Enum):
    KV = "kv"
    JSON = "json"
    PRETTY = "pretty"

    @classmethod
    def parse(cls, value: Optional[str]) -> "LogFormat":
        if value is None:
            return cls.KV
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"invalid log format: {value}") from None


KEEP_LOG_FILES = 10
REDACTED = "***"
# Tag names whose values never reach a sink.
SECRET_TAGS = frozenset({"api_key", "apiKey", "gateway_key", "authorization", "x-api-key"})


@dataclass
class LogConfig:
    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.KV
    console: bool = False
    file: bool = False
    path: Optional[str] = None
    handle: Optional[TextIO] = None


_config = LogConfig()
_context: ContextVar[Dict[str, Any]] = ContextVar("solchat_log_context", default={})
_last = time.time()


def _describe_error(error: BaseException, depth: int = 0) -> str:
    text = str(error) or type(error).__name__
    if error.__cause__ is not None and depth < 10:
        text += " Caused by: " + _describe_error(error.__cause__, depth + 1)
    return text


def _clean(key: str, value: Any) -> Any:
    if key in SECRET_TAGS:
        return REDACTED
    if isinstance(value, BaseException):
        return _describe_error(value)
    if value is None or isinstance(value, (dict, list, tuple, int, float, bool)):
        return value
    return str(value)


def _kv_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)
    text = str(value)
    if not text or "=" in text or any(ch.isspace() for ch in text):
        return json.dumps(text, ensure_ascii=False)
    return text


def _fields(record: Dict[str, Any]) -> str:
    return " ".join(f"{k}={_kv_value(v)}" for k, v in record.items() if k not in _HEADER)


_HEADER = ("time", "delta_ms", "level", "msg")


def _as_kv(record: Dict[str, Any]) -> str:
    head = f"{record['time']} +{record['delta_ms']}ms level={record['level']} msg={_kv_value(record['msg'])}"
    rest = _fields(record)
    return f"{head} {rest}" if rest else head


def _as_json(record: Dict[str, Any]) -> str:
    return json.dumps(record, ensure_ascii=False, separators=(",", ":"), default=str)


def _as_pretty(record: Dict[str, Any]) -> str:
    rest = _fields(record)
    suffix = f" ({rest})" if rest else ""
    return f"{record['time']} {record['level'].upper():5} {record['msg'] or ''}{suffix} +{record['delta_ms']}ms"


_FORMATTERS: Dict[LogFormat, Callable[[Dict[str, Any]], str]] = {
    LogFormat.KV: _as_kv,
    LogFormat.JSON: _as_json,
    LogFormat.PRETTY: _as_pretty,
}


@dataclass
class LogTimer:
    """Measures one operation; ``mark`` logs milestones, ``stop`` the total."""
    logger: "Logger"
    message: str
    extra: Dict[str, Any]
    start_time: float = field(default_factory=time.perf_counter)

    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self.start_time) * 1000)

    def mark(self, message: str, extra: Optional[Dict[str, Any]] = None) -> None:
        self.logger.info(message, {**self.extra, **(extra or {}), "elapsed_ms": self.elapsed_ms()})

    def stop(self) -> None:
        self.logger.info(self.message, {**self.extra, "status": "completed", "duration": self.elapsed_ms()})

    def __enter__(self) -> "LogTimer":
        return self

    def __exit__(self, *args: Any) -> None:
        self.stop()


class Logger:
    """A set of fixed tags plus the level methods."""

    def __init__(self, tags: Optional[Dict[str, Any]] = None):
        self.tags = tags or {}

    def _record(self, level: LogLevel, message: Any, extra: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        global _last
        now = time.time()
        delta_ms = int((now - _last) * 1000)
        _last = now

        merged = {**self.tags, **_context.get(), **(extra or {})}
        return {
            "time": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "delta_ms": delta_ms,
            "level": level.value.lower(),
            "msg": _clean("msg", message),
            **{k: _clean(k, v) for k, v in merged.items() if v is not None},
        }

    def _log(self, level: LogLevel, message: Any, extra: Optional[Dict[str, Any]]) -> None:
        if _PRIORITY[level] < _PRIORITY[_config.level]:
            return
        if not _config.console and _config.handle is None:
            return
        line = _FORMATTERS[_config.format](self._record(level, message, extra)) + "\n"
        if _config.console:
            sys.stderr.write(line)
            sys.stderr.flush()
        if _config.handle is not None:
            _config.handle.write(line)
            _config.handle.flush()

    def debug(self, message: Any = None, extra: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.DEBUG, message, extra)

    def info(self, message: Any = None, extra: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.INFO, message, extra)

    def warn(self, message: Any = None, extra: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.WARN, message, extra)

    def error(self, message: Any = None, extra: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.ERROR, message, extra)

    def time(self, message: str, extra: Optional[Dict[str, Any]] = None) -> LogTimer:
        extra = extra or {}
        self.info(message, {**extra, "status": "started"})
        return LogTimer(logger=self, message=message, extra=extra)


class Log:
    """Logger factory and process-wide sink configuration."""

    _loggers: Dict[str, Logger] = {}

    @classmethod
    def create(cls, tags: Optional[Dict[str, Any]] = None) -> Logger:
        """Logger for ``tags``; loggers with a ``service`` tag are shared."""
        tags = tags or {}
        service = tags.get("service")
        if not isinstance(service, str) or not service:
            return Logger(tags=tags)
        if service not in cls._loggers:
            cls._loggers[service] = Logger(tags=tags)
        return cls._loggers[service]

    @staticmethod
    def bind(**tags: Any) -> Token:
        """Add tags to every line logged from the current context."""
        return _context.set({**_context.get(), **tags})

    @staticmethod
    def unbind(token: Token) -> None:
        _context.reset(token)

    @classmethod
    def configure(
        cls,
        *,
        level: Optional[LogLevel] = None,
        format: Optional[LogFormat] = None,
        console: Optional[bool] = None,
        file: Optional[bool] = None,
        file_name: Optional[str] = None,
    ) -> None:
        """Set level, format and sinks.

        The file sink writes ``file_name`` when given, otherwise a new
        timestamped file, keeping the newest ``KEEP_LOG_FILES`` of those.
        """
        if level is not None:
            _config.level = level
        if format is not None:
            _config.format = format
        if console is not None:
            _config.console = console
        _config.file = True if file is None else file

        cls.close()
        _config.path = None
        if not _config.file:
            return

        log_dir = Path(GlobalPath.log())
        log_dir.mkdir(parents=True, exist_ok=True)
        if file_name is None:
            cls._rotate(log_dir)
            file_name = f"solchat-{datetime.now().strftime('%Y%m%dT%H%M%S')}.log"
        path = log_dir / file_name
        _config.path = str(path)
        _config.handle = path.open("w", encoding="utf-8")

    @classmethod
    def file(cls) -> str:
        return _config.path or ""

    @staticmethod
    def _rotate(log_dir: Path) -> None:
        files = sorted(log_dir.glob("solchat-*.log"), key=lambda p: p.stat().st_mtime)
        for old in files[: -(KEEP_LOG_FILES - 1)]:
            old.unlink(missing_ok=True)

    @classmethod
    def close(cls) -> None:
        if _config.handle is not None:
            _config.handle.close()
            _config.handle = None
