from __future__ import annotations

from solchat.core.config import Config, LoggingConfig
from solchat.runtime.logging import bootstrap_logging, resolve_settings
from solchat.util.log import LogFormat, LogLevel


def _capture(monkeypatch, config: Config) -> dict[str, object]:  # type: ignore[no-untyped-def]
    async def fake_get(cls):
        return config

    seen: dict[str, object] = {}

    def fake_configure(cls, **kwargs) -> None:
        seen.update(kwargs)

    monkeypatch.setattr("solchat.runtime.logging.ConfigManager.get", classmethod(fake_get))
    monkeypatch.setattr("solchat.runtime.logging.Log.configure", classmethod(fake_configure))
    return seen


def test_web_mode_defaults_to_console_and_access_log(monkeypatch) -> None:  # type: ignore[no-untyped-def]
    seen = _capture(monkeypatch, Config())

    settings = bootstrap_logging(mode="web")

    assert settings.console is True
    assert settings.file is True
    assert settings.access_log is True
    assert seen["console"] is True


def test_cli_mode_stays_quiet(monkeypatch) -> None:  # type: ignore[no-untyped-def]
    _capture(monkeypatch, Config())

    settings = bootstrap_logging(mode="cli")

    assert settings.console is False
    assert settings.access_log is False


def test_logging_config_and_arguments_take_precedence(monkeypatch) -> None:  # type: ignore[no-untyped-def]
    seen = _capture(
        monkeypatch,
        Config(logging=LoggingConfig(level="debug", format="json", console=False, file=False, access_log=False)),
    )

    settings = bootstrap_logging(mode="web", level="error")

    assert settings.level == LogLevel.ERROR
    assert settings.format == LogFormat.JSON
    assert settings.console is False
    assert settings.file is False
    assert settings.access_log is False
    assert seen["level"] == LogLevel.ERROR


def test_resolve_settings_prefers_config_over_mode_defaults() -> None:
    settings = resolve_settings("cli", LoggingConfig(console=True), file=False)

    assert settings.console is True
    assert settings.file is False
    assert settings.access_log is False
    assert settings.level == LogLevel.INFO
    assert settings.format == LogFormat.KV
