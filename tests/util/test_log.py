from __future__ import annotations

import json
from pathlib import Path

from solchat.core.global_paths import GlobalPath
from solchat.util.log import Log, LogFormat, LogLevel


def test_log_writes_console_and_file(monkeypatch, tmp_path: Path, capsys) -> None:  # type: ignore[no-untyped-def]
    monkeypatch.setattr(GlobalPath, "log", classmethod(lambda cls: str(tmp_path)))
    Log.configure(level=LogLevel.INFO, format=LogFormat.KV, console=True, file=True, file_name="dev.log")

    log = Log.create({"service": "test.log"})
    log.info("hello", {"value": 7})
    Log.close()

    stderr = capsys.readouterr().err
    text = (tmp_path / "dev.log").read_text(encoding="utf-8")

    assert "msg=hello" in stderr
    assert "service=test.log" in stderr
    assert "value=7" in text


def test_log_supports_json_format(monkeypatch, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
    monkeypatch.setattr(GlobalPath, "log", classmethod(lambda cls: str(tmp_path)))
    Log.configure(level=LogLevel.INFO, format=LogFormat.JSON, console=False, file=True, file_name="dev.log")

    log = Log.create({"service": "test.json"})
    log.info("hello world", {"meta": {"k": "v"}})
    Log.close()

    line = (tmp_path / "dev.log").read_text(encoding="utf-8").strip()
    payload = json.loads(line)

    assert payload["level"] == "info"
    assert payload["msg"] == "hello world"
    assert payload["service"] == "test.json"
    assert payload["meta"] == {"k": "v"}


def test_timer_marks_milestones(monkeypatch, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
    monkeypatch.setattr(GlobalPath, "log", classmethod(lambda cls: str(tmp_path)))
    Log.configure(level=LogLevel.INFO, format=LogFormat.JSON, console=False, file=True, file_name="dev.log")

    timer = Log.create({"service": "test.timer"}).time("chat request", {"conversation_id": "c1"})
    timer.mark("fetched existing messages", {"count": 2})
    timer.stop()
    Log.close()

    lines = [json.loads(line) for line in (tmp_path / "dev.log").read_text(encoding="utf-8").splitlines()]
    messages = [line["msg"] for line in lines]

    assert any("fetched existing messages" in msg for msg in messages)
    assert all(line["conversation_id"] == "c1" for line in lines)


def test_bound_tags_and_secrets(monkeypatch, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
    monkeypatch.setattr(GlobalPath, "log", classmethod(lambda cls: str(tmp_path)))
    Log.configure(level=LogLevel.WARN, format=LogFormat.JSON, console=False, file=True, file_name="dev.log")

    log = Log.create({"service": "test.bind"})
    token = Log.bind(request_id="rid-1")
    try:
        log.info("below threshold")
        log.warn("gateway rejected", {"gateway_key": "s3cret"})
    finally:
        Log.unbind(token)
    log.error("after unbind")
    Log.close()

    lines = [json.loads(line) for line in (tmp_path / "dev.log").read_text(encoding="utf-8").splitlines()]

    assert [line["msg"] for line in lines] == ["gateway rejected", "after unbind"]
    assert lines[0]["request_id"] == "rid-1"
    assert lines[0]["gateway_key"] == "***"
    assert "request_id" not in lines[1]
