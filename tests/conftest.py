from collections.abc import Iterator

import pytest

from solchat.app_services import ChatService
from solchat.core.config import ConfigManager
from solchat.core.env import Env


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def _isolated_home(monkeypatch: pytest.MonkeyPatch, tmp_path) -> Iterator[None]:  # type: ignore[no-untyped-def]
    monkeypatch.setenv("SOLCHAT_HOME", str(tmp_path / "home"))
    ConfigManager.reset()
    Env.reset()
    yield
    ConfigManager.reset()
    Env.reset()
    ChatService.reset_runtime()
