"""Where solchat keeps its files.

Defaults follow platformdirs. Setting ``SOLCHAT_HOME`` moves everything
under one root (``<root>/data``, ``<root>/config``), which is how tests
and containers isolate state.
"""

import os
from pathlib import Path
from typing import Callable, Optional

from platformdirs import user_config_dir, user_data_dir

APP_NAME = "solchat"
HOME_ENV = "SOLCHAT_HOME"
DATABASE_FILE = "solchat.db"


def _resolve(subdir: str, default: Callable[[str], str]) -> str:
    root = GlobalPath.home()
    return str(Path(root) / subdir) if root else default(APP_NAME)


class GlobalPath:
    @classmethod
    def home(cls) -> Optional[str]:
        return os.environ.get(HOME_ENV, "").strip() or None

    @classmethod
    def data(cls) -> str:
        return _resolve("data", user_data_dir)

    @classmethod
    def config(cls) -> str:
        return _resolve("config", user_config_dir)

    @classmethod
    def log(cls) -> str:
        return str(Path(cls.data()) / "log")

    @classmethod
    def database(cls) -> str:
        """Default SQLite file; the data directory is created on demand."""
        data = Path(cls.data())
        data.mkdir(parents=True, exist_ok=True)
        return str(data / DATABASE_FILE)
