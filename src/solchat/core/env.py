"""Process environment snapshot used to gate API-key backed tools.

Tools list the variables they need (``BIRDEYE_API_KEY``, ``JINA_API_KEY``).
The snapshot is taken from ``os.environ`` on first read and can be edited
in place, so tests toggle tools without touching the real environment.
"""

import os
from typing import Dict, Iterable, List, Mapping, Optional


class Env:
    _snapshot: Optional[Dict[str, str]] = None

    @classmethod
    def _state(cls) -> Dict[str, str]:
        if cls._snapshot is None:
            cls._snapshot = dict(os.environ)
        return cls._snapshot

    @classmethod
    def get(cls, key: str) -> Optional[str]:
        return cls._state().get(key)

    @classmethod
    def all(cls) -> Dict[str, str]:
        return dict(cls._state())

    @classmethod
    def set(cls, key: str, value: str) -> None:
        cls._state()[key] = value

    @classmethod
    def remove(cls, key: str) -> None:
        cls._state().pop(key, None)

    @classmethod
    def reset(cls) -> None:
        """Forget edits; the next read copies ``os.environ`` again."""
        cls._snapshot = None

    @classmethod
    def is_present(cls, key: str, env: Optional[Mapping[str, Optional[str]]] = None) -> bool:
        """True when ``key`` holds a non-empty value."""
        source = cls._state() if env is None else env
        return bool(source.get(key))

    @classmethod
    def missing(cls, keys: Iterable[str], env: Optional[Mapping[str, Optional[str]]] = None) -> List[str]:
        return [key for key in keys if not cls.is_present(key, env)]
