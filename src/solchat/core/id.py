"""Sortable prefixed identifiers for server-generated records.

Stream step ids, token-stat ids and request ids look like
``msg_0019f3c2a1b3e4Xk2...``: a kind prefix, fourteen hex digits packing the
millisecond clock with a per-millisecond counter, then random base62.
Ids of one kind generated in one process sort in creation order.
Persisted chat messages keep client-compatible UUIDs instead.
"""

import secrets
import threading
import time
from typing import Literal, Optional

IDKind = Literal["conversation", "message", "usage", "request"]

PREFIXES = {
    "conversation": "cnv",
    "message": "msg",
    "usage": "use",
    "request": "req",
}

_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
_CLOCK_DIGITS = 14
_SUFFIX_LENGTH = 14
_COUNTER_SPAN = 0x1000


class _Clock:
    """Millisecond clock that never hands out the same tick twice."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ms = 0
        self._seq = 0

    def tick(self, now_ms: Optional[int] = None) -> int:
        ms = int(time.time() * 1000) if now_ms is None else now_ms
        with self._lock:
            if ms == self._ms:
                self._seq += 1
            else:
                self._ms, self._seq = ms, 1
            return ms * _COUNTER_SPAN + self._seq


_clock = _Clock()


class Identifier:
    @staticmethod
    def ascending(kind: IDKind, given: Optional[str] = None) -> str:
        """New id of ``kind``; ``given`` is checked against the prefix and returned."""
        prefix = PREFIXES[kind]
        if given is not None:
            if not given.startswith(prefix + "_"):
                raise ValueError(f"ID {given} does not start with {prefix}_")
            return given
        suffix = "".join(secrets.choice(_ALPHABET) for _ in range(_SUFFIX_LENGTH))
        return f"{prefix}_{_clock.tick():0{_CLOCK_DIGITS}x}{suffix}"

    @staticmethod
    def timestamp(value: str) -> int:
        """Millisecond creation time packed into an id."""
        _, sep, body = value.partition("_")
        if not sep or len(body) < _CLOCK_DIGITS:
            raise ValueError(f"Invalid ID format: {value}")
        return int(body[:_CLOCK_DIGITS], 16) // _COUNTER_SPAN
