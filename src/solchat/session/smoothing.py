"""Word-level smoothing of streamed text."""

import re
from typing import List, Optional

_WORD = re.compile(r"\S+\s+")


class WordSmoother:
    """Buffers text deltas and releases them a word at a time.

    A released chunk is everything up to and including the whitespace after
    the next word; the unterminated tail waits for ``flush``.
    """

    def __init__(self, delay_ms: int = 10) -> None:
        self.delay = max(delay_ms, 0) / 1000.0
        self._buffer = ""

    def push(self, delta: str) -> List[str]:
        self._buffer += delta
        chunks: List[str] = []
        while True:
            match = _WORD.search(self._buffer)
            if match is None:
                break
            end = match.end()
            chunks.append(self._buffer[:end])
            self._buffer = self._buffer[end:]
        return chunks

    def flush(self) -> Optional[str]:
        if not self._buffer:
            return None
        tail, self._buffer = self._buffer, ""
        return tail

    @property
    def pending(self) -> str:
        return self._buffer
