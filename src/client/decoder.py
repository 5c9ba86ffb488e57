"""
Incremental UTF-8 decoder for the answer stream.

The server flushes one character per chunk, but proxies and the network are
free to split or merge chunks anywhere, including inside a multi-byte
sequence. Incomplete sequences are held back until the rest arrives;
malformed bytes come out as U+FFFD rather than being dropped.
"""

from __future__ import annotations

import codecs

from enum import Enum


class DecoderState(str, Enum):
    """Lifecycle of one decoded stream."""

    IDLE = "idle"  # Nothing received yet
    RECEIVING = "receiving"
    COMPLETED = "completed"  # Body ended cleanly
    FAILED = "failed"  # HTTP status >= 400 or transport error


class StreamDecoder:
    """Turns raw body bytes into text fragments.

    IDLE -> RECEIVING on the first ``feed``; RECEIVING (or IDLE) -> COMPLETED
    on ``finish`` and -> FAILED on ``fail``. Terminal states accept nothing.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._state = DecoderState.IDLE
        self.error: str | None = None

    @property
    def state(self) -> DecoderState:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state in (DecoderState.COMPLETED, DecoderState.FAILED)

    def _ensure_open(self) -> None:
        if self.is_terminal:
            raise RuntimeError(f"Decoder already {self._state.value}")

    def feed(self, data: bytes) -> str:
        """Decode ``data``; bytes of an unfinished sequence are buffered.

        Returns:
            Text decoded so far (may be empty)
        """
        self._ensure_open()
        self._state = DecoderState.RECEIVING
        return self._decoder.decode(data)

    def finish(self) -> str:
        """Mark the body complete and flush any incomplete trailing bytes."""
        self._ensure_open()
        tail = self._decoder.decode(b"", final=True)
        self._state = DecoderState.COMPLETED
        return tail

    def fail(self, reason: str) -> str:
        """Mark the stream failed, flushing buffered bytes as U+FFFD."""
        self._ensure_open()
        tail = self._decoder.decode(b"", final=True)
        self._state = DecoderState.FAILED
        self.error = reason
        return tail


__all__ = ["DecoderState", "StreamDecoder"]
