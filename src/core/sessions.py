"""
Stream session records and the per-connection session registry.

A StreamSession lives exactly as long as one query-to-completion exchange.
The registry guarantees at most one active session per connection key:
registering a new session cancels the previous one first.
"""

from __future__ import annotations

import asyncio
import time
import uuid

from dataclasses import dataclass, field
from enum import Enum

from core.constants import SESSION_ID_LENGTH
from utils.cancellation import CancellationToken
from utils.logger import logger


class SessionState(str, Enum):
    """Terminal (or current) state of a stream session."""

    ACTIVE = "active"
    COMPLETED = "completed"  # Backend finished normally
    DEGRADED = "degraded"  # Failed before the first unit; apology streamed instead
    TRUNCATED = "truncated"  # Backend failed after units were sent
    CANCELLED = "cancelled"  # Client went away or session was superseded


def _new_session_id() -> str:
    return uuid.uuid4().hex[:SESSION_ID_LENGTH]


@dataclass
class StreamSession:
    """Mutable bookkeeping for one streaming exchange."""

    query: str
    token: CancellationToken = field(default_factory=CancellationToken)
    session_id: str = field(default_factory=_new_session_id)
    emitted: int = 0
    state: SessionState = SessionState.ACTIVE
    tool_calls: list[str] = field(default_factory=list)
    started_at: float = field(default_factory=time.monotonic)

    @property
    def elapsed_ms(self) -> float:
        return (time.monotonic() - self.started_at) * 1000

    @property
    def is_active(self) -> bool:
        return self.state is SessionState.ACTIVE

    def finish(self, state: SessionState) -> None:
        """Record the terminal state; the first terminal state wins."""
        if self.state is SessionState.ACTIVE:
            self.state = state


class SessionRegistry:
    """Tracks the active stream session for each connection key."""

    def __init__(self) -> None:
        self._sessions: dict[str, StreamSession] = {}
        self._lock = asyncio.Lock()

    async def begin(self, connection_key: str, query: str) -> StreamSession:
        """Create a session for ``connection_key``, cancelling any prior one.

        The prior session's token is cancelled before this returns, so it
        emits no further units once the new session exists.
        """
        session = StreamSession(query=query)
        async with self._lock:
            previous = self._sessions.get(connection_key)
            self._sessions[connection_key] = session
        if previous is not None and previous.is_active:
            logger.info(
                f"Superseding stream session {previous.session_id} with {session.session_id}",
                session_id=previous.session_id,
            )
            await previous.token.cancel(reason="superseded")
        return session

    async def end(self, connection_key: str, session: StreamSession) -> None:
        """Forget ``session`` if it is still the registered one for the key."""
        async with self._lock:
            if self._sessions.get(connection_key) is session:
                del self._sessions[connection_key]

    async def cancel_all(self, reason: str = "shutdown") -> None:
        """Cancel every active session (used on application shutdown)."""
        async with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            await session.token.cancel(reason=reason)

    def __len__(self) -> int:
        return len(self._sessions)


__all__ = ["SessionRegistry", "SessionState", "StreamSession"]
