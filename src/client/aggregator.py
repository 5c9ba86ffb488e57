"""
Document aggregator: folds streamed answers into one growing document.

The document is append-only. Each session adds a turn marker, then the
answer text as it arrives, then either a completion marker or an inline
error note. A session superseded by a newer one stops writing immediately
and adds nothing further.

All state lives on the event loop that owns the aggregator. Calls made
from other threads (e.g. a terminal input thread) are handed over to that
loop before any state is read or changed.
"""

from __future__ import annotations

import asyncio

from collections.abc import AsyncIterator, Callable
from contextlib import aclosing
from typing import Protocol

from client.transport import StreamClientError
from utils.cancellation import CancellationToken
from utils.logger import logger

TURN_MARKER = "\n\n**You:** {query}\n\n"
COMPLETION_MARKER = "\n\n---\n"
ERROR_NOTE = "\n\n**Error:** {message}\n"

ChangeListener = Callable[[str, bool], None]


class AnswerSource(Protocol):
    """Anything that streams an answer as text fragments."""

    def stream(self, query: str, token: CancellationToken | None = None) -> AsyncIterator[str]: ...


class DocumentAggregator:
    """Reactive ``{document, busy}`` state fed by an answer stream.

    Args:
        source: Streaming client used for every session
        loop: Owning event loop; defaults to the loop of the first call made from one
    """

    def __init__(self, source: AnswerSource, loop: asyncio.AbstractEventLoop | None = None):
        self._source = source
        self._loop = loop
        self._document = ""
        self._busy = False
        self._listeners: list[ChangeListener] = []
        self._task: asyncio.Task[None] | None = None
        self._token: CancellationToken | None = None
        self._generation = 0
        self._starting: set[asyncio.Task[None]] = set()
        # A submitted session whose start has not finished yet
        self._pending = False

    @property
    def document(self) -> str:
        return self._document

    @property
    def busy(self) -> bool:
        return self._busy

    def on_change(self, listener: ChangeListener) -> ChangeListener:
        """Register ``listener(document, busy)``, called after every change.

        Returns:
            The listener (for use as decorator)
        """
        self._listeners.append(listener)
        return listener

    def remove_listener(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ------------------------------------------------------------------
    # Loop ownership
    # ------------------------------------------------------------------

    def _owner_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            try:
                self._loop = asyncio.get_running_loop()
            except RuntimeError:
                raise RuntimeError("DocumentAggregator is not bound to an event loop yet") from None
        return self._loop

    def _on_owner_loop(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._owner_loop()
        except RuntimeError:
            return False

    def _dispatch(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` on the owning loop, now if already there."""
        loop = self._owner_loop()
        if self._on_owner_loop():
            callback()
        else:
            loop.call_soon_threadsafe(callback)

    # ------------------------------------------------------------------
    # Mutations (owner loop only)
    # ------------------------------------------------------------------

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._document, self._busy)
            except Exception as e:
                logger.warning(f"Document listener error: {e}")

    def _append(self, text: str) -> None:
        self._document += text
        self._notify()

    def _set_busy(self, busy: bool) -> None:
        if self._busy != busy:
            self._busy = busy
            self._notify()

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def submit(self, query: str) -> bool:
        """Start a session for ``query`` unless it is blank or one is running.

        Safe to call from any thread. The busy check and the claim happen
        together on the owning loop, so two rapid submissions start one
        session. From another thread this blocks until the loop has decided.

        Returns:
            True if a session is being started
        """
        query = query.strip()
        if not query:
            return False
        if self._on_owner_loop():
            return self._claim(query)
        return asyncio.run_coroutine_threadsafe(self._claim_async(query), self._owner_loop()).result()

    def _claim(self, query: str) -> bool:
        if self._busy or self._pending:
            return False
        self._pending = True
        task = asyncio.ensure_future(self.start_session(query))
        self._starting.add(task)
        task.add_done_callback(self._start_done)
        return True

    async def _claim_async(self, query: str) -> bool:
        return self._claim(query)

    def _start_done(self, task: asyncio.Task[None]) -> None:
        self._starting.discard(task)
        self._pending = False

    async def start_session(self, query: str) -> None:
        """Cancel any in-flight session, then start streaming ``query``.

        The previous session is fully torn down before the turn marker for
        the new one is appended, so its text can never follow the marker.
        """
        if not self._on_owner_loop():
            raise RuntimeError("start_session must run on the aggregator's event loop")

        self._generation += 1
        generation = self._generation
        await self._teardown(reason="superseded")
        if generation != self._generation:
            # Another start_session won while we were waiting
            return

        self._append(TURN_MARKER.format(query=query))
        self._set_busy(True)
        token = CancellationToken()
        self._token = token
        self._task = asyncio.create_task(self._read(query, token, generation))

    async def cancel(self) -> None:
        """Cancel the in-flight session (if any); the document is left as is."""
        await self._teardown(reason="cancelled by user")
        self._set_busy(False)

    def cancel_threadsafe(self) -> None:
        """Request ``cancel`` from any thread."""
        self._dispatch(lambda: self._spawn_cancel())

    def _spawn_cancel(self) -> None:
        task = asyncio.ensure_future(self.cancel())
        self._starting.add(task)
        task.add_done_callback(self._starting.discard)

    async def wait(self) -> None:
        """Wait until pending starts and the current session have finished."""
        while self._starting:
            await asyncio.wait(set(self._starting))
        if self._task is not None:
            await asyncio.wait({self._task})

    async def _teardown(self, reason: str) -> None:
        task, token = self._task, self._token
        self._task = None
        self._token = None
        if token is not None:
            await token.cancel(reason=reason)
        if task is not None and not task.done():
            task.cancel()
            await asyncio.wait({task})

    async def _read(self, query: str, token: CancellationToken, generation: int) -> None:
        try:
            async with aclosing(self._source.stream(query, token)) as fragments:
                async for fragment in fragments:
                    if token.is_cancelled:
                        return
                    self._append(fragment)
        except StreamClientError as e:
            if not token.is_cancelled:
                logger.warning(f"Stream session failed: {e.message}")
                self._append(ERROR_NOTE.format(message=e.message))
        except Exception as e:
            logger.error(f"Unexpected stream session error: {e}", exc_info=True)
            if not token.is_cancelled:
                self._append(ERROR_NOTE.format(message=str(e) or type(e).__name__))
        else:
            if not token.is_cancelled:
                self._append(COMPLETION_MARKER)
        finally:
            if generation == self._generation:
                self._set_busy(False)


__all__ = [
    "COMPLETION_MARKER",
    "ERROR_NOTE",
    "TURN_MARKER",
    "AnswerSource",
    "ChangeListener",
    "DocumentAggregator",
]
