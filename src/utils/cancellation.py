"""
Cancellation token for cooperative stream cancellation.

One token belongs to exactly one stream session. The server's transport
encoder and the client's document aggregator both hold a token and pass
it explicitly into the loop they control, so overlapping sessions can
never observe each other's cancellation.
"""

from __future__ import annotations

import asyncio
import contextlib

from collections.abc import Awaitable
from typing import TypeVar

T = TypeVar("T")


class CancellationToken:
    """Cooperative cancellation token for async stream sessions.

    Provides:
    - Cancellation signaling via asyncio.Event
    - ``race`` to abandon a pending await as soon as cancellation fires

    Usage:
        token = CancellationToken()

        # In producer/controller:
        await token.cancel(reason="client disconnected")

        # In consumer/worker:
        delta = await token.race(anext(deltas, None))
        if token.is_cancelled:
            return  # Early exit, no error raised
    """

    __slots__ = ("_cancel_reason", "_cancelled")

    def __init__(self) -> None:
        self._cancelled = asyncio.Event()
        self._cancel_reason: str | None = None

    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation has been requested."""
        return self._cancelled.is_set()

    @property
    def cancel_reason(self) -> str | None:
        """Get the reason for cancellation, if any."""
        return self._cancel_reason

    async def cancel(self, reason: str | None = None) -> None:
        """Request cancellation.

        Idempotent: the first reason wins.

        Args:
            reason: Optional reason for cancellation (for logging/debugging)
        """
        if self._cancelled.is_set():
            return

        self._cancel_reason = reason
        self._cancelled.set()

    async def race(self, awaitable: Awaitable[T]) -> T | None:
        """Await ``awaitable`` unless cancellation is requested first.

        When the token fires first, the pending work is cancelled and awaited
        so its resources are released, and None is returned. Callers check
        ``is_cancelled`` afterwards rather than handling an exception.

        Args:
            awaitable: Coroutine or future to run

        Returns:
            The awaitable's result, or None if cancelled
        """
        if self.is_cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            return None

        work: asyncio.Future[T] = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._cancelled.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await waiter
            if not work.done():
                work.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await work

        if work.cancelled():
            return None
        return work.result()


__all__ = ["CancellationToken"]
