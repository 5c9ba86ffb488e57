"""
Transport encoder: writes a character sequence as an unbuffered UTF-8 body.

Each unit becomes its own body chunk so the client sees text the moment it
is generated. The first unit is pulled before the response is built: a
fault at that point is still reportable as a 500 problem document. Once the
first byte has gone out there is no error slot left, so later faults just
end the body.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, AsyncIterator, Awaitable, Callable

from fastapi.responses import StreamingResponse

from api.middleware.exception_handlers import StreamSetupError
from core.constants import STREAM_HEADERS, STREAM_MEDIA_TYPE
from utils.cancellation import CancellationToken
from utils.logger import logger

CloseCallback = Callable[[], Awaitable[None]]


async def _encode(
    first: str | None,
    units: AsyncGenerator[str, None],
    token: CancellationToken,
    on_close: CloseCallback | None,
) -> AsyncIterator[bytes]:
    finished = False
    sent = 0
    try:
        if first is not None:
            yield first.encode("utf-8")
            sent += 1
        async for unit in units:
            if token.is_cancelled:
                break
            yield unit.encode("utf-8")
            sent += 1
        finished = True
    except Exception as e:
        # Headers are already on the wire; the only thing left to do is stop
        logger.error(f"Stream aborted after {sent} units: {e}", exc_info=True)
        finished = True
    finally:
        if not finished and not token.is_cancelled:
            # Body iterator closed or cancelled from outside: the client went away
            await token.cancel(reason="client disconnected")
        if token.is_cancelled:
            logger.info(f"Stream cancelled after {sent} units ({token.cancel_reason})")
        await units.aclose()
        if on_close is not None:
            await on_close()


async def open_stream(
    units: AsyncGenerator[str, None],
    token: CancellationToken,
    on_close: CloseCallback | None = None,
) -> StreamingResponse:
    """Start streaming ``units`` as a text/plain response.

    Args:
        units: Character sequence produced by the orchestrator
        token: Cancellation token of the session behind ``units``
        on_close: Awaited once the body has finished, failed, or been abandoned

    Returns:
        StreamingResponse with the no-buffering headers set

    Raises:
        StreamSetupError: If producing the first unit failed
    """
    try:
        first = await anext(units, None)
    except Exception as e:
        logger.error(f"Failed to start response stream: {e}", exc_info=True)
        if on_close is not None:
            await on_close()
        raise StreamSetupError(cause=e) from e

    return StreamingResponse(
        _encode(first, units, token, on_close),
        media_type=STREAM_MEDIA_TYPE,
        headers=dict(STREAM_HEADERS),
    )


__all__ = ["open_stream"]
