"""
Streaming HTTP client for ``GET /stream``.

Reads the response body as it arrives and yields decoded text fragments.
Non-success statuses are raised as StreamHTTPError carrying the server's
problem document; connection-level failures as StreamTransportError.
"""

from __future__ import annotations

import json

from collections.abc import AsyncIterator
from typing import Any

import httpx

from client.config import ClientSettings, get_client_settings
from client.decoder import StreamDecoder
from utils.cancellation import CancellationToken
from utils.logger import logger


class StreamClientError(Exception):
    """Base class for failures surfaced to the document aggregator."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class StreamHTTPError(StreamClientError):
    """The server answered with a status >= 400."""

    def __init__(self, status_code: int, problem: dict[str, Any] | None = None):
        self.status_code = status_code
        self.problem = problem or {}
        detail = self.problem.get("detail") or self.problem.get("title") or "Request failed"
        super().__init__(f"{detail} (HTTP {status_code})")


class StreamTransportError(StreamClientError):
    """The connection failed or broke while reading the body."""


def _parse_problem(body: bytes) -> dict[str, Any] | None:
    try:
        parsed = json.loads(body)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


class StreamingClient:
    """Client for the streaming answer endpoint.

    Args:
        settings: Client settings (loaded from the environment when omitted)
        http_client: Optional httpx client; one is created and owned otherwise
    """

    def __init__(self, settings: ClientSettings | None = None, http_client: httpx.AsyncClient | None = None):
        self._settings = settings or get_client_settings()
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=self._settings.connect_timeout,
                read=self._settings.read_timeout,
                write=30.0,
                pool=30.0,
            )
        )

    @property
    def stream_url(self) -> str:
        return f"{self._settings.base_url_str}/stream"

    async def stream(self, query: str, token: CancellationToken | None = None) -> AsyncIterator[str]:
        """Stream the answer to ``query`` as decoded text fragments.

        Args:
            query: Query text, sent percent-encoded
            token: Stops reading between chunks once cancelled

        Raises:
            StreamHTTPError: Status >= 400 (problem document attached when present)
            StreamTransportError: Connection failure or broken body
        """
        decoder = StreamDecoder()
        try:
            async with self._client.stream("GET", self.stream_url, params={"query": query}) as response:
                if response.status_code >= 400:
                    body = await response.aread()
                    decoder.fail(f"HTTP {response.status_code}")
                    logger.warning(f"Stream request rejected with HTTP {response.status_code}")
                    raise StreamHTTPError(response.status_code, _parse_problem(body))

                async for chunk in response.aiter_bytes():
                    if token is not None and token.is_cancelled:
                        return
                    text = decoder.feed(chunk)
                    if text:
                        yield text

                if token is not None and token.is_cancelled:
                    return
                tail = decoder.finish()
                if tail:
                    yield tail
        except httpx.HTTPError as e:
            tail = decoder.fail(str(e)) if not decoder.is_terminal else ""
            if tail:
                yield tail
            logger.warning(f"Stream transport error: {type(e).__name__}: {e}")
            raise StreamTransportError(str(e) or type(e).__name__) from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> StreamingClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


__all__ = ["StreamClientError", "StreamHTTPError", "StreamTransportError", "StreamingClient"]
