"""
HTTP request/response logging for debugging model backend and weather API calls.

Captures request payloads and response status using httpx event hooks.
Credentials in headers and query strings are redacted before logging.
"""

from __future__ import annotations

import json

from typing import Any

import httpx

from utils.logger import logger

#: Header names whose values are never logged in full.
SENSITIVE_HEADERS = frozenset({"authorization", "api-key", "x-api-key"})

#: Query parameters whose values are never logged in full.
SENSITIVE_QUERY_PARAMS = frozenset({"appid", "key", "api_key", "api-key"})


def _mask(value: str) -> str:
    # Show last 4 chars only
    return f"***{value[-4:]}" if len(value) > 4 else "***"


class HTTPLogger:
    """Logs HTTP requests and responses for debugging."""

    def __init__(self, enabled: bool = True):
        """Initialize HTTP logger.

        Args:
            enabled: Whether to enable HTTP logging (default: True)
        """
        self.enabled = enabled

    async def log_request(self, request: httpx.Request) -> None:
        """Log outgoing HTTP request.

        Args:
            request: The httpx request object
        """
        if not self.enabled:
            return

        body: Any = {}
        try:
            body_str = request.content.decode("utf-8") if request.content else ""
            body = json.loads(body_str) if body_str else {}
        except (httpx.RequestNotRead, UnicodeDecodeError, json.JSONDecodeError):
            body = {"_note": "body not captured"}

        url = self.sanitize_url(request.url)
        logger.info(
            f"HTTP Request: {request.method} {url}",
            http_request=True,
            http_method=request.method,
            url=url,
            headers=self.sanitize_headers(dict(request.headers)),
        )
        if body:
            logger.debug(f"Request Payload:\n{json.dumps(body, indent=2)}")

    async def log_response(self, response: httpx.Response) -> None:
        """Log HTTP response status.

        The body is not read here: model responses are streamed and reading
        would consume the stream.

        Args:
            response: The httpx response object
        """
        if not self.enabled:
            return

        url = self.sanitize_url(response.request.url)
        logger.info(
            f"HTTP Response: {response.status_code} {response.request.method} {url}",
            http_response=True,
            status_code=response.status_code,
            url=url,
        )

    @staticmethod
    def sanitize_headers(headers: dict[str, str]) -> dict[str, str]:
        """Remove sensitive data from headers.

        Args:
            headers: Original headers dictionary

        Returns:
            Sanitized headers with sensitive values redacted
        """
        return {key: _mask(value) if key.lower() in SENSITIVE_HEADERS else value for key, value in headers.items()}

    @staticmethod
    def sanitize_url(url: httpx.URL) -> str:
        """Render a URL with credential query parameters masked."""
        if not url.query:
            return str(url)
        params = [
            (key, _mask(value) if key.lower() in SENSITIVE_QUERY_PARAMS else value)
            for key, value in url.params.multi_items()
        ]
        return str(url.copy_with(params=params))


def create_logging_client(
    enabled: bool = True,
    timeout: httpx.Timeout | None = None,
) -> httpx.AsyncClient:
    """Create an httpx client with request/response logging.

    Args:
        enabled: Whether to enable HTTP logging
        timeout: Optional timeout configuration

    Returns:
        Configured httpx.AsyncClient with event hooks
    """
    http_logger = HTTPLogger(enabled=enabled)

    event_hooks: dict[str, list[Any]] = {
        "request": [http_logger.log_request],
        "response": [http_logger.log_response],
    }

    return httpx.AsyncClient(event_hooks=event_hooks, timeout=timeout)
