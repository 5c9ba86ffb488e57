"""
HTTP and OpenAI client factory utilities.
Centralizes httpx and AsyncOpenAI client creation with consistent configuration.
"""

from __future__ import annotations

import httpx

from openai import AsyncAzureOpenAI, AsyncOpenAI

from core.constants import Settings
from utils.http_logger import create_logging_client

# Timeout configuration for streaming answers. The model can pause between
# deltas while it decides on a tool call, so reads get a generous budget.
DEFAULT_CONNECT_TIMEOUT = 30.0  # Time to establish connection
DEFAULT_READ_TIMEOUT = 300.0  # Gap allowed between streamed deltas
DEFAULT_WRITE_TIMEOUT = 30.0  # Time to send request
DEFAULT_POOL_TIMEOUT = 30.0  # Time to acquire connection from pool


def create_http_client(
    enable_logging: bool = False,
    read_timeout: float | None = None,
) -> httpx.AsyncClient:
    """Create HTTP client with proper timeouts for streaming.

    Args:
        enable_logging: Enable HTTP request/response logging
        read_timeout: Read timeout in seconds (default: 300s)

    Returns:
        Configured httpx.AsyncClient
    """
    effective_read_timeout = read_timeout if read_timeout is not None else DEFAULT_READ_TIMEOUT
    timeout = httpx.Timeout(
        connect=DEFAULT_CONNECT_TIMEOUT,
        read=effective_read_timeout,
        write=DEFAULT_WRITE_TIMEOUT,
        pool=DEFAULT_POOL_TIMEOUT,
    )

    if enable_logging:
        return create_logging_client(enabled=True, timeout=timeout)

    return httpx.AsyncClient(timeout=timeout)


def create_openai_client(
    settings: Settings,
    http_client: httpx.AsyncClient | None = None,
) -> AsyncOpenAI:
    """Create the async model client for the configured provider.

    Retries are disabled: a failed call is final for that call.

    Args:
        settings: Validated application settings
        http_client: Optional httpx client (e.g. with request logging)

    Returns:
        AsyncAzureOpenAI when api_provider='azure', otherwise AsyncOpenAI
    """
    if settings.api_provider == "azure":
        return AsyncAzureOpenAI(
            api_key=settings.azure_openai_api_key,
            azure_endpoint=settings.azure_endpoint_str,
            api_version=settings.azure_openai_api_version,
            max_retries=0,
            http_client=http_client,
        )
    return AsyncOpenAI(api_key=settings.openai_api_key, max_retries=0, http_client=http_client)
