"""
Request context middleware for the streaming agent API.

Provides request ID tracking, timing, and context propagation so that
log lines emitted deep inside a stream session can be correlated with
the HTTP request that started it.
"""

from __future__ import annotations

import secrets
import time

from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Context variable for request-scoped data
_request_context: ContextVar[RequestContext | None] = ContextVar("request_context", default=None)

# Request ID prefix for easy identification in logs
REQUEST_ID_PREFIX = "req_"

REQUEST_ID_HEADER = "X-Request-ID"


@dataclass
class RequestContext:
    """Request-scoped context for tracking and logging.

    Stores request metadata that can be accessed anywhere in the call stack
    without passing it explicitly through function arguments.
    """

    request_id: str
    start_time: float = field(default_factory=time.monotonic)
    path: str = ""
    method: str = ""
    client_ip: str | None = None
    session_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def elapsed_ms(self) -> float:
        """Get elapsed time since request start in milliseconds."""
        return (time.monotonic() - self.start_time) * 1000

    def to_log_context(self) -> dict[str, Any]:
        """Get context dict for logging."""
        ctx: dict[str, Any] = {
            "request_id": self.request_id,
            "path": self.path,
            "method": self.method,
            "elapsed_ms": round(self.elapsed_ms, 2),
        }
        if self.client_ip:
            ctx["client_ip"] = self.client_ip
        if self.session_id:
            ctx["session_id"] = self.session_id
        return ctx


def generate_request_id(prefix: str = REQUEST_ID_PREFIX) -> str:
    """Generate a unique request ID.

    Format: prefix + 16 hex characters (64 bits of entropy)
    Example: req_a1b2c3d4e5f6a7b8
    """
    return f"{prefix}{secrets.token_hex(8)}"


def get_request_context() -> RequestContext | None:
    """Get the current request context, or None outside of a request."""
    return _request_context.get()


def get_request_id() -> str | None:
    """Get the current request ID."""
    ctx = get_request_context()
    return ctx.request_id if ctx else None


def set_request_context(context: RequestContext) -> None:
    """Set the request context for the current async context."""
    _request_context.set(context)


def clear_request_context() -> None:
    """Clear the request context."""
    _request_context.set(None)


def update_request_context(**kwargs: Any) -> None:
    """Update fields in the current request context.

    Common usage:
        update_request_context(session_id="a1b2c3d4")
    """
    ctx = get_request_context()
    if ctx:
        for key, value in kwargs.items():
            if hasattr(ctx, key):
                setattr(ctx, key, value)
            else:
                ctx.extra[key] = value


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # Take first IP in chain (original client)
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware to initialize request context for each request.

    Adds request ID to response headers and initializes context vars.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        # Reuse an upstream request ID when one is supplied (distributed tracing)
        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()

        context = RequestContext(
            request_id=request_id,
            path=request.url.path,
            method=request.method,
            client_ip=_client_ip(request),
        )
        set_request_context(context)

        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_request_context()


__all__ = [
    "REQUEST_ID_HEADER",
    "REQUEST_ID_PREFIX",
    "RequestContext",
    "RequestContextMiddleware",
    "clear_request_context",
    "generate_request_id",
    "get_request_context",
    "get_request_id",
    "set_request_context",
    "update_request_context",
]
