"""
Global exception handlers for the streaming agent API.

Every failure that happens before a stream's first byte is rendered as an
``application/problem+json`` document. Failures after the first byte never
reach these handlers; the stream itself degrades or ends early.
"""

from __future__ import annotations

import traceback

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from api.middleware.request_context import get_request_context, get_request_id
from core.constants import PROBLEM_MEDIA_TYPE, get_settings
from models.error_models import ErrorCode, ProblemDetails, get_status_code, get_status_title
from utils.logger import logger


class AppException(Exception):
    """Base application exception with error code support.

    Use this for errors that should return a specific error code and
    message to the client before any stream has started.

    Example:
        raise AppException(
            code=ErrorCode.VALIDATION_MISSING_FIELD,
            message="'query' parameter is required and cannot be empty.",
        )
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        self.code = code
        self.message = message
        self.details = details
        self.cause = cause
        super().__init__(message)


class ValidationException(AppException):
    """Invalid request input (blank or oversized query)."""

    def __init__(
        self,
        message: str = "Validation error",
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(code=code, message=message, details=details)


class StreamSetupError(AppException):
    """The stream could not be started before its first byte."""

    def __init__(self, message: str = "Failed to start the response stream", cause: Exception | None = None):
        super().__init__(code=ErrorCode.STREAM_SETUP_FAILED, message=message, cause=cause)


class ConfigurationError(AppException):
    """Required configuration is missing or invalid."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(code=ErrorCode.INTERNAL_CONFIGURATION_ERROR, message=message, cause=cause)


def _debug_enabled() -> bool:
    # Settings may be the thing that failed; never let that mask the original error
    try:
        return get_settings().debug
    except ValueError:
        return False


def _problem_response(
    status_code: int,
    code: ErrorCode,
    detail: str,
    request: Request | None = None,
    debug_info: dict[str, Any] | None = None,
) -> JSONResponse:
    """Create a problem+json response for a pre-stream failure."""
    include_debug = _debug_enabled()
    problem = ProblemDetails(
        title=get_status_title(status_code),
        status=status_code,
        detail=detail,
        instance=request.url.path if request else None,
        code=code,
        request_id=get_request_id(),
        debug=debug_info,
    )
    return JSONResponse(
        status_code=status_code,
        content=problem.to_dict(include_debug=include_debug),
        media_type=PROBLEM_MEDIA_TYPE,
    )


def _log_error(error: Exception, code: ErrorCode, status_code: int) -> None:
    """Log error with appropriate level and context."""
    ctx = get_request_context()
    log_context = ctx.to_log_context() if ctx else {}
    log_context["error_code"] = code.value
    log_context["status_code"] = status_code

    if status_code >= 500:
        logger.error(f"Server error: {code.value} - {error}", exc_info=True, **log_context)
    else:
        logger.warning(f"Client error: {code.value} - {error}", **log_context)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle application-specific exceptions."""
    status_code = get_status_code(exc.code)
    _log_error(exc, exc.code, status_code)

    debug_info = {
        "exception_type": type(exc).__name__,
        "cause": str(exc.cause) if exc.cause else None,
        **(exc.details or {}),
    }
    return _problem_response(status_code, exc.code, exc.message, request, debug_info)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI HTTPException (404, 405, ...) with consistent formatting."""
    status_to_code = {
        400: ErrorCode.VALIDATION_ERROR,
        404: ErrorCode.RESOURCE_NOT_FOUND,
        422: ErrorCode.VALIDATION_ERROR,
        502: ErrorCode.EXTERNAL_SERVICE_ERROR,
    }
    code = status_to_code.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)

    _log_error(exc, code, exc.status_code)
    return _problem_response(exc.status_code, code, detail, request, {"original_status": exc.status_code})


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request parsing errors as 400 Invalid Request."""
    messages = []
    for error in exc.errors():
        field_path = ".".join(str(loc) for loc in error["loc"])
        messages.append(f"{field_path}: {error['msg']}")

    _log_error(exc, ErrorCode.VALIDATION_ERROR, 400)
    return _problem_response(
        400,
        ErrorCode.VALIDATION_ERROR,
        "; ".join(messages) or "Request validation failed",
        request,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions with graceful degradation."""
    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {exc}",
        exc_info=True,
        request_id=get_request_id(),
        path=request.url.path,
    )

    debug_info = {
        "exception_type": type(exc).__name__,
        "exception_message": str(exc),
        "traceback": traceback.format_exc(),
    }
    return _problem_response(500, ErrorCode.INTERNAL_UNEXPECTED, "An unexpected error occurred", request, debug_info)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application.

    Call this in main.py after creating the FastAPI app:
        register_exception_handlers(app)
    """
    # Note: type: ignore needed because Starlette's type signature expects Exception,
    # but covariant exception types in handlers are safe and work correctly at runtime
    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]

    # Catch-all for unexpected exceptions
    app.add_exception_handler(Exception, generic_exception_handler)


__all__ = [
    "AppException",
    "ConfigurationError",
    "StreamSetupError",
    "ValidationException",
    "app_exception_handler",
    "generic_exception_handler",
    "http_exception_handler",
    "register_exception_handlers",
    "validation_exception_handler",
]
