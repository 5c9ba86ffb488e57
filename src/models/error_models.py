"""
Standardized error response models for the streaming agent API.

Errors that happen before a stream begins are returned as RFC 7807
problem documents: ``{type, title, status, detail, instance, code}``.
Once a stream has begun there is no error slot; failures are expressed
as text inside the stream or as an early close.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ErrorCode(str, Enum):
    """Application-specific error codes for categorization."""

    # Validation errors (2xxx)
    VALIDATION_ERROR = "VAL_2001"
    VALIDATION_MISSING_FIELD = "VAL_2002"
    VALIDATION_CONSTRAINT_VIOLATION = "VAL_2004"

    # Resource errors (3xxx)
    RESOURCE_NOT_FOUND = "RES_3001"

    # Stream errors (6xxx)
    STREAM_SETUP_FAILED = "STR_6001"

    # External service errors (7xxx)
    EXTERNAL_SERVICE_ERROR = "EXT_7001"

    # Internal errors (9xxx)
    INTERNAL_ERROR = "INT_9001"
    INTERNAL_CONFIGURATION_ERROR = "INT_9002"
    INTERNAL_UNEXPECTED = "INT_9999"


#: Short human-readable titles per HTTP status, used as the problem ``title``.
STATUS_TITLES: dict[int, str] = {
    400: "Invalid Request",
    404: "Not Found",
    405: "Method Not Allowed",
    422: "Invalid Request",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
}


class ProblemDetails(BaseModel):
    """Problem document returned for every pre-stream failure.

    Example response:
    {
        "type": "about:blank",
        "title": "Invalid Request",
        "status": 400,
        "detail": "'query' parameter is required and cannot be empty.",
        "instance": "/stream",
        "code": "VAL_2002",
        "request_id": "req_a1b2c3d4e5f6a7b8"
    }
    """

    model_config = ConfigDict(use_enum_values=True)

    type: str = "about:blank"
    title: str
    status: int
    detail: str | None = None
    instance: str | None = None
    code: ErrorCode | None = None
    request_id: str | None = None
    # Debug info - only included in development mode
    debug: dict[str, Any] | None = Field(default=None, exclude=True)

    def to_dict(self, include_debug: bool = False) -> dict[str, Any]:
        """Convert to dictionary for JSON response.

        Args:
            include_debug: Include debug information (only in development)
        """
        data = self.model_dump(exclude_none=True)
        if include_debug and self.debug:
            data["debug"] = self.debug
        return data


# HTTP status code mappings for error codes
ERROR_CODE_TO_STATUS: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.VALIDATION_MISSING_FIELD: 400,
    ErrorCode.VALIDATION_CONSTRAINT_VIOLATION: 400,
    ErrorCode.RESOURCE_NOT_FOUND: 404,
    ErrorCode.STREAM_SETUP_FAILED: 500,
    ErrorCode.EXTERNAL_SERVICE_ERROR: 502,
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.INTERNAL_CONFIGURATION_ERROR: 500,
    ErrorCode.INTERNAL_UNEXPECTED: 500,
}


def get_status_code(error_code: ErrorCode) -> int:
    """Get HTTP status code for an error code."""
    return ERROR_CODE_TO_STATUS.get(error_code, 500)


def get_status_title(status_code: int) -> str:
    """Get the problem title for an HTTP status code."""
    return STATUS_TITLES.get(status_code, "Error")


__all__ = [
    "ERROR_CODE_TO_STATUS",
    "STATUS_TITLES",
    "ErrorCode",
    "ProblemDetails",
    "get_status_code",
    "get_status_title",
]
