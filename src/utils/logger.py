"""
Logging setup for the streaming agent using Python's standard logging
with JSON formatting for structured logs.

Log destinations:
- Console (stderr): Human-readable format for debugging
- logs/sessions.jsonl: JSON format for stream session summaries
- logs/errors.jsonl: JSON format for error tracking
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import re
import sys
import uuid

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, cast

from pythonjsonlogger import json as jsonlogger

from api.middleware.request_context import get_request_context
from core.constants import (
    LOG_BACKUP_COUNT_ERRORS,
    LOG_BACKUP_COUNT_SESSIONS,
    LOG_MAX_SIZE,
    LOG_PREVIEW_LENGTH,
    PROJECT_ROOT,
    SESSION_ID_LENGTH,
    get_settings,
)

# PII Redaction patterns
REDACTION_PATTERNS = [
    (r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b", "[EMAIL]"),
    (r"\b(?:\d{4}[- ]?){3}\d{4}\b", "[CARD]"),
    (r"\b(sk-|pk-|api[-_]?key[-_]?)[A-Za-z0-9]{20,}\b", "[API_KEY]"),
    (r"\b(password|secret|token)\s*[:=]\s*\S+", "[REDACTED]"),
]


@dataclass
class SessionSummary:
    """Structured representation of one finished stream session for logging."""

    query: str
    answer: str
    state: str
    units: int
    tool_calls: list[str] = field(default_factory=list)
    duration_ms: float | None = None
    session_id: str = ""
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())


class SessionFilter(logging.Filter):
    """Allow INFO and above into the session log."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.INFO


class ErrorFilter(logging.Filter):
    """Filter to only allow ERROR and CRITICAL logs"""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


class ColoredConsoleFormatter(logging.Formatter):
    """
    Formatter that adds colors to log levels.
    Format: HH:MM:SS [LEVEL] logger_name - message
    """

    # ANSI color codes
    GREY = "\x1b[38;20m"
    GREEN = "\x1b[32;20m"
    YELLOW = "\x1b[33;20m"
    RED = "\x1b[31;20m"
    BOLD_RED = "\x1b[31;1m"
    RESET = "\x1b[0m"

    LEVEL_COLORS = {
        logging.DEBUG: GREY,
        logging.INFO: GREEN,
        logging.WARNING: YELLOW,
        logging.ERROR: RED,
        logging.CRITICAL: BOLD_RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        level_fmt = f"{color}[{record.levelname}]{self.RESET}" if color else f"[{record.levelname}]"
        record.asctime = self.formatTime(record, "%H:%M:%S")

        # uvicorn access args: (client_addr, method, full_path, http_version, status_code)
        if record.name == "uvicorn.access" and record.args and len(record.args) == 5:
            client_addr, method, full_path, http_version, status_code = cast(tuple[Any, ...], record.args)
            status_code_num = int(status_code)
            if status_code_num < 400:
                status_fmt = f"{self.GREEN}{status_code}{self.RESET}"
            elif status_code_num < 500:
                status_fmt = f"{self.YELLOW}{status_code}{self.RESET}"
            else:
                status_fmt = f"{self.RED}{status_code}{self.RESET}"
            message = f'{client_addr} - "\x1b[1m{method}\x1b[0m {full_path} HTTP/{http_version}" {status_fmt}'
            return f"{record.asctime} {level_fmt} {record.name} - {message}"

        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return f"{record.asctime} {level_fmt} {record.name} - {message}"


def configure_uvicorn_logging() -> None:
    """Route uvicorn's access and error loggers through the colored console format."""
    formatter = ColoredConsoleFormatter()

    logging.getLogger("uvicorn").handlers = []
    logging.getLogger("uvicorn").setLevel(logging.INFO)

    for name in ("uvicorn.access", "uvicorn.error"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = []
        uvicorn_logger.setLevel(logging.INFO)
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(formatter)
        uvicorn_logger.addHandler(handler)
        uvicorn_logger.propagate = False


def _file_logging_enabled() -> bool:
    return os.getenv("LOG_TO_FILES", "true").lower() in ("true", "1", "yes")


def setup_logging(name: str = "stream-agent", debug: bool | None = None) -> logging.Logger:
    """
    Set up logging with console and rotating JSON file handlers.

    Args:
        name: Logger name
        debug: Enable debug logging (overrides DEBUG env var)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)  # Capture all, filter at handler level
    logger.handlers = []

    if debug is None:
        debug = os.getenv("DEBUG", "false").lower() in ("true", "1", "yes")

    # --- Console Handler (Human-readable) ---
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    console_handler.setFormatter(ColoredConsoleFormatter())
    logger.addHandler(console_handler)

    if not _file_logging_enabled():
        return logger

    log_dir = PROJECT_ROOT / "logs"
    log_dir.mkdir(exist_ok=True)

    # --- Session Log Handler (JSON) ---
    session_handler = logging.handlers.RotatingFileHandler(
        log_dir / "sessions.jsonl",
        maxBytes=LOG_MAX_SIZE,
        backupCount=LOG_BACKUP_COUNT_SESSIONS,
        encoding="utf-8",
    )
    session_handler.setLevel(logging.INFO)
    session_handler.addFilter(SessionFilter())
    session_handler.setFormatter(
        jsonlogger.JsonFormatter(
            "%(timestamp)s %(levelname)s %(message)s %(session_id)s %(request_id)s %(units)s %(tool)s",
            timestamp=True,
        )
    )
    logger.addHandler(session_handler)

    # --- Error Log Handler (JSON) ---
    error_handler = logging.handlers.RotatingFileHandler(
        log_dir / "errors.jsonl",
        maxBytes=LOG_MAX_SIZE,
        backupCount=LOG_BACKUP_COUNT_ERRORS,
        encoding="utf-8",
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.addFilter(ErrorFilter())
    error_handler.setFormatter(
        jsonlogger.JsonFormatter(
            "%(timestamp)s %(levelname)s %(name)s %(message)s",
            timestamp=True,
        )
    )
    logger.addHandler(error_handler)

    return logger


class StreamLogger:
    """
    High-level logging interface for the streaming agent.
    Wraps standard Python logging with convenience methods.
    """

    def __init__(self, name: str = "stream-agent"):
        self.logger = setup_logging(name)
        self.instance_id = str(uuid.uuid4())[:SESSION_ID_LENGTH]

    def _enrich_context(self, kwargs: dict[str, Any]) -> dict[str, Any]:
        """Enrich log arguments with request context."""
        kwargs.setdefault("instance_id", self.instance_id)

        if ctx := get_request_context():
            for key, value in ctx.to_log_context().items():
                kwargs.setdefault(key, value)

        return kwargs

    def debug(self, message: str, **kwargs: Any) -> None:
        """Debug level logging"""
        self.logger.debug(message, extra=self._enrich_context(kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        """Info level logging"""
        self.logger.info(message, extra=self._enrich_context(kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        """Warning level logging"""
        self.logger.warning(message, extra=self._enrich_context(kwargs))

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        """Error level logging with optional exception info"""
        self.logger.error(message, extra=self._enrich_context(kwargs), exc_info=exc_info)

    def _should_log_content(self) -> bool:
        """Check if content logging is enabled via settings."""
        try:
            return bool(get_settings().enable_content_logging)
        except ValueError:
            # Settings not loadable (e.g. client-only process)
            return False

    def _redact_content(self, text: str) -> str:
        """Redact PII from text using defined patterns."""
        if not text:
            return text

        redacted = text
        for pattern, replacement in REDACTION_PATTERNS:
            redacted = re.sub(pattern, replacement, redacted)
        return redacted

    def _preview(self, text: str) -> str:
        preview = self._redact_content(text[:LOG_PREVIEW_LENGTH].replace("\n", " "))
        if len(text) > LOG_PREVIEW_LENGTH:
            preview += "..."
        return preview

    def log_stream_session(
        self,
        session_id: str,
        query: str,
        answer: str,
        state: str,
        units: int,
        tool_calls: list[str] | None = None,
        duration_ms: float | None = None,
    ) -> None:
        """Log a finished stream session with redacted or hidden content."""
        summary = SessionSummary(
            query=query,
            answer=answer,
            state=state,
            units=units,
            tool_calls=tool_calls or [],
            duration_ms=duration_ms,
            session_id=session_id,
        )

        should_log_content = self._should_log_content()
        if should_log_content:
            query_preview = self._preview(summary.query)
            answer_preview = self._preview(summary.answer)
        else:
            query_preview = "[HIDDEN]"
            answer_preview = "[HIDDEN]"

        msg_parts = [f"Query: {query_preview} → Answer: {answer_preview}", f"[{summary.state}]"]
        if summary.tool_calls:
            msg_parts.append(f"[{len(summary.tool_calls)} tool calls]")
        if summary.duration_ms is not None:
            msg_parts.append(f"[{summary.duration_ms:.0f}ms]")
        msg_parts.append(f"[{summary.units} chars]")

        extra_data: dict[str, Any] = {
            "stream_session": True,
            "timestamp": summary.timestamp,
            "session_id": summary.session_id,
            "state": summary.state,
            "units": summary.units,
            "chars_query": len(summary.query),
            "content_logging": should_log_content,
        }
        if summary.tool_calls:
            extra_data["tool_names"] = summary.tool_calls
        if summary.duration_ms is not None:
            extra_data["ms"] = int(summary.duration_ms)

        self.logger.info(" ".join(msg_parts), extra=self._enrich_context(extra_data))

    def log_tool_call(self, tool_name: str, args: dict[str, Any], result: str, session_id: str = "") -> None:
        """Log a tool invocation - arguments and result hidden unless content logging is on."""
        if self._should_log_content():
            message = f"Tool call: {tool_name}({self._redact_content(str(args))}) → {self._preview(result)}"
        else:
            message = f"Tool call: {tool_name}(...) → [HIDDEN]"

        extra_data: dict[str, Any] = {"tool": tool_name, "result_chars": len(result)}
        if session_id:
            extra_data["session_id"] = session_id
        self.logger.info(message, extra=self._enrich_context(extra_data))


# Global logger instance
logger = StreamLogger()
