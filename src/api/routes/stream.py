"""
Streaming answer endpoint.

``GET /stream?query=...`` answers one query as a text/plain body that grows
one character at a time. Only input validation and pre-stream faults are
reported as problem documents; everything after the first byte is text.
"""

from __future__ import annotations

import uuid

from functools import partial

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from api.dependencies import Orchestrator, Sessions
from api.middleware.exception_handlers import ValidationException
from api.middleware.request_context import update_request_context
from api.streaming import open_stream
from core.constants import PROBLEM_MEDIA_TYPE, STREAM_MEDIA_TYPE
from core.orchestrator import InvalidQueryError, validate_query
from models.error_models import ErrorCode

router = APIRouter()

_PROBLEM_EXAMPLE = {
    "type": "about:blank",
    "title": "Invalid Request",
    "status": 400,
    "detail": "'query' parameter is required and cannot be empty.",
    "instance": "/stream",
    "code": ErrorCode.VALIDATION_MISSING_FIELD.value,
}


def connection_key(request: Request) -> str:
    """Identify the client connection a stream session belongs to.

    Without peer information each request is its own connection, so it can
    never supersede a stream that belongs to someone else.
    """
    if request.client is None:
        return f"request:{uuid.uuid4().hex}"
    return f"{request.client.host}:{request.client.port}"


@router.get(
    "/stream",
    response_class=StreamingResponse,
    summary="Stream an answer",
    description="Answer a query as plain UTF-8 text, flushed one character at a time.",
    responses={
        200: {"description": "Answer stream", "content": {STREAM_MEDIA_TYPE: {}}},
        400: {"description": "Missing, blank or oversized query", "content": {PROBLEM_MEDIA_TYPE: {"example": _PROBLEM_EXAMPLE}}},
        500: {"description": "The stream could not be started", "content": {PROBLEM_MEDIA_TYPE: {}}},
    },
)
async def stream_answer(
    request: Request,
    orchestrator: Orchestrator,
    sessions: Sessions,
    query: str | None = None,
) -> StreamingResponse:
    """Stream the answer to ``query``."""
    try:
        validated = validate_query(query)
    except InvalidQueryError as e:
        code = (
            ErrorCode.VALIDATION_MISSING_FIELD
            if query is None or not query.strip()
            else ErrorCode.VALIDATION_CONSTRAINT_VIOLATION
        )
        raise ValidationException(message=str(e), code=code) from e

    key = connection_key(request)
    session = await sessions.begin(key, validated)
    update_request_context(session_id=session.session_id)

    return await open_stream(
        orchestrator.run(session),
        session.token,
        on_close=partial(sessions.end, key, session),
    )
