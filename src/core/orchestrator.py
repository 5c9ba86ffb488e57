"""
Generation orchestrator: turns one query into a lazily produced sequence
of single characters, running the tool-calling loop against the model
backend along the way.

Failure semantics:
- Backend failure before the first character: the fixed apology is
  streamed instead and the stream completes normally.
- Backend failure after characters were sent: the stream simply ends.
- Cancellation: emission stops at the next suspension point, no trailing text.
- Nothing is retried.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import aclosing
from typing import assert_never

from core.constants import APOLOGY_MESSAGE, MAX_QUERY_LENGTH, MAX_TOOL_ROUNDS, STREAM_PROGRESS_LOG_INTERVAL
from core.prompts import Prompt, build_prompt
from core.sessions import SessionState, StreamSession
from integrations.model_backend import ModelBackend, SamplingParams, ToolChoice
from models.deltas import ContentDelta, TextChunk, ToolCallRequest, ToolCallResult
from tools.registry import ToolRegistry
from utils.cancellation import CancellationToken
from utils.logger import logger


class InvalidQueryError(ValueError):
    """Query is blank or longer than MAX_QUERY_LENGTH."""


def validate_query(query: str | None) -> str:
    """Return the trimmed query or raise InvalidQueryError."""
    if query is None or not query.strip():
        raise InvalidQueryError("'query' parameter is required and cannot be empty.")
    query = query.strip()
    if len(query) > MAX_QUERY_LENGTH:
        raise InvalidQueryError(f"'query' must be at most {MAX_QUERY_LENGTH} characters.")
    return query


class GenerationOrchestrator:
    """Drives the request/response loop between the model backend and tools.

    Args:
        backend: Model backend used for every round
        tools: Registry whose declarations are advertised and whose tools are invoked
        sampling: Fixed sampling parameters for every session
        max_tool_rounds: Tool-calling budget per session; the round after the
            budget is spent is submitted with tool_choice="none"
    """

    def __init__(
        self,
        backend: ModelBackend,
        tools: ToolRegistry,
        sampling: SamplingParams | None = None,
        max_tool_rounds: int = MAX_TOOL_ROUNDS,
    ):
        self._backend = backend
        self._tools = tools
        self._sampling = sampling or SamplingParams()
        self._max_tool_rounds = max_tool_rounds

    def stream(self, query: str, cancellation_token: CancellationToken) -> AsyncIterator[str]:
        """Stream the answer to ``query`` one Unicode character at a time.

        The returned iterator is single-use; call again to start over.
        """
        return self.run(StreamSession(query=validate_query(query), token=cancellation_token))

    async def run(self, session: StreamSession) -> AsyncGenerator[str, None]:
        """Stream the answer for an already-registered session."""
        token = session.token
        prompt = build_prompt(session.query)
        context: list[ContentDelta] = []
        answer: list[str] = []

        logger.info(f"Starting stream session {session.session_id}", session_id=session.session_id)

        try:
            async with aclosing(self._generate(session, prompt, context)) as units:
                async for unit in units:
                    answer.append(unit)
                    yield unit

            if token.is_cancelled:
                session.finish(SessionState.CANCELLED)
            elif session.emitted == 0:
                # Setup failure, or a backend that produced no text at all
                session.finish(SessionState.DEGRADED)
                for unit in APOLOGY_MESSAGE:
                    if token.is_cancelled:
                        break
                    session.emitted += 1
                    answer.append(unit)
                    yield unit
        finally:
            # Still active here means the consumer closed the stream early
            session.finish(SessionState.CANCELLED)
            logger.log_stream_session(
                session_id=session.session_id,
                query=session.query,
                answer="".join(answer),
                state=session.state.value,
                units=session.emitted,
                tool_calls=session.tool_calls,
                duration_ms=session.elapsed_ms,
            )

    async def _generate(self, session: StreamSession, prompt: Prompt, context: list[ContentDelta]) -> AsyncIterator[str]:
        """Run backend rounds until the answer completes, fails, or is cancelled."""
        token = session.token
        try:
            for round_index in range(self._max_tool_rounds + 1):
                tool_choice: ToolChoice = "auto" if round_index < self._max_tool_rounds else "none"
                pending: list[ToolCallRequest] = []
                deltas = self._backend.submit_prompt(
                    prompt, list(context), self._tools.definitions, self._sampling, tool_choice
                )

                try:
                    while True:
                        delta = await token.race(anext(deltas, None))
                        if token.is_cancelled or delta is None:
                            break

                        match delta:
                            case TextChunk(text=text):
                                context.append(delta)
                                for unit in text:
                                    if token.is_cancelled:
                                        break
                                    session.emitted += 1
                                    if session.emitted % STREAM_PROGRESS_LOG_INTERVAL == 0:
                                        logger.debug(f"Streamed {session.emitted} characters")
                                    yield unit
                            case ToolCallRequest():
                                # Emission is suspended until every request of the round is resolved
                                context.append(delta)
                                pending.append(delta)
                            case ToolCallResult():
                                context.append(delta)
                            case _:
                                assert_never(delta)
                finally:
                    await deltas.aclose()

                if token.is_cancelled:
                    break
                if pending and round_index == self._max_tool_rounds:
                    logger.warning(
                        f"Ignoring {len(pending)} tool calls after the tool round budget was spent",
                        session_id=session.session_id,
                    )
                    pending.clear()
                if not pending:
                    session.finish(SessionState.COMPLETED if session.emitted else SessionState.DEGRADED)
                    break

                for request in pending:
                    session.tool_calls.append(request.name)
                    result = await token.race(self._tools.invoke(request))
                    if token.is_cancelled or result is None:
                        break
                    context.append(result)
                if token.is_cancelled:
                    break

        except Exception as e:
            if session.emitted == 0:
                logger.error(f"Error setting up AI streaming: {e}", exc_info=True, session_id=session.session_id)
                session.finish(SessionState.DEGRADED)
            else:
                logger.error(
                    f"Stream failed after {session.emitted} characters: {e}",
                    exc_info=True,
                    session_id=session.session_id,
                )
                session.finish(SessionState.TRUNCATED)


__all__ = ["GenerationOrchestrator", "InvalidQueryError", "validate_query"]
