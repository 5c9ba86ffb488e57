"""Tests for the generation orchestrator.

Covers character emission, degradation to the apology, cancellation,
and the tool-calling loop.
"""

from __future__ import annotations

import asyncio

from collections.abc import AsyncIterator
from typing import Any
from unittest.mock import AsyncMock

import pytest

from core.constants import APOLOGY_MESSAGE, MAX_QUERY_LENGTH
from core.orchestrator import GenerationOrchestrator, InvalidQueryError, validate_query
from core.sessions import SessionState, StreamSession
from models.deltas import TextChunk, ToolCallRequest, ToolCallResult
from tools.registry import ToolRegistry, create_tool_registry
from utils.cancellation import CancellationToken


async def collect(units: AsyncIterator[str]) -> list[str]:
    return [unit async for unit in units]


def weather_request(call_id: str = "call_1") -> ToolCallRequest:
    return ToolCallRequest(
        call_id=call_id,
        name="get_weather_data",
        arguments={"date": "2026-10-18", "city": "Paris"},
        raw_arguments='{"date": "2026-10-18", "city": "Paris"}',
    )


class TestValidateQuery:
    """Tests for query validation."""

    def test_trims_whitespace(self) -> None:
        assert validate_query("  hello  ") == "hello"

    @pytest.mark.parametrize("query", [None, "", "   ", "\n\t"])
    def test_blank_rejected(self, query: str | None) -> None:
        with pytest.raises(InvalidQueryError):
            validate_query(query)

    def test_max_length_accepted(self) -> None:
        assert len(validate_query("a" * MAX_QUERY_LENGTH)) == MAX_QUERY_LENGTH

    def test_over_max_length_rejected(self) -> None:
        with pytest.raises(InvalidQueryError):
            validate_query("a" * (MAX_QUERY_LENGTH + 1))


class TestEmission:
    """Tests for character-by-character emission."""

    @pytest.mark.asyncio
    async def test_emits_one_character_per_unit(self, scripted_backend: Any) -> None:
        """Each yielded unit is a single Unicode character, in order."""
        backend = scripted_backend([[TextChunk("Héllo "), TextChunk("wörld 🌍")]])
        orchestrator = GenerationOrchestrator(backend, ToolRegistry())

        units = await collect(orchestrator.stream("hi", CancellationToken()))

        assert units == list("Héllo wörld 🌍")
        assert all(len(unit) == 1 for unit in units)

    @pytest.mark.asyncio
    async def test_prompt_wraps_query(self, scripted_backend: Any) -> None:
        backend = scripted_backend([[TextChunk("ok")]])
        orchestrator = GenerationOrchestrator(backend, ToolRegistry())

        await collect(orchestrator.stream("  what is up  ", CancellationToken()))

        prompt = backend.calls[0]["prompt"]
        assert prompt.user == "You are a helpful AI assistant. Please respond to: what is up"
        assert backend.calls[0]["tool_choice"] == "auto"

    @pytest.mark.asyncio
    async def test_session_completed(self, scripted_backend: Any) -> None:
        backend = scripted_backend([[TextChunk("done")]])
        orchestrator = GenerationOrchestrator(backend, ToolRegistry())
        session = StreamSession(query="q")

        await collect(orchestrator.run(session))

        assert session.state is SessionState.COMPLETED
        assert session.emitted == 4

    def test_blank_query_rejected_before_streaming(self, scripted_backend: Any) -> None:
        orchestrator = GenerationOrchestrator(scripted_backend([]), ToolRegistry())

        with pytest.raises(InvalidQueryError):
            orchestrator.stream("   ", CancellationToken())


class TestDegradation:
    """Tests for failure handling."""

    @pytest.mark.asyncio
    async def test_setup_failure_streams_apology(self, scripted_backend: Any) -> None:
        """A backend failing before any text yields exactly the apology."""
        backend = scripted_backend([[RuntimeError("401 Unauthorized")]])
        orchestrator = GenerationOrchestrator(backend, ToolRegistry())
        session = StreamSession(query="q")

        units = await collect(orchestrator.run(session))

        assert "".join(units) == APOLOGY_MESSAGE
        assert session.state is SessionState.DEGRADED

    @pytest.mark.asyncio
    async def test_empty_answer_streams_apology(self, scripted_backend: Any) -> None:
        """A non-cancelled stream is never empty."""
        backend = scripted_backend([[]])
        orchestrator = GenerationOrchestrator(backend, ToolRegistry())

        units = await collect(orchestrator.stream("q", CancellationToken()))

        assert "".join(units) == APOLOGY_MESSAGE

    @pytest.mark.asyncio
    async def test_mid_stream_failure_truncates(self, scripted_backend: Any) -> None:
        """After text was sent, a failure just ends the stream."""
        backend = scripted_backend([[TextChunk("Partial"), RuntimeError("connection reset")]])
        orchestrator = GenerationOrchestrator(backend, ToolRegistry())
        session = StreamSession(query="q")

        units = await collect(orchestrator.run(session))

        assert "".join(units) == "Partial"
        assert session.state is SessionState.TRUNCATED

    @pytest.mark.asyncio
    async def test_no_retry_after_failure(self, scripted_backend: Any) -> None:
        backend = scripted_backend([[RuntimeError("boom")], [TextChunk("second")]])
        orchestrator = GenerationOrchestrator(backend, ToolRegistry())

        await collect(orchestrator.stream("q", CancellationToken()))

        assert len(backend.calls) == 1


class TestCancellation:
    """Tests for cooperative cancellation."""

    @pytest.mark.asyncio
    async def test_cancel_after_n_units(self, scripted_backend: Any) -> None:
        """No unit is produced after the token fires."""
        backend = scripted_backend([[TextChunk("abcdefghij")]])
        orchestrator = GenerationOrchestrator(backend, ToolRegistry())
        token = CancellationToken()
        session = StreamSession(query="q", token=token)
        stream = orchestrator.run(session)

        received = [await anext(stream) for _ in range(3)]
        await token.cancel(reason="test")
        remaining = await collect(stream)

        assert received == ["a", "b", "c"]
        assert remaining == []
        assert session.state is SessionState.CANCELLED

    @pytest.mark.asyncio
    async def test_cancel_while_waiting_for_backend(self) -> None:
        """Cancellation abandons a pending backend await without an apology."""
        started = asyncio.Event()

        class StalledBackend:
            async def submit_prompt(self, *args: Any, **kwargs: Any) -> AsyncIterator[Any]:
                started.set()
                await asyncio.Event().wait()
                yield TextChunk("never")

        orchestrator = GenerationOrchestrator(StalledBackend(), ToolRegistry())
        token = CancellationToken()
        task = asyncio.create_task(collect(orchestrator.stream("q", token)))

        await started.wait()
        await token.cancel(reason="test")
        units = await asyncio.wait_for(task, timeout=1.0)

        assert units == []

    @pytest.mark.asyncio
    async def test_consumer_closing_early_marks_cancelled(self, scripted_backend: Any) -> None:
        backend = scripted_backend([[TextChunk("abc")]])
        orchestrator = GenerationOrchestrator(backend, ToolRegistry())
        session = StreamSession(query="q")
        stream = orchestrator.run(session)

        await anext(stream)
        await stream.aclose()

        assert session.state is SessionState.CANCELLED


class TestToolCalling:
    """Tests for the tool-calling loop."""

    @pytest.mark.asyncio
    async def test_tool_call_resolved_before_resuming(
        self, scripted_backend: Any, mock_weather_tool: AsyncMock
    ) -> None:
        """The tool result is fed back and raw call syntax never reaches the output."""
        backend = scripted_backend([[weather_request()], [TextChunk("It is sunny.")]])
        orchestrator = GenerationOrchestrator(backend, create_tool_registry(mock_weather_tool))
        session = StreamSession(query="Weather in Paris?")

        text = "".join(await collect(orchestrator.run(session)))

        assert text == "It is sunny."
        assert "get_weather_data" not in text
        assert "{" not in text
        mock_weather_tool.get_weather_data.assert_awaited_once_with(date="2026-10-18", city="Paris")

        second_context = backend.calls[1]["context"]
        assert isinstance(second_context[0], ToolCallRequest)
        assert isinstance(second_context[1], ToolCallResult)
        assert second_context[1].call_id == "call_1"
        assert session.tool_calls == ["get_weather_data"]

    @pytest.mark.asyncio
    async def test_tools_declared_to_backend(self, scripted_backend: Any, mock_weather_tool: AsyncMock) -> None:
        backend = scripted_backend([[TextChunk("ok")]])
        orchestrator = GenerationOrchestrator(backend, create_tool_registry(mock_weather_tool))

        await collect(orchestrator.stream("q", CancellationToken()))

        names = [tool["function"]["name"] for tool in backend.calls[0]["tools"]]
        assert names == ["get_weather_data"]

    @pytest.mark.asyncio
    async def test_tool_round_budget(self, scripted_backend: Any, mock_weather_tool: AsyncMock) -> None:
        """Once the budget is spent the final round disallows tools."""
        backend = scripted_backend(
            [
                [weather_request("call_1")],
                [weather_request("call_2")],
                [TextChunk("Final answer")],
            ]
        )
        orchestrator = GenerationOrchestrator(backend, create_tool_registry(mock_weather_tool), max_tool_rounds=2)

        text = "".join(await collect(orchestrator.stream("q", CancellationToken())))

        assert text == "Final answer"
        assert [call["tool_choice"] for call in backend.calls] == ["auto", "auto", "none"]

    @pytest.mark.asyncio
    async def test_tool_calls_ignored_after_budget(
        self, scripted_backend: Any, mock_weather_tool: AsyncMock
    ) -> None:
        backend = scripted_backend([[weather_request("call_1")], [weather_request("call_2")]])
        orchestrator = GenerationOrchestrator(backend, create_tool_registry(mock_weather_tool), max_tool_rounds=1)

        text = "".join(await collect(orchestrator.stream("q", CancellationToken())))

        assert text == APOLOGY_MESSAGE
        assert len(backend.calls) == 2
        assert mock_weather_tool.get_weather_data.await_count == 1

    @pytest.mark.asyncio
    async def test_tool_failure_becomes_text(self, scripted_backend: Any, mock_weather_tool: AsyncMock) -> None:
        """A raising tool does not break the stream."""
        mock_weather_tool.get_weather_data.side_effect = RuntimeError("weather down")
        backend = scripted_backend([[weather_request()], [TextChunk("Sorry, no weather.")]])
        orchestrator = GenerationOrchestrator(backend, create_tool_registry(mock_weather_tool))

        text = "".join(await collect(orchestrator.stream("q", CancellationToken())))

        assert text == "Sorry, no weather."
        result = backend.calls[1]["context"][1]
        assert isinstance(result, ToolCallResult)
        assert "failed" in result.text
