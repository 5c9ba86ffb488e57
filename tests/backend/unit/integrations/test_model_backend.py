"""Tests for the chat completions model backend adapter."""

from __future__ import annotations

import json

from collections.abc import AsyncIterator
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest

from core.prompts import Prompt
from integrations.model_backend import OpenAIChatBackend, SamplingParams, build_messages
from models.deltas import TextChunk, ToolCallRequest, ToolCallResult
from tools.registry import WEATHER_TOOL_DEFINITION

PROMPT = Prompt(system="system text", user="You are a helpful AI assistant. Please respond to: hi")


def chunk(content: str | None = None, tool_calls: list[Any] | None = None) -> SimpleNamespace:
    delta = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta)])


def tool_fragment(index: int, call_id: str | None = None, name: str | None = None, args: str | None = None) -> Any:
    return SimpleNamespace(index=index, id=call_id, function=SimpleNamespace(name=name, arguments=args))


class FakeStream:
    """Async-iterable stand-in for the SDK's AsyncStream."""

    def __init__(self, chunks: list[Any]):
        self._chunks = chunks
        self.closed = False

    def __aiter__(self) -> AsyncIterator[Any]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Any]:
        for item in self._chunks:
            if isinstance(item, BaseException):
                raise item
            yield item

    async def close(self) -> None:
        self.closed = True


def make_backend(stream: FakeStream) -> tuple[OpenAIChatBackend, Mock]:
    client = Mock()
    client.chat.completions.create = AsyncMock(return_value=stream)
    return OpenAIChatBackend(client, model="gpt-4o-test"), client


async def collect(backend: OpenAIChatBackend, tools: list[dict[str, Any]] | None = None) -> list[Any]:
    return [
        delta
        async for delta in backend.submit_prompt(PROMPT, [], tools if tools is not None else [], SamplingParams())
    ]


class TestBuildMessages:
    """Tests for translating deltas into chat messages."""

    def test_prompt_only(self) -> None:
        messages = build_messages(PROMPT, [])

        assert messages == [
            {"role": "system", "content": "system text"},
            {"role": "user", "content": PROMPT.user},
        ]

    def test_tool_round_grouping(self) -> None:
        """Text and tool calls from one round share an assistant message."""
        context = [
            TextChunk("Let me check. "),
            ToolCallRequest(call_id="call_1", name="get_weather_data", arguments={"city": "Oslo"}, raw_arguments=""),
            ToolCallResult(call_id="call_1", name="get_weather_data", text="Weather in Oslo: cold"),
            TextChunk("It is "),
            TextChunk("cold."),
        ]

        messages = build_messages(PROMPT, context)

        assert messages[2] == {
            "role": "assistant",
            "content": "Let me check. ",
            "tool_calls": [
                {
                    "id": "call_1",
                    "type": "function",
                    "function": {"name": "get_weather_data", "arguments": json.dumps({"city": "Oslo"})},
                }
            ],
        }
        assert messages[3] == {"role": "tool", "tool_call_id": "call_1", "content": "Weather in Oslo: cold"}
        assert messages[4] == {"role": "assistant", "content": "It is cold."}
        assert len(messages) == 5

    def test_tool_call_without_text_has_null_content(self) -> None:
        context = [ToolCallRequest(call_id="c", name="get_weather_data", raw_arguments='{"city": "Rome"}')]

        messages = build_messages(PROMPT, context)

        assert messages[2]["content"] is None
        assert messages[2]["tool_calls"][0]["function"]["arguments"] == '{"city": "Rome"}'


class TestOpenAIChatBackend:
    """Tests for streaming and tool-call accumulation."""

    @pytest.mark.asyncio
    async def test_request_parameters(self) -> None:
        backend, client = make_backend(FakeStream([chunk("hi")]))

        await collect(backend, tools=[WEATHER_TOOL_DEFINITION])

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-test"
        assert kwargs["stream"] is True
        assert kwargs["max_tokens"] == 2000
        assert kwargs["temperature"] == 0.7
        assert kwargs["top_p"] == 0.9
        assert kwargs["tools"] == [WEATHER_TOOL_DEFINITION]
        assert kwargs["tool_choice"] == "auto"

    @pytest.mark.asyncio
    async def test_no_tools_omits_tool_choice(self) -> None:
        backend, client = make_backend(FakeStream([chunk("hi")]))

        await collect(backend)

        kwargs = client.chat.completions.create.call_args.kwargs
        assert "tools" not in kwargs
        assert "tool_choice" not in kwargs

    @pytest.mark.asyncio
    async def test_text_deltas_pass_through(self) -> None:
        stream = FakeStream([chunk("Hel"), SimpleNamespace(choices=[]), chunk("lo"), chunk(None)])
        backend, _ = make_backend(stream)

        deltas = await collect(backend)

        assert deltas == [TextChunk("Hel"), TextChunk("lo")]
        assert stream.closed

    @pytest.mark.asyncio
    async def test_tool_call_fragments_accumulated(self) -> None:
        stream = FakeStream(
            [
                chunk(tool_calls=[tool_fragment(0, "call_a", "get_weather_data", '{"ci')]),
                chunk(tool_calls=[tool_fragment(1, "call_b", "get_weather_data", "")]),
                chunk(tool_calls=[tool_fragment(0, args='ty": "Paris", "date": "2026-10-18"}')]),
                chunk(tool_calls=[tool_fragment(1, args='{"city": "Rome", "date": "2026-10-18"}')]),
            ]
        )
        backend, _ = make_backend(stream)

        deltas = await collect(backend, tools=[WEATHER_TOOL_DEFINITION])

        assert [d.call_id for d in deltas] == ["call_a", "call_b"]
        assert deltas[0].arguments == {"city": "Paris", "date": "2026-10-18"}
        assert deltas[1].arguments["city"] == "Rome"
        assert deltas[0].raw_arguments == '{"city": "Paris", "date": "2026-10-18"}'

    @pytest.mark.asyncio
    async def test_malformed_arguments_kept_raw(self) -> None:
        stream = FakeStream([chunk(tool_calls=[tool_fragment(0, "call_a", "get_weather_data", '{"city": ')])])
        backend, _ = make_backend(stream)

        (delta,) = await collect(backend)

        assert delta.arguments == {}
        assert delta.raw_arguments == '{"city": '

    @pytest.mark.asyncio
    async def test_nameless_fragment_dropped(self) -> None:
        stream = FakeStream([chunk(tool_calls=[tool_fragment(0, "call_a", None, "{}")])])
        backend, _ = make_backend(stream)

        assert await collect(backend) == []

    @pytest.mark.asyncio
    async def test_stream_closed_on_error(self) -> None:
        stream = FakeStream([chunk("partial"), RuntimeError("reset")])
        backend, _ = make_backend(stream)

        with pytest.raises(RuntimeError):
            await collect(backend)

        assert stream.closed

    @pytest.mark.asyncio
    async def test_create_failure_propagates(self) -> None:
        client = Mock()
        client.chat.completions.create = AsyncMock(side_effect=RuntimeError("401"))
        backend = OpenAIChatBackend(client, model="m")

        with pytest.raises(RuntimeError, match="401"):
            await collect(backend)
