"""
Model backend adapter over the OpenAI chat completions streaming API.

``submit_prompt`` turns one backend round into ContentDeltas: text deltas
are yielded as they arrive; tool-call fragments (name and JSON arguments
split across many chunks) are buffered per call index and yielded as
complete ToolCallRequests once the round's stream ends. The caller owns
the conversation context and passes earlier rounds' deltas back in.
"""

from __future__ import annotations

import json

from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass
from typing import Any, Literal, Protocol, assert_never

from openai import AsyncOpenAI

from core.constants import MAX_OUTPUT_TOKENS, SAMPLING_TEMPERATURE, SAMPLING_TOP_P
from core.prompts import Prompt
from models.deltas import ContentDelta, TextChunk, ToolCallRequest, ToolCallResult
from utils.logger import logger

ToolChoice = Literal["auto", "none"]


@dataclass(frozen=True, slots=True)
class SamplingParams:
    """Fixed sampling parameters applied to every round of a session."""

    max_tokens: int = MAX_OUTPUT_TOKENS
    temperature: float = SAMPLING_TEMPERATURE
    top_p: float = SAMPLING_TOP_P


class ModelBackend(Protocol):
    """Anything that can stream one generation round as ContentDeltas."""

    def submit_prompt(
        self,
        prompt: Prompt,
        context: Sequence[ContentDelta],
        tools: Sequence[dict[str, Any]],
        sampling: SamplingParams,
        tool_choice: ToolChoice = "auto",
    ) -> AsyncIterator[ContentDelta]: ...


def build_messages(prompt: Prompt, context: Sequence[ContentDelta]) -> list[dict[str, Any]]:
    """Translate the prompt plus earlier deltas into chat completion messages.

    Consecutive text and tool-call requests from one round collapse into a
    single assistant message; each ToolCallResult becomes a ``tool`` message.
    """
    messages: list[dict[str, Any]] = [
        {"role": "system", "content": prompt.system},
        {"role": "user", "content": prompt.user},
    ]
    assistant: dict[str, Any] | None = None

    for delta in context:
        match delta:
            case TextChunk(text=text):
                if assistant is None:
                    assistant = {"role": "assistant", "content": ""}
                    messages.append(assistant)
                assistant["content"] = (assistant["content"] or "") + text
            case ToolCallRequest(call_id=call_id, name=name, raw_arguments=raw_arguments, arguments=arguments):
                if assistant is None:
                    assistant = {"role": "assistant", "content": None}
                    messages.append(assistant)
                assistant.setdefault("tool_calls", []).append(
                    {
                        "id": call_id,
                        "type": "function",
                        "function": {"name": name, "arguments": raw_arguments or json.dumps(arguments)},
                    }
                )
            case ToolCallResult(call_id=call_id, text=text):
                messages.append({"role": "tool", "tool_call_id": call_id, "content": text})
                assistant = None
            case _:
                assert_never(delta)

    return messages


def _parse_arguments(raw: str) -> dict[str, Any]:
    if not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


class OpenAIChatBackend:
    """Streams chat completions from Azure OpenAI or OpenAI.

    Args:
        client: Configured async OpenAI client (Azure or OpenAI)
        model: Deployment name (Azure) or model name (OpenAI)
    """

    def __init__(self, client: AsyncOpenAI, model: str):
        self._client = client
        self._model = model

    async def submit_prompt(
        self,
        prompt: Prompt,
        context: Sequence[ContentDelta],
        tools: Sequence[dict[str, Any]],
        sampling: SamplingParams,
        tool_choice: ToolChoice = "auto",
    ) -> AsyncIterator[ContentDelta]:
        """Stream one round. Raises whatever the OpenAI client raises."""
        request: dict[str, Any] = {
            "model": self._model,
            "messages": build_messages(prompt, context),
            "max_tokens": sampling.max_tokens,
            "temperature": sampling.temperature,
            "top_p": sampling.top_p,
            "stream": True,
        }
        if tools:
            request["tools"] = list(tools)
            request["tool_choice"] = tool_choice

        stream = await self._client.chat.completions.create(**request)

        # Tool-call fragments keyed by choice index: {"id", "name", "arguments": [parts]}
        tool_buf: dict[int, dict[str, Any]] = {}
        chunk_count = 0
        try:
            async for chunk in stream:
                chunk_count += 1
                # Azure sends content-filter metadata chunks without choices
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta

                if delta.content:
                    yield TextChunk(text=delta.content)

                for tc in delta.tool_calls or []:
                    buf = tool_buf.setdefault(tc.index, {"id": None, "name": None, "arguments": []})
                    if tc.id:
                        buf["id"] = tc.id
                    fn = tc.function
                    if fn is not None and fn.name:
                        buf["name"] = fn.name
                    if fn is not None and fn.arguments:
                        buf["arguments"].append(fn.arguments)
        finally:
            await stream.close()

        logger.debug(f"Backend round finished after {chunk_count} chunks with {len(tool_buf)} tool calls")

        for idx in sorted(tool_buf):
            buf = tool_buf[idx]
            if not buf["name"]:
                logger.warning(f"Dropping tool call fragment without a name at index {idx}")
                continue
            raw_arguments = "".join(buf["arguments"])
            yield ToolCallRequest(
                call_id=buf["id"] or f"call_{idx}",
                name=buf["name"],
                arguments=_parse_arguments(raw_arguments),
                raw_arguments=raw_arguments,
            )


__all__ = ["ModelBackend", "OpenAIChatBackend", "SamplingParams", "ToolChoice", "build_messages"]
