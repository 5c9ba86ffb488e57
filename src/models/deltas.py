"""
Content deltas exchanged between the model backend, the tool registry,
and the generation orchestrator.

A delta is one of three frozen records combined into the ``ContentDelta``
union. Consumers dispatch with ``match`` and finish with ``assert_never``
so a new variant fails type checking until every consumer handles it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, TypeAlias


@dataclass(frozen=True, slots=True)
class TextChunk:
    """A fragment of visible answer text."""

    text: str


@dataclass(frozen=True, slots=True)
class ToolCallRequest:
    """A request from the model to run a tool before generation continues.

    Attributes:
        call_id: Backend-assigned identifier echoed back with the result
        name: Declared tool name
        arguments: Parsed JSON arguments (empty when parsing failed)
        raw_arguments: Arguments exactly as streamed by the backend
    """

    call_id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    raw_arguments: str = ""


@dataclass(frozen=True, slots=True)
class ToolCallResult:
    """Textual outcome of a tool call, fed back to the model as context."""

    call_id: str
    name: str
    text: str


ContentDelta: TypeAlias = TextChunk | ToolCallRequest | ToolCallResult


__all__ = ["ContentDelta", "TextChunk", "ToolCallRequest", "ToolCallResult"]
