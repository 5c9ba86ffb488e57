"""Tests for prompt utilities."""

from __future__ import annotations

from datetime import date

from core.prompts import SYSTEM_INSTRUCTIONS, build_prompt


def test_build_prompt_substitutes_date() -> None:
    prompt = build_prompt("Weather in Paris tomorrow?", today=date(2026, 3, 14))

    assert "Today's date is 2026-03-14." in prompt.system
    assert "%%TODAY%%" not in prompt.system


def test_build_prompt_wraps_query() -> None:
    prompt = build_prompt("What is 2+2?", today=date(2026, 1, 1))

    assert prompt.user == "You are a helpful AI assistant. Please respond to: What is 2+2?"


def test_build_prompt_defaults_to_today() -> None:
    assert date.today().isoformat() in build_prompt("hi").system


def test_instructions_mention_weather_tool() -> None:
    assert "get_weather_data" in SYSTEM_INSTRUCTIONS
    assert "YYYY-MM-DD" in SYSTEM_INSTRUCTIONS
