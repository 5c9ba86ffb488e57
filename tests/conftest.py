"""Shared test fixtures for the streaming agent test suite.

This module provides common fixtures used across all test modules,
including a scripted model backend and valid settings.
"""

from __future__ import annotations

import os

from collections.abc import AsyncIterator, Generator, Sequence
from typing import Any
from unittest.mock import AsyncMock

import pytest

# ============================================================================
# EARLY INITIALIZATION: Runs before test collection
# ============================================================================

TEST_ENV = {
    "API_PROVIDER": "azure",
    "AZURE_OPENAI_API_KEY": "test-azure-key-0123456789",
    "AZURE_OPENAI_ENDPOINT": "https://test.openai.azure.com",
    "AZURE_OPENAI_DEPLOYMENT": "gpt-4o-test",
    "WEATHER_API_KEY": "test-weather-key",
    "ENVIRONMENT": "testing",
    "LOG_TO_FILES": "false",
}


def pytest_configure(config: pytest.Config) -> None:
    """Provide valid settings before any test module is imported.

    utils.logger builds its handlers at import time and api.main loads
    settings at import time, so the environment must be in place first.
    """
    for key, value in TEST_ENV.items():
        os.environ.setdefault(key, value)


# ============================================================================
# Test Isolation: Settings Management
# ============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Clear cached settings so tests that change the environment stay isolated."""
    from client.config import get_client_settings
    from core.constants import get_settings

    get_settings.cache_clear()
    get_client_settings.cache_clear()
    yield
    get_settings.cache_clear()
    get_client_settings.cache_clear()


# ============================================================================
# Scripted Model Backend
# ============================================================================


class ScriptedBackend:
    """Model backend that replays one scripted list of deltas per round.

    A round entry may be an Exception instance; it is raised after the
    deltas listed before it (or immediately when it is the first entry).
    """

    def __init__(self, rounds: list[list[Any]]):
        self.rounds = list(rounds)
        self.calls: list[dict[str, Any]] = []

    async def submit_prompt(
        self,
        prompt: Any,
        context: Sequence[Any],
        tools: Sequence[dict[str, Any]],
        sampling: Any,
        tool_choice: str = "auto",
    ) -> AsyncIterator[Any]:
        self.calls.append(
            {"prompt": prompt, "context": list(context), "tools": list(tools), "tool_choice": tool_choice}
        )
        script = self.rounds.pop(0) if self.rounds else []
        for item in script:
            if isinstance(item, BaseException):
                raise item
            yield item


@pytest.fixture
def scripted_backend() -> type[ScriptedBackend]:
    """The ScriptedBackend class (tests build it with their own rounds)."""
    return ScriptedBackend


@pytest.fixture
def mock_weather_tool() -> AsyncMock:
    """Weather tool whose lookup returns a fixed report."""
    tool = AsyncMock()
    tool.get_weather_data = AsyncMock(return_value="Weather in Paris:\nTemperature: 20.0°C")
    return tool
