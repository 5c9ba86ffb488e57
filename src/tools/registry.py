"""
Tool registry for the generation orchestrator.

Holds the function-calling declarations advertised to the model backend
and dispatches ToolCallRequests to their implementations. Dispatch never
raises: unknown tools, malformed arguments and implementation failures all
come back as a ToolCallResult whose text explains what went wrong, so the
orchestrator can fold every outcome back into the model's context the same
way.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from models.deltas import ToolCallRequest, ToolCallResult
from tools.weather import WeatherTool
from utils.logger import logger

#: Name under which the weather lookup is declared to the model.
WEATHER_TOOL_NAME = "get_weather_data"

# Tool definitions for the model backend (OpenAI function calling schema)
WEATHER_TOOL_DEFINITION: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": WEATHER_TOOL_NAME,
        "description": "Get current weather data for a specific city on a given date",
        "parameters": {
            "type": "object",
            "properties": {
                "date": {
                    "type": "string",
                    "description": "The date to get weather for (YYYY-MM-DD format)",
                },
                "city": {
                    "type": "string",
                    "description": "The city name to get weather for",
                },
            },
            "required": ["date", "city"],
        },
    },
}

ToolHandler = Callable[[dict[str, Any]], Awaitable[str]]


class ToolRegistry:
    """Declared tools and their async handlers."""

    def __init__(self) -> None:
        self._definitions: list[dict[str, Any]] = []
        self._handlers: dict[str, ToolHandler] = {}

    def register(self, definition: dict[str, Any], handler: ToolHandler) -> None:
        """Register a tool declaration and the coroutine that implements it."""
        name = definition["function"]["name"]
        if name in self._handlers:
            raise ValueError(f"Tool '{name}' is already registered")
        self._definitions.append(definition)
        self._handlers[name] = handler

    @property
    def definitions(self) -> list[dict[str, Any]]:
        """Declarations in registration order."""
        return list(self._definitions)

    @property
    def names(self) -> list[str]:
        return list(self._handlers)

    async def invoke(self, request: ToolCallRequest) -> ToolCallResult:
        """Run the tool named by ``request`` and wrap its text.

        Args:
            request: Tool call assembled by the model backend

        Returns:
            ToolCallResult carrying the tool output or a degraded explanation
        """
        handler = self._handlers.get(request.name)
        if handler is None:
            logger.warning(f"Model requested unknown tool: {request.name}")
            text = f"The tool '{request.name}' is not available."
        elif request.raw_arguments.strip() and not request.arguments:
            logger.warning(f"Malformed arguments for {request.name}: {request.raw_arguments[:100]}")
            text = f"The arguments for '{request.name}' could not be understood."
        else:
            try:
                text = await handler(request.arguments)
            except Exception as e:
                logger.error(f"Tool {request.name} failed: {e}", exc_info=True)
                text = f"The tool '{request.name}' failed to produce a result."

        logger.log_tool_call(request.name, request.arguments, text)
        return ToolCallResult(call_id=request.call_id, name=request.name, text=text)


def create_weather_handler(weather_tool: WeatherTool) -> ToolHandler:
    """Adapt WeatherTool to the registry's ``dict -> str`` handler shape."""

    async def get_weather_data(arguments: dict[str, Any]) -> str:
        date = arguments.get("date")
        city = arguments.get("city")
        if not isinstance(city, str) or not city.strip():
            return "A city name is required to look up the weather."
        if not isinstance(date, str) or not date.strip():
            return f"A date (YYYY-MM-DD) is required to look up the weather for {city}."
        return await weather_tool.get_weather_data(date=date.strip(), city=city.strip())

    return get_weather_data


def create_tool_registry(weather_tool: WeatherTool) -> ToolRegistry:
    """Build the registry with every tool the agent may call."""
    registry = ToolRegistry()
    registry.register(WEATHER_TOOL_DEFINITION, create_weather_handler(weather_tool))
    return registry


__all__ = [
    "WEATHER_TOOL_DEFINITION",
    "WEATHER_TOOL_NAME",
    "ToolHandler",
    "ToolRegistry",
    "create_tool_registry",
    "create_weather_handler",
]
