"""
Tools Module - Function Calling Capabilities for the Streaming Agent
====================================================================

Modules:
    weather: Current-weather lookup against OpenWeatherMap
    registry: Tool declarations (OpenAI function schema) and dispatch

Tool dispatch never raises: unknown tools, malformed arguments and
upstream failures all come back as text the model can relay.
"""

from tools.registry import WEATHER_TOOL_DEFINITION, ToolRegistry, create_tool_registry
from tools.weather import WeatherTool

__all__ = [
    "WEATHER_TOOL_DEFINITION",
    "ToolRegistry",
    "WeatherTool",
    "create_tool_registry",
]
