"""
Weather lookup tool backed by the OpenWeatherMap current-weather API.

The tool never raises to its caller: every failure (network error,
non-success status, missing fields) is turned into a sentence the model
can relay to the user. Only task cancellation propagates.
"""

from __future__ import annotations

from datetime import date as date_type

import httpx

from pydantic import ValidationError

from core.constants import WEATHER_TIMEOUT_SECONDS
from models.weather_models import WeatherApiResponse
from utils.logger import logger


class WeatherTool:
    """Current-weather lookup for a city.

    Args:
        http_client: Shared async HTTP client (owned by the caller)
        api_key: OpenWeatherMap API key
        base_url: API base URL, e.g. ``https://api.openweathermap.org/data/2.5``
    """

    def __init__(self, http_client: httpx.AsyncClient, api_key: str, base_url: str):
        if not api_key or not api_key.strip():
            raise ValueError("Weather API key is required")
        self._http_client = http_client
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")

    async def get_weather_data(self, date: str, city: str) -> str:
        """Get current weather data for a specific city on a given date.

        OpenWeatherMap's free tier has no historical data, so the current
        conditions are returned with a note when another date was asked for.

        Args:
            date: The date to get weather for (YYYY-MM-DD format)
            city: The city name to get weather for

        Returns:
            Human-readable weather report or an explanatory sentence
        """
        logger.info(f"Getting weather for {city} on {date}")

        try:
            response = await self._http_client.get(
                f"{self._base_url}/weather",
                params={"q": city, "appid": self._api_key, "units": "metric"},
                timeout=WEATHER_TIMEOUT_SECONDS,
            )

            if not response.is_success:
                logger.warning(f"Weather API returned {response.status_code} for {city}")
                return f"Unable to get weather data for {city}. Please check the city name."

            weather = WeatherApiResponse.model_validate_json(response.content)
        except (httpx.HTTPError, ValidationError) as e:
            logger.error(f"Error getting weather for {city}: {e}", exc_info=True)
            return f"Sorry, I couldn't get weather information for {city} right now."

        if weather.main is None:
            return f"No weather data available for {city}."

        lines = [
            f"Weather in {weather.name or city}:",
            f"Temperature: {weather.main.temp:.1f}°C (feels like {weather.main.feels_like:.1f}°C)",
            f"Condition: {weather.condition}",
            f"Humidity: {weather.main.humidity}%",
        ]
        if weather.wind is not None:
            lines.append(f"Wind: {weather.wind.speed:.1f} m/s")
        if not _is_today(date):
            lines.append(f"Note: only current conditions are available; {date} could not be looked up.")

        logger.info(f"Weather data retrieved for {city}")
        return "\n".join(lines)


def _is_today(value: str) -> bool:
    try:
        return date_type.fromisoformat(value.strip()) == date_type.today()
    except ValueError:
        return False


__all__ = ["WeatherTool"]
