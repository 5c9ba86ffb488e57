"""
Pydantic models for the subset of the OpenWeatherMap current-weather
response that the weather tool reads.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class MainData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    temp: float
    feels_like: float
    humidity: int


class WeatherInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    description: str = ""


class WindInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    speed: float


class WeatherApiResponse(BaseModel):
    """Current weather for one city."""

    model_config = ConfigDict(extra="ignore")

    main: MainData | None = None
    weather: list[WeatherInfo] = Field(default_factory=list)
    wind: WindInfo | None = None
    name: str = ""

    @property
    def condition(self) -> str:
        """First condition description, or "Unknown"."""
        if self.weather and self.weather[0].description:
            return self.weather[0].description
        return "Unknown"


__all__ = ["MainData", "WeatherApiResponse", "WeatherInfo", "WindInfo"]
