"""Client configuration loaded from ``STREAM_CLIENT_*`` environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

#: Default server address for local development.
DEFAULT_BASE_URL = "http://localhost:8000"


class ClientSettings(BaseSettings):
    """Streaming client settings."""

    base_url: HttpUrl = Field(default=HttpUrl(DEFAULT_BASE_URL), description="Streaming server base URL")
    # The server may pause between characters while a tool call is resolved
    read_timeout: float = Field(default=300.0, gt=0, description="Max gap between body chunks (seconds)")
    connect_timeout: float = Field(default=10.0, gt=0, description="Time to establish the connection (seconds)")

    model_config = SettingsConfigDict(
        env_prefix="STREAM_CLIENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def base_url_str(self) -> str:
        """Base URL without trailing slash."""
        return str(self.base_url).rstrip("/")


@lru_cache
def get_client_settings() -> ClientSettings:
    """Get cached client settings instance."""
    return ClientSettings()


__all__ = ["DEFAULT_BASE_URL", "ClientSettings", "get_client_settings"]
