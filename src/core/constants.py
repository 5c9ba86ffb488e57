"""
Constants and configuration for the streaming agent service.
Centralizes all magic numbers and configuration values.
Includes Pydantic validation for environment variables.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ============================================================================
# Project Paths
# ============================================================================

#: Project root directory (parent of src/)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# ============================================================================
# Application Metadata
# ============================================================================

APP_NAME = "Streaming Agent API"
APP_VERSION = "1.0.0"

# ============================================================================
# Query Configuration
# ============================================================================

#: Maximum number of characters accepted in a single query.
#: Longer queries are rejected with 400 before any session starts.
MAX_QUERY_LENGTH = 2000

# ============================================================================
# Generation Configuration
# ============================================================================

#: Upper bound on generated tokens per backend round.
MAX_OUTPUT_TOKENS = 2000

#: Fixed sampling temperature for every session.
SAMPLING_TEMPERATURE = 0.7

#: Fixed nucleus sampling value for every session.
SAMPLING_TOP_P = 0.9

#: Maximum number of tool-calling rounds per session.
#: After this many rounds the backend is asked to answer without tools,
#: which bounds the request/response loop.
MAX_TOOL_ROUNDS = 8

#: Text streamed in place of an answer when generation fails before the
#: first character has been emitted.
APOLOGY_MESSAGE = "Sorry, I encountered an error. Please try again."

#: Emit a debug log line every N streamed characters.
STREAM_PROGRESS_LOG_INTERVAL = 100

# ============================================================================
# Weather Tool Configuration
# ============================================================================

#: Default OpenWeatherMap base URL (current weather endpoint lives under it).
DEFAULT_WEATHER_BASE_URL = "https://api.openweathermap.org/data/2.5"

#: Timeout in seconds for a single weather lookup.
WEATHER_TIMEOUT_SECONDS = 10.0

# ============================================================================
# HTTP Streaming Configuration
# ============================================================================

#: Media type of the streamed answer body.
STREAM_MEDIA_TYPE = "text/plain; charset=utf-8"

#: Headers sent with every streamed answer.
#: X-Accel-Buffering disables proxy buffering (nginx and Azure front ends).
STREAM_HEADERS: dict[str, str] = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

#: Media type for structured error bodies.
PROBLEM_MEDIA_TYPE = "application/problem+json"

# ============================================================================
# Logging Configuration
# ============================================================================

#: Maximum size in bytes for log files before rotation (10MB).
LOG_MAX_SIZE = 10 * 1024 * 1024

#: Number of session log backups to retain during rotation.
LOG_BACKUP_COUNT_SESSIONS = 5

#: Number of error log backups to retain during rotation.
LOG_BACKUP_COUNT_ERRORS = 3

#: Maximum characters to show in log previews for queries and answers.
LOG_PREVIEW_LENGTH = 50

#: Length of generated stream session IDs (hex characters).
SESSION_ID_LENGTH = 8

# ============================================================================
# Environment Configuration with Pydantic Validation
# ============================================================================


class Settings(BaseSettings):
    """Environment settings with validation.

    Loads from environment variables and .env file.
    Validates at startup to fail fast on configuration errors.
    Supports both Azure OpenAI and base OpenAI API providers.
    """

    # API provider selection
    api_provider: str = Field(default="azure", description="API provider: 'azure' or 'openai'")

    # Azure OpenAI settings (required if provider=azure)
    azure_openai_api_key: str | None = Field(default=None, description="Azure OpenAI API key for authentication")
    azure_openai_endpoint: HttpUrl | None = Field(default=None, description="Azure OpenAI endpoint URL")
    azure_openai_deployment: str | None = Field(default=None, description="Azure OpenAI model deployment name")
    azure_openai_api_version: str = Field(default="2024-10-21", description="Azure OpenAI API version")

    # Base OpenAI settings (required if provider=openai)
    openai_api_key: str | None = Field(default=None, description="OpenAI API key for authentication")
    openai_model: str = Field(default="gpt-4o-mini", description="OpenAI model name")

    # Weather tool
    weather_api_key: str | None = Field(default=None, description="OpenWeatherMap API key")
    weather_api_base_url: HttpUrl = Field(
        default=HttpUrl(DEFAULT_WEATHER_BASE_URL),
        description="Base URL for the weather API",
    )

    # Optional debug setting
    debug: bool = Field(default=False, description="Enable debug logging")

    # HTTP request/response logging (for debugging backend issues)
    http_request_logging: bool = Field(default=False, description="Enable HTTP request/response logging")

    # Query/answer previews in logs (redacted)
    enable_content_logging: bool = Field(default=False, description="Include redacted content previews in logs")

    # API server
    environment: str = Field(default="development", description="Deployment environment name")
    api_port: int = Field(default=8000, description="FastAPI port")
    api_host: str = Field(default="0.0.0.0", description="FastAPI host")
    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"], description="Allowed CORS origins")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,  # Allow both AZURE_OPENAI_API_KEY and azure_openai_api_key
        extra="ignore",  # Ignore extra environment variables
    )

    @field_validator("api_provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        """Validate API provider selection."""
        value = v.lower()
        if value not in ["azure", "openai"]:
            raise ValueError("api_provider must be 'azure' or 'openai'")
        return value

    @field_validator("azure_openai_endpoint")
    @classmethod
    def ensure_endpoint_format(cls, v: HttpUrl | None) -> HttpUrl | None:
        """Ensure endpoint URL ends with trailing slash for OpenAI client."""
        if v is None:
            return None
        url_str = str(v)
        if not url_str.endswith("/"):
            return HttpUrl(url_str + "/")
        return v

    @field_validator("azure_openai_api_key", "openai_api_key")
    @classmethod
    def validate_api_key(cls, v: str | None) -> str | None:
        """Basic validation of model API key format."""
        if v is not None and len(v.strip()) < 10:
            raise ValueError("Invalid API key format")
        return v

    @field_validator("weather_api_key")
    @classmethod
    def validate_weather_api_key(cls, v: str | None) -> str | None:
        """Reject whitespace-only weather keys."""
        if v is not None and not v.strip():
            raise ValueError("weather_api_key cannot be blank")
        return v

    def model_post_init(self, __context: Any) -> None:
        """Validate that required keys are present for selected provider."""
        if self.api_provider == "azure":
            if not self.azure_openai_api_key:
                raise ValueError("azure_openai_api_key is required when api_provider='azure'")
            if not self.azure_openai_endpoint:
                raise ValueError("azure_openai_endpoint is required when api_provider='azure'")
            if not self.azure_openai_deployment:
                raise ValueError("azure_openai_deployment is required when api_provider='azure'")
        elif self.api_provider == "openai":
            if not self.openai_api_key:
                raise ValueError("openai_api_key is required when api_provider='openai'")
        if not self.weather_api_key:
            raise ValueError("weather_api_key is required")

    @property
    def azure_endpoint_str(self) -> str:
        """Get endpoint as string for OpenAI client."""
        if self.azure_openai_endpoint is None:
            return ""
        return str(self.azure_openai_endpoint)

    @property
    def weather_base_url_str(self) -> str:
        """Weather base URL without trailing slash."""
        return str(self.weather_api_base_url).rstrip("/")

    @property
    def model_name(self) -> str:
        """Deployment (Azure) or model (OpenAI) name sent with every request."""
        if self.api_provider == "azure":
            return self.azure_openai_deployment or ""
        return self.openai_model


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses LRU cache to ensure we only load and validate settings once.
    This function will raise validation errors at startup if config is invalid.
    Pydantic will load from environment variables automatically.
    """
    return Settings()
