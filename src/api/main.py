from __future__ import annotations

import os

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware.exception_handlers import ConfigurationError, register_exception_handlers
from api.middleware.request_context import RequestContextMiddleware
from api.routes import health, stream
from core.constants import APP_NAME, APP_VERSION, Settings, get_settings
from core.orchestrator import GenerationOrchestrator
from core.sessions import SessionRegistry
from integrations.model_backend import OpenAIChatBackend
from tools.registry import ToolRegistry, create_tool_registry
from tools.weather import WeatherTool
from utils.client_factory import create_http_client, create_openai_client
from utils.logger import configure_uvicorn_logging, logger

# Load environment variables from src/.env at module load time
env_path = os.path.join(os.path.dirname(os.path.dirname(__file__)), ".env")
load_dotenv(env_path)


@dataclass
class ServiceComponents:
    """Long-lived objects shared by every request."""

    orchestrator: GenerationOrchestrator
    session_registry: SessionRegistry
    tool_registry: ToolRegistry
    http_client: httpx.AsyncClient | None = None


def load_settings() -> Settings:
    """Load settings, turning validation failures into a ConfigurationError."""
    try:
        return get_settings()
    except ValueError as e:
        raise ConfigurationError(f"Invalid configuration: {e}", cause=e) from e


def build_components(settings: Settings) -> ServiceComponents:
    """Wire the model backend, tools and orchestrator from settings."""
    http_client = create_http_client(enable_logging=settings.http_request_logging)

    if settings.api_provider == "azure":
        logger.info(f"Configuring Azure OpenAI client (endpoint: {settings.azure_endpoint_str})")
    else:
        logger.info("Configuring OpenAI client")
    client = create_openai_client(settings, http_client=http_client)
    backend = OpenAIChatBackend(client, model=settings.model_name)

    weather_tool = WeatherTool(
        http_client=http_client,
        api_key=settings.weather_api_key or "",
        base_url=settings.weather_base_url_str,
    )
    tool_registry = create_tool_registry(weather_tool)
    logger.info(f"Registered tools: {', '.join(tool_registry.names)}")

    return ServiceComponents(
        orchestrator=GenerationOrchestrator(backend, tool_registry),
        session_registry=SessionRegistry(),
        tool_registry=tool_registry,
        http_client=http_client,
    )


def create_app(settings: Settings | None = None, components: ServiceComponents | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Validated settings (loaded from the environment when omitted)
        components: Prebuilt services; built from ``settings`` at startup when omitted
    """
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan: startup and shutdown."""
        services = components or build_components(settings)
        app.state.orchestrator = services.orchestrator
        app.state.session_registry = services.session_registry
        app.state.tool_registry = services.tool_registry
        logger.info(f"{APP_NAME} {APP_VERSION} started ({settings.environment})")

        try:
            yield
        finally:
            await services.session_registry.cancel_all(reason="shutdown")
            if services.http_client is not None:
                await services.http_client.aclose()
            logger.info(f"{APP_NAME} shutdown complete")

    app = FastAPI(title=APP_NAME, version=APP_VERSION, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)

    register_exception_handlers(app)

    # Routes
    app.include_router(health.router, tags=["health"])
    app.include_router(stream.router, tags=["stream"])

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    configure_uvicorn_logging()
    settings = get_settings()
    uvicorn.run("api.main:app", host=settings.api_host, port=settings.api_port, log_config=None)


if __name__ == "__main__":
    run()
