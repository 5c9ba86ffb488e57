from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Request

from core.constants import APP_NAME, APP_VERSION, MAX_QUERY_LENGTH, get_settings

router = APIRouter()


@router.get("/health")
async def health_check(request: Request) -> dict[str, Any]:
    """Health check endpoint with stream session statistics."""
    registry = getattr(request.app.state, "session_registry", None)
    return {
        "status": "healthy",
        "version": APP_VERSION,
        "active_streams": len(registry) if registry is not None else 0,
    }


@router.get("/health/live")
async def liveness_check() -> dict[str, Any]:
    """Kubernetes-style liveness probe (just confirms process is running)."""
    return {"alive": True}


@router.get("/capabilities")
async def capabilities(request: Request) -> dict[str, Any]:
    """Static descriptor of what the service can do."""
    tools = getattr(request.app.state, "tool_registry", None)
    return {
        "streaming": True,
        "endpoint": "/stream",
        "media_type": "text/plain; charset=utf-8",
        "max_query_length": MAX_QUERY_LENGTH,
        "tools": tools.names if tools is not None else [],
    }


@router.get("/info")
async def info() -> dict[str, Any]:
    """Application name, version and environment."""
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "environment": get_settings().environment,
        "timestamp": datetime.now(UTC).isoformat(),
    }
