from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from core.orchestrator import GenerationOrchestrator
from core.sessions import SessionRegistry


def get_orchestrator(request: Request) -> GenerationOrchestrator:
    """Get the generation orchestrator from application state."""
    return request.app.state.orchestrator


def get_session_registry(request: Request) -> SessionRegistry:
    """Get the per-connection stream session registry from application state."""
    return request.app.state.session_registry


# Type aliases for cleaner route signatures
Orchestrator = Annotated[GenerationOrchestrator, Depends(get_orchestrator)]
Sessions = Annotated[SessionRegistry, Depends(get_session_registry)]
