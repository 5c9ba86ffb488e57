"""
Core Application Layer - Generation Orchestration and Configuration
===================================================================

Provides the business logic that turns one query into a character stream.

Modules:
    constants: Configuration values and Pydantic settings validation
    prompts: System instructions and the user prompt template
    sessions: Stream session records and the per-connection session registry
    orchestrator: Tool-calling generation loop with degradation and cancellation

Key Components:

Generation Orchestrator (orchestrator.py):
    Submits the prompt to the model backend, yields text one character at a
    time, suspends emission while tool calls are resolved, and streams a fixed
    apology when the backend fails before producing any text.

Stream Sessions (sessions.py):
    One StreamSession per query. The registry guarantees a single active
    session per connection by cancelling the previous one first.

Configuration (constants.py):
    Centralized configuration using Pydantic Settings for validation:
    - Azure OpenAI or OpenAI credentials and deployment
    - Weather API key and base URL
    - Sampling parameters, query limits, and log rotation sizes

See Also:
    :mod:`api.routes.stream`: HTTP endpoint that drives the orchestrator
    :mod:`tools.registry`: Tools advertised to the model backend
"""
