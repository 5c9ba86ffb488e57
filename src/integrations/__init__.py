"""
Integrations Module - Model Backend
===================================

Modules:
    model_backend: Chat completions streaming adapter yielding ContentDeltas

The adapter converts the orchestrator's prompt and accumulated context into
chat completion messages, streams the response, and reassembles tool-call
fragments (split across many chunks) into complete ToolCallRequests.

See Also:
    :mod:`core.orchestrator`: Consumer of the backend's delta stream
    :mod:`utils.client_factory`: Azure OpenAI / OpenAI client creation
"""
