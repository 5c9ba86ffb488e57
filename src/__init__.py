"""
Streaming Agent - Tool-augmented answers delivered one character at a time
==========================================================================

A FastAPI service turns one query into a Markdown answer produced by Azure
OpenAI (or OpenAI) chat completions, calling a weather lookup tool when the
model asks for it, and streams the answer as an unbuffered UTF-8 body. A
companion client decodes that body incrementally and folds it into a live
document.

Key Features:
    - **Character Streaming**: Every Unicode character is flushed as its own body chunk
    - **Tool Calling**: Weather lookups resolved between backend rounds, never leaked as text
    - **Graceful Degradation**: Setup failures become a fixed apology inside a 200 stream
    - **Cooperative Cancellation**: One active session per connection, explicit tokens
    - **Structured Logging**: JSON session summaries with PII redaction and rotation

Modules:
    api: FastAPI app, routes, middleware, and the transport encoder
    core: Configuration, prompts, stream sessions, generation orchestrator
    integrations: Model backend adapter over chat completions streaming
    tools: Weather tool and the tool registry
    models: Content deltas, error problem documents, weather API models
    utils: Logging, cancellation tokens, HTTP client factory
    client: Incremental decoder, streaming client, document aggregator, terminal UI

Example:
    Streaming an answer in-process::

        from core.orchestrator import GenerationOrchestrator
        from utils.cancellation import CancellationToken

        orchestrator = GenerationOrchestrator(backend, tool_registry)
        token = CancellationToken()
        async for char in orchestrator.stream("Weather in Oslo today?", token):
            print(char, end="", flush=True)
"""
