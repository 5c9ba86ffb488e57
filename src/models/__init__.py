"""
Models Module - Data Models and Type Definitions
=================================================

Modules:
    deltas: ContentDelta tagged union (TextChunk, ToolCallRequest, ToolCallResult)
    error_models: Error codes and the RFC 7807 ProblemDetails response model
    weather_models: Pydantic models for the OpenWeatherMap response

Deltas are frozen dataclasses consumed with exhaustive ``match``; wire-facing
models use Pydantic v2 for validation and JSON serialization.
"""
