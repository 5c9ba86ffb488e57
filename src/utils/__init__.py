"""
Utils Module - Infrastructure Utilities
=======================================

Modules:
    logger: Structured JSON logging with rotation and PII redaction
    cancellation: Cooperative cancellation tokens for stream sessions
    http_logger: httpx event hooks for request/response logging
    client_factory: httpx and AsyncOpenAI client creation

Example:
    Logging with request context::

        from utils.logger import logger

        logger.info("Stream started", session_id="a1b2c3d4")
"""
