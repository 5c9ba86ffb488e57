"""Route modules for the streaming agent API.

``stream`` serves the answer stream; ``health`` carries the liveness,
capabilities and info endpoints.
"""

from __future__ import annotations

from . import health, stream

__all__ = ["health", "stream"]
