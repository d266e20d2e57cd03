"""
API module for the ChatRelay server.

Provides the relay WebSocket endpoint, the health check and static asset
delivery for the browser client.
"""

from .health import health_router
from .real_time import build_realtime_router
from .static_files import static_router

__all__ = [
    "build_realtime_router",
    "health_router",
    "static_router",
]
