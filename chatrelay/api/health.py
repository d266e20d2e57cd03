"""Health check endpoint."""

from typing import Any

from fastapi import APIRouter, Request

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

health_router = APIRouter(prefix="/api", tags=["health"])


@health_router.get("/health")
async def health_check(request: Request) -> dict[str, Any]:
    """Report liveness along with the current session counts."""
    registry = request.app.state.session_registry
    sessions = len(registry)
    named_sessions = len(registry.snapshot_names())
    logger.debug("Health check", sessions=sessions, named_sessions=named_sessions)
    return {"status": "healthy", "sessions": sessions, "named_sessions": named_sessions}
