"""Application lifecycle management for the ChatRelay server."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger("chatrelay.lifespan")

__all__ = ["lifespan"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    On shutdown, closes the outbox of every session still registered so their
    writer tasks finish instead of waiting on an empty queue.
    """
    config = app.state.config
    logger.info(
        "Starting ChatRelay server",
        host=config.server.host,
        port=config.server.port,
        websocket_path=config.relay.websocket_path,
    )
    yield

    registry = app.state.session_registry
    remaining = registry.sessions()
    logger.info("Shutting down ChatRelay server", active_sessions=len(remaining))
    for session in remaining:
        session.send_handle.close()
    logger.info("ChatRelay server shutdown complete")
