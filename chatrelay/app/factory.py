"""
FastAPI application factory for the ChatRelay server.

Builds the app, wires the relay services onto app.state and registers the
routers in matching order.
"""

from fastapi import FastAPI

from ..api.health import health_router
from ..api.real_time import build_realtime_router
from ..api.static_files import static_router
from ..config import get_config
from ..config.models import AppConfig
from ..realtime.message_router import MessageRouter
from ..realtime.message_validator import MessageValidator
from ..realtime.name_allocator import NameAllocator
from ..realtime.session_registry import SessionRegistry
from ..structured_logging.enhanced_logging_config import get_logger
from .lifespan import lifespan

logger = get_logger(__name__)


def create_app(config: AppConfig | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Configuration to use; loaded via get_config() when omitted

    Returns:
        FastAPI: The configured application instance
    """
    config = config or get_config()

    app = FastAPI(
        title="ChatRelay",
        description="WebSocket chat and signaling relay",
        version="0.1.0",
        lifespan=lifespan,
    )

    registry = SessionRegistry()
    allocator = NameAllocator()
    validator = MessageValidator(
        max_message_size=config.relay.max_message_size,
        max_json_depth=config.relay.max_json_depth,
    )
    app.state.config = config
    app.state.session_registry = registry
    app.state.name_allocator = allocator
    app.state.message_validator = validator
    app.state.message_router = MessageRouter(registry=registry, allocator=allocator, validator=validator)

    app.include_router(build_realtime_router(config.relay.websocket_path))
    app.include_router(health_router)
    # Catch-all GET route, must stay last
    app.include_router(static_router)

    logger.info(
        "Application created",
        websocket_path=config.relay.websocket_path,
        subprotocol=config.relay.subprotocol,
        allowed_origins=config.relay.allowed_origins,
        static_root=config.static.root_dir,
    )
    return app
