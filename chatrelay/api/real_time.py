"""
Real-time WebSocket endpoint for the relay.

The path is configurable, so the route is attached by build_realtime_router()
rather than a fixed decorator.
"""

from fastapi import APIRouter, WebSocket

from ..config.models import RelayConfig
from ..realtime.websocket_handler import handle_websocket_connection
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

# Close code for a refused handshake; Starlette turns a pre-accept close into HTTP 403
POLICY_VIOLATION = 1008


def origin_is_allowed(origin: str | None, allowed_origins: list[str]) -> bool:
    """An empty allow-list admits every origin; otherwise the Origin header must be listed."""
    if not allowed_origins:
        return True
    return origin is not None and origin in allowed_origins


def select_subprotocol(offered: list[str], supported: str) -> str | None:
    """Confirm the supported subprotocol only when the client offered it."""
    if supported and supported in offered:
        return supported
    return None


async def websocket_endpoint(websocket: WebSocket) -> None:
    """
    WebSocket endpoint for chat and signaling relay.

    Each connection becomes one relay session for as long as the socket stays open.
    """
    state = websocket.app.state
    relay_config: RelayConfig = state.config.relay

    origin = websocket.headers.get("origin")
    if not origin_is_allowed(origin, relay_config.allowed_origins):
        client = websocket.client
        logger.warning(
            "Connection refused, origin not allowed",
            origin=origin,
            remote_address=f"{client.host}:{client.port}" if client else "unknown",
        )
        await websocket.close(code=POLICY_VIOLATION)
        return

    subprotocol = select_subprotocol(websocket.scope.get("subprotocols", []), relay_config.subprotocol)

    try:
        await handle_websocket_connection(
            websocket,
            state.message_router,
            subprotocol=subprotocol,
            outbox_max_size=relay_config.outbox_max_size,
        )
    except Exception as e:
        logger.error("Error in WebSocket endpoint", error=str(e), exc_info=True)
        raise


def build_realtime_router(websocket_path: str) -> APIRouter:
    """Create the router serving the relay WebSocket at the given path."""
    router = APIRouter(tags=["realtime"])
    router.add_api_websocket_route(websocket_path, websocket_endpoint)
    return router
