"""
WebSocket transport adapter for the relay.

Turns one accepted WebSocket into router events: a connect when the socket
opens, one frame event per inbound text frame, and a disconnect when the
socket goes away for any reason. Outbound frames flow through the
connection's WebSocketOutbox.
"""

import asyncio

from fastapi import WebSocket

from ..structured_logging.enhanced_logging_config import (
    bind_session_context,
    clear_session_context,
    get_logger,
)
from .message_router import MessageRouter
from .outbox import WebSocketOutbox
from .session import ConnectionSession

logger = get_logger(__name__)

# Seconds to let the writer flush queued frames after the peer leaves
WRITER_DRAIN_TIMEOUT = 5.0


def _remote_address(websocket: WebSocket) -> str:
    client = websocket.client
    if client is None:
        return "unknown"
    return f"{client.host}:{client.port}"


async def _receive_loop(
    websocket: WebSocket, session: ConnectionSession, message_router: MessageRouter
) -> tuple[int, str]:
    """
    Feed inbound text frames to the router until the peer disconnects.

    Returns:
        The close code and reason reported by the transport
    """
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return message.get("code", 1000), message.get("reason") or ""

        text = message.get("text")
        if text is None:
            logger.debug("Ignoring binary frame", size=len(message.get("bytes") or b""))
            continue

        logger.debug("Frame received", size=len(text))
        try:
            message_router.handle_frame(session, text)
        except Exception as e:  # noqa: BLE001 - a routing bug must not kill the connection
            logger.error(
                "Error handling frame",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )


async def handle_websocket_connection(
    websocket: WebSocket,
    message_router: MessageRouter,
    *,
    subprotocol: str | None = None,
    outbox_max_size: int = 256,
) -> None:
    """
    Serve one WebSocket connection for its whole lifetime.

    Args:
        websocket: The not yet accepted WebSocket
        message_router: Router shared by every connection
        subprotocol: Subprotocol to confirm in the handshake, if the client offered it
        outbox_max_size: Maximum queued outbound frames for this connection
    """
    await websocket.accept(subprotocol=subprotocol)

    outbox = WebSocketOutbox(websocket, max_size=outbox_max_size)
    session = message_router.connect(outbox)
    bind_session_context(session_id=session.session_id)
    writer = asyncio.create_task(outbox.run())
    logger.info("Connection accepted", remote_address=_remote_address(websocket), subprotocol=subprotocol)

    code: int | None = None
    reason = ""
    try:
        code, reason = await _receive_loop(websocket, session, message_router)
    except RuntimeError as e:
        # Raised by Starlette when the socket is already gone before receive()
        logger.warning("Connection lost", error=str(e), error_type=type(e).__name__)
    finally:
        message_router.disconnect(session.session_id, code, reason)
        outbox.close()
        try:
            await asyncio.wait_for(writer, timeout=WRITER_DRAIN_TIMEOUT)
        except asyncio.TimeoutError:
            # wait_for has already cancelled the writer
            logger.warning("Writer did not drain in time", pending=outbox.pending)
        logger.info(
            "Connection closed",
            code=code,
            reason=reason,
            delivered_frames=outbox.delivered_frames,
            dropped_frames=outbox.dropped_frames,
        )
        clear_session_context()
