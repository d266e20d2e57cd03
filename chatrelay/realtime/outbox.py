"""
Outbound frame delivery for one WebSocket connection.

The router never awaits a client: it hands frames to the session's outbox,
which queues them and lets a dedicated writer task push them to the socket.
A slow or dead client therefore cannot stall routing for anyone else.
"""

import asyncio

from fastapi import WebSocket

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class WebSocketOutbox:
    """
    Bounded per-connection send queue.

    send() never blocks and never raises: frames sent after the outbox is
    closed, or while the queue is full, are dropped and counted.
    """

    def __init__(self, websocket: WebSocket, max_size: int = 256) -> None:
        self._websocket = websocket
        self._queue: asyncio.Queue[str | None] = asyncio.Queue(maxsize=max_size)
        self._closed = False
        self.delivered_frames = 0
        self.dropped_frames = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def send(self, frame: str) -> None:
        """Queue one frame for delivery."""
        if self._closed:
            self.dropped_frames += 1
            return
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            self.dropped_frames += 1
            logger.warning("Outbox full, dropping frame", max_size=self._queue.maxsize)

    def close(self) -> None:
        """Stop accepting frames and let the writer finish what is already queued."""
        if self._closed:
            return
        self._closed = True
        if self._queue.full():
            # No room for the stop marker; the backlog would never be delivered anyway.
            while not self._queue.empty():
                self._queue.get_nowait()
                self.dropped_frames += 1
        self._queue.put_nowait(None)

    async def run(self) -> None:
        """Writer loop: deliver queued frames in order until closed or the socket fails."""
        while True:
            frame = await self._queue.get()
            if frame is None:
                return
            try:
                await self._websocket.send_text(frame)
            except Exception as e:  # noqa: BLE001 - any transport failure ends delivery for this client
                self._closed = True
                self.dropped_frames += 1 + self._queue.qsize()
                logger.warning(
                    "Send failed, discarding outbound frames",
                    error=str(e),
                    error_type=type(e).__name__,
                    discarded=self._queue.qsize(),
                )
                return
            self.delivered_frames += 1
