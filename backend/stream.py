"""
Server-Sent Events session: bridges one HTTP connection to one
Broadcaster subscription.
"""

import asyncio
import enum
import logging
from typing import AsyncIterator

from broadcast import Broadcaster, Outbox, OutboxClosed

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

# SSE comment line; EventSource clients ignore it
KEEPALIVE_FRAME = b": keepalive\n\n"


def format_event(payload: bytes | str) -> bytes:
    """Frame a payload as one SSE event, one ``data:`` line per payload line."""
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    frame = b""
    for line in payload.splitlines() or [b""]:
        frame += b"data: " + line + b"\n"
    return frame + b"\n"


class SessionState(str, enum.Enum):
    INIT = "init"
    SUBSCRIBED = "subscribed"
    STREAMING = "streaming"
    CLOSING = "closing"
    CLOSED = "closed"


class StreamSession:
    """One streaming connection's lifetime, from subscribe to unsubscribe.

    stream() is an async generator of SSE frames for a StreamingResponse.
    It subscribes when iteration starts and yields each outbox payload as
    soon as it arrives, or a keepalive comment after ``ping_interval``
    seconds of silence. The session is SUBSCRIBED until its first frame
    goes out and STREAMING from then on.

    The subscription is held by Broadcaster.subscription(), so unsubscribe
    happens exactly once however the stream ends: the response cancels it
    on peer disconnect, the generator is closed after a failed write, or the
    outbox is closed under it.
    """

    def __init__(self, broadcaster: Broadcaster, ping_interval: float | None = None):
        self.broadcaster = broadcaster
        self.ping_interval = ping_interval
        self.state = SessionState.INIT
        self.subscriber_id: str | None = None

    async def stream(self) -> AsyncIterator[bytes]:
        try:
            async with self.broadcaster.subscription() as subscriber:
                self.subscriber_id = subscriber.id
                self.state = SessionState.SUBSCRIBED
                logger.info("Client connected: %s", subscriber.id)
                try:
                    while True:
                        try:
                            frame = await self._next_frame(subscriber.outbox)
                        except OutboxClosed:
                            logger.info("Subscription %s closed by broadcaster", subscriber.id)
                            return
                        self.state = SessionState.STREAMING
                        yield frame
                except asyncio.CancelledError:
                    logger.info("Client disconnected: %s", subscriber.id)
                    raise
                except GeneratorExit:
                    logger.info("Stream to %s closed", subscriber.id)
                    raise
                finally:
                    self.state = SessionState.CLOSING
        finally:
            self.state = SessionState.CLOSED

    async def _next_frame(self, outbox: Outbox) -> bytes:
        try:
            payload = await asyncio.wait_for(outbox.get(), timeout=self.ping_interval)
        except asyncio.TimeoutError:
            return KEEPALIVE_FRAME
        return format_event(payload)
