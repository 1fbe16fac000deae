"""FastAPI router for the broadcast chat endpoints."""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, StreamingResponse

from broadcast import Broadcaster
from config import limiter, settings
from stream import SSE_HEADERS, StreamSession

from .models import ChatMessage, ChatStats

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])

_INDEX_HTML = Path(__file__).parent / "static" / "index.html"


def get_broadcaster(request: Request) -> Broadcaster:
    """The application's Broadcaster. Overridden in tests with an isolated instance."""
    return request.app.state.broadcaster


@router.get("/", response_class=HTMLResponse)
async def index():
    """Chat page: a send form plus an EventSource listening on /chat/events."""
    return HTMLResponse(_INDEX_HTML.read_text(encoding="utf-8"))


@router.post("/chat/send", status_code=201, response_class=PlainTextResponse)
@limiter.limit(lambda: settings.send_rate_limit)
async def send_chat(
    request: Request,
    req: ChatMessage,
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Publish a chat message to every connected stream."""
    delivered = await broadcaster.publish(req.model_dump_json())
    logger.info("Message from %s delivered to %d subscribers", req.user_id, delivered)
    return PlainTextResponse("Message sent", status_code=201)


@router.get("/chat/events")
async def chat_events(broadcaster: Broadcaster = Depends(get_broadcaster)):
    """
    Server-Sent Events stream of chat messages.
    Each event's data line is one JSON-encoded ChatMessage.
    """
    session = StreamSession(broadcaster, ping_interval=settings.stream_ping_interval)
    return StreamingResponse(
        session.stream(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/chat/stats", response_model=ChatStats)
async def chat_stats(broadcaster: Broadcaster = Depends(get_broadcaster)):
    return ChatStats(subscribers=broadcaster.subscriber_count)
