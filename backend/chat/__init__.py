"""Broadcast chat: HTTP routes over the in-process Broadcaster."""

from .router import router as chat_router, get_broadcaster

__all__ = ["chat_router", "get_broadcaster"]
