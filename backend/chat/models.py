"""Pydantic models for the chat API."""

from pydantic import BaseModel


class ChatMessage(BaseModel):
    """One chat record as posted by a client and relayed to every stream."""
    user_id: str
    message: str


class ChatStats(BaseModel):
    subscribers: int
