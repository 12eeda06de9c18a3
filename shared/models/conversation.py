"""Pydantic DTOs for conversations and messages.

These are the shapes handed to the orchestrator and returned over HTTP. They
are built from the ORM records in shared.clients.db.tables.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Conversation(BaseModel):
    """One chat session between a tenant user and the bot persona."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    name: str
    created_at: datetime
    updated_at: datetime


class Message(BaseModel):
    """A single turn of a conversation.

    embedding is only set on user turns whose embedding succeeded.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    conversation_id: str
    role: MessageRole
    content: str
    embedding: list[float] | None = None
    created_at: datetime


class HistoryTurn(BaseModel):
    """Role and content of a past message, as fed to the prompt builder."""

    role: MessageRole
    content: str
