"""Chat Schemas — Pydantic models with field-level validation for the chat API.

Invariants:
    - ChatRequest.message: 1-10240 chars after stripping
    - ChatRequest.session_id: UUID when present (wire name "sessionId")
    - Responses serialize camelCase aliases (sessionId, createdAt, retryAfter)

Design Decisions:
    - populate_by_name: tests and internal callers may use snake_case
    - field_validator for side-effect-free transforms (strip) — keeps models pure
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_MESSAGE_LENGTH = 10_240


class ChatRequest(BaseModel):
    """Inbound chat message."""
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(max_length=MAX_MESSAGE_LENGTH)
    session_id: UUID | None = Field(None, alias="sessionId")

    @field_validator("message")
    @classmethod
    def strip_message(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Message cannot be empty")
        return v


class ChatResponse(BaseModel):
    """Assistant reply plus the session id to resume with."""
    model_config = ConfigDict(populate_by_name=True)

    reply: str
    session_id: str = Field(alias="sessionId")


class HistoryMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    sender: str
    content: str
    created_at: datetime = Field(alias="createdAt")


class HistoryResponse(BaseModel):
    """Full chronological history of one conversation."""
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId")
    messages: list[HistoryMessage]


class RateLimitStatus(BaseModel):
    """Non-consuming view of an identifier's request budget."""
    model_config = ConfigDict(populate_by_name=True)

    allowed: bool
    remaining: int
    limit: int
    retry_after: int | None = Field(None, alias="retryAfter")
