"""Message ORM — one user or assistant utterance within a conversation.

Invariants:
    - Always belongs to a Conversation (conversation_id FK, ON DELETE CASCADE)
    - role is "user" or "assistant"
    - Append-only: rows are never updated by the application
    - seq strictly increases in insert order; id is the public identifier

Design Decisions:
    - Composite index (conversation_id, created_at, seq): history reads are
      "newest N for one conversation", served straight from the index
    - seq as the primary key, not just a column: it is the only portable way
      to get a database-assigned counter (SQLite autoincrements INTEGER PRIMARY
      KEY only), and it breaks created_at ties between same-instant inserts
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger, CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class Message(Base):
    """Message entity — ordered by (created_at, seq) within its conversation."""
    __tablename__ = "messages"
    __table_args__ = (
        Index(
            "ix_messages_conversation_created",
            "conversation_id", "created_at", "seq",
        ),
        CheckConstraint("role IN ('user', 'assistant')", name="role"),
    )

    seq: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), unique=True, nullable=False, default=uuid.uuid4,
    )
    conversation_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
