"""Conversation ORM — durable thread identity for a chat session.

Invariants:
    - id is UUID primary key and doubles as the client-held session token
    - updated_at refreshed after every completed turn (last-activity time)
    - Deleting a conversation cascades to its messages at the DB level

Design Decisions:
    - No ORM relationship to Message: history is always read through the
      message repository with an explicit limit, never lazily loaded
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class Conversation(Base):
    """Conversation aggregate — owns an ordered, append-only message thread."""
    __tablename__ = "conversations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
