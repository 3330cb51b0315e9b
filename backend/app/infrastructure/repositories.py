"""SQL Repositories — durable conversation and message stores over DatabaseSessionManager.

Invariants:
    - Each call runs in its own session and commits independently (no
      multi-statement transaction spans an orchestration turn)
    - Message reads are chronological ascending (insert order on equal
      timestamps); a limit keeps the newest N
    - A malformed conversation id is reported as absent, never raised
    - SQLAlchemy failures surface as DatabaseError via the session manager

Design Decisions:
    - Repositories own UUID parsing: callers pass the client-held string token
    - ORM rows converted to MessageRecord at the boundary: services never
      touch detached ORM instances
"""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select, update

from app.core.domain_types import ConversationId, MessageRecord, SenderRole
from app.infrastructure.database import DatabaseSessionManager
from app.models.conversation import Conversation
from app.models.message import Message

logger = logging.getLogger(__name__)


def _parse_id(conversation_id: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(conversation_id))
    except ValueError:
        return None


def _to_record(row: Message) -> MessageRecord:
    return MessageRecord(
        id=str(row.id),
        conversation_id=ConversationId(str(row.conversation_id)),
        role=SenderRole(row.role),
        content=row.content,
        created_at=row.created_at,
    )


class SqlConversationRepository:
    """Conversation persistence."""

    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    async def create(self) -> ConversationId:
        async with self._db.session() as session:
            conversation = Conversation()
            session.add(conversation)
            await session.commit()
            logger.info(
                "Conversation created",
                extra={"session_id": str(conversation.id)},
            )
            return ConversationId(str(conversation.id))

    async def find_by_id(self, conversation_id: str) -> Conversation | None:
        parsed = _parse_id(conversation_id)
        if parsed is None:
            return None
        async with self._db.session() as session:
            result = await session.execute(
                select(Conversation).where(Conversation.id == parsed),
            )
            return result.scalar_one_or_none()

    async def touch(self, conversation_id: ConversationId) -> None:
        parsed = _parse_id(conversation_id)
        if parsed is None:
            return
        async with self._db.session() as session:
            await session.execute(
                update(Conversation)
                .where(Conversation.id == parsed)
                .values(updated_at=datetime.now(timezone.utc)),
            )
            await session.commit()


class SqlMessageRepository:
    """Append-only message persistence."""

    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    async def append(
        self, conversation_id: ConversationId, role: SenderRole, content: str,
    ) -> MessageRecord:
        async with self._db.session() as session:
            row = Message(
                conversation_id=uuid.UUID(conversation_id),
                role=role.value,
                content=content,
            )
            session.add(row)
            await session.commit()
            return _to_record(row)

    async def list_by_conversation(
        self, conversation_id: ConversationId, limit: int | None = None,
    ) -> list[MessageRecord]:
        parsed = _parse_id(conversation_id)
        if parsed is None:
            return []
        # Newest first so LIMIT keeps the most recent, then flip to chronological.
        # seq breaks created_at ties in insert order.
        query = (
            select(Message)
            .where(Message.conversation_id == parsed)
            .order_by(Message.created_at.desc(), Message.seq.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        async with self._db.session() as session:
            result = await session.execute(query)
            rows = list(result.scalars().all())
        rows.reverse()
        return [_to_record(r) for r in rows]
