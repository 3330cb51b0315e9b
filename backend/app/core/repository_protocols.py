"""Boundary Protocols — contracts between the orchestration services and the shell.

Invariants:
    - Services NEVER import concrete stores or SDKs — dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy; test
      fakes satisfy the contracts without importing anything
    - Counter store returns StoreResult instead of raising: the store may be
      absent at runtime and every call must be safely skippable
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from app.core.domain_types import (
    ConversationId, MessageRecord, SenderRole, StoreResult,
)


class ConversationLike(Protocol):
    """Structural contract for Conversation rows returned by find_by_id."""
    created_at: datetime
    updated_at: datetime


class ConversationRepository(Protocol):
    """Durable conversation store."""
    async def create(self) -> ConversationId: ...
    async def find_by_id(
        self, conversation_id: str,
    ) -> ConversationLike | None: ...
    async def touch(self, conversation_id: ConversationId) -> None: ...


class MessageRepository(Protocol):
    """Durable, append-only message store."""
    async def append(
        self, conversation_id: ConversationId, role: SenderRole, content: str,
    ) -> MessageRecord: ...
    async def list_by_conversation(
        self, conversation_id: ConversationId, limit: int | None = None,
    ) -> list[MessageRecord]: ...


class CounterStore(Protocol):
    """Shared counter/cache store (Redis in production)."""
    async def increment(self, key: str) -> StoreResult[int]: ...
    async def expire(self, key: str, seconds: int) -> StoreResult[bool]: ...
    async def ttl(self, key: str) -> StoreResult[int]: ...
    async def get(self, key: str) -> StoreResult[str]: ...
    async def set_with_expiry(
        self, key: str, value: str, seconds: int,
    ) -> StoreResult[bool]: ...


class ReplyGenerator(Protocol):
    """Generates an assistant reply. Raises GenerationError with a classified kind."""
    name: str

    async def generate(
        self, history: Sequence[MessageRecord], message: str,
    ) -> str: ...
