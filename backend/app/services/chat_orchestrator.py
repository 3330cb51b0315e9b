"""Conversation Orchestrator — turns one inbound chat message into a persisted turn.

Invariants:
    - Step order per request: rate check → resolve conversation → append user
      message → read bounded history → dispatch → append assistant reply →
      touch conversation. Each step awaits the previous one
    - A throttled request persists nothing and creates no conversation; it
      echoes the caller's session id ("" when none was given)
    - A stale/unknown session id yields a NEW conversation, never an error
    - The user message is written before generation (input is never lost)
    - Generation failures never reach the caller: the reply becomes
      FALLBACK_MESSAGE and the classified error is logged
    - Durable-store failures (DatabaseError) propagate unchanged

Design Decisions:
    - No in-process locks: two concurrent requests with the same uncached,
      unknown id may both create conversations (accepted cache-aside race)
    - Durable writes are independent statements; a crash between the user
      append and the reply append leaves an unanswered user message
"""

import logging
from dataclasses import dataclass, field

from app.core.domain_types import (
    ConversationId, MessageRecord, RateLimitDecision, SenderRole,
)
from app.core.errors import GenerationError
from app.core.prompts import FALLBACK_MESSAGE, throttle_message
from app.core.repository_protocols import (
    ConversationRepository, MessageRepository,
)
from app.services.rate_limiter import RateLimiter
from app.services.resilient_dispatcher import ResilientDispatcher
from app.services.session_cache import SessionExistenceCache

logger = logging.getLogger(__name__)

ANONYMOUS_IDENTITY = "anonymous"


@dataclass(frozen=True)
class ChatReply:
    reply: str
    session_id: str


@dataclass(frozen=True)
class ConversationHistory:
    session_id: str
    messages: list[MessageRecord] = field(default_factory=list)


class ConversationOrchestrator:
    """Top-level chat sequencing over injected stores, cache, limiter and dispatcher."""

    def __init__(
        self,
        conversations: ConversationRepository,
        messages: MessageRepository,
        session_cache: SessionExistenceCache,
        rate_limiter: RateLimiter,
        dispatcher: ResilientDispatcher,
        history_limit: int = 10,
    ):
        self.conversations = conversations
        self.messages = messages
        self.session_cache = session_cache
        self.rate_limiter = rate_limiter
        self.dispatcher = dispatcher
        self.history_limit = history_limit

    async def handle_message(
        self,
        message: str,
        session_id: str | None = None,
        client_identity: str | None = None,
    ) -> ChatReply:
        """Run one chat turn and return the reply with the resolved session id."""
        rate_key = session_id or client_identity or ANONYMOUS_IDENTITY
        decision = await self.rate_limiter.check_limit(rate_key)
        if not decision.allowed:
            return ChatReply(
                reply=throttle_message(
                    decision.retry_after_seconds,
                    self.rate_limiter.window_seconds,
                ),
                session_id=session_id or "",
            )

        conversation_id = await self._resolve_conversation(session_id)

        await self.messages.append(conversation_id, SenderRole.USER, message)
        history = await self.messages.list_by_conversation(
            conversation_id, limit=self.history_limit,
        )

        reply = await self._generate_reply(conversation_id, history, message)

        await self.messages.append(conversation_id, SenderRole.ASSISTANT, reply)
        await self.conversations.touch(conversation_id)

        return ChatReply(reply=reply, session_id=conversation_id)

    async def get_history(self, session_id: str) -> ConversationHistory | None:
        """Full chronological history, or None when the conversation does not exist."""
        if not await self._verify_exists(session_id):
            return None

        conversation_id = ConversationId(session_id)
        messages = await self.messages.list_by_conversation(conversation_id)
        if not messages:
            # Cached marker may outlive a concurrent delete
            if await self.conversations.find_by_id(session_id) is None:
                return None
        return ConversationHistory(session_id=session_id, messages=messages)

    async def check_rate_limit(self, identifier: str) -> RateLimitDecision:
        """Consume one unit of identifier's budget (auxiliary endpoints)."""
        return await self.rate_limiter.check_limit(identifier)

    async def probe_rate_limit(self, identifier: str) -> RateLimitDecision:
        """Inspect identifier's budget without consuming it."""
        return await self.rate_limiter.peek(identifier)

    async def _resolve_conversation(
        self, session_id: str | None,
    ) -> ConversationId:
        if session_id and await self._verify_exists(session_id):
            return ConversationId(session_id)
        if session_id:
            logger.info(
                "Unknown session id, starting a new conversation",
                extra={"session_id": session_id},
            )
        conversation_id = await self.conversations.create()
        await self.session_cache.set_exists(conversation_id)
        return conversation_id

    async def _verify_exists(self, session_id: str) -> bool:
        """Cache first, then the durable store; positive DB hits are cached."""
        if await self.session_cache.exists(session_id):
            return True
        if await self.conversations.find_by_id(session_id) is None:
            return False
        await self.session_cache.set_exists(session_id)
        return True

    async def _generate_reply(
        self,
        conversation_id: ConversationId,
        history: list[MessageRecord],
        message: str,
    ) -> str:
        try:
            return await self.dispatcher.generate(history, message)
        except GenerationError as e:
            logger.error(
                f"Reply generation failed: {e.message}",
                extra={
                    "session_id": conversation_id,
                    "error_code": e.code,
                    "error_kind": e.kind.value,
                    "provider": e.provider,
                },
            )
        except Exception as e:
            logger.error(
                f"Unexpected reply generation failure: {e}",
                extra={"session_id": conversation_id},
                exc_info=True,
            )
        return FALLBACK_MESSAGE
