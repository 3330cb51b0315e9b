"""Chat Routes — message turn, history restore, and rate-limit probe.

Invariants:
    - POST /message never surfaces provider errors (orchestrator masks them)
    - History reads are throttled per client under "history:<client>"
    - Unknown conversations → ResourceNotFoundError (404)
    - The rate-limit probe consumes no budget

Design Decisions:
    - Routes translate orchestrator dataclasses into camelCase schemas;
      no business logic here
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_client_identity, get_orchestrator
from app.core.errors import (
    ErrorContext, RateLimitExceededError, ResourceNotFoundError,
)
from app.schemas.chat import (
    ChatRequest, ChatResponse, HistoryMessage, HistoryResponse, RateLimitStatus,
)
from app.services.chat_orchestrator import (
    ANONYMOUS_IDENTITY, ConversationOrchestrator,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/chat", tags=["chat"])


@router.post("/message", response_model=ChatResponse)
async def post_message(
    body: ChatRequest,
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
    client_identity: str | None = Depends(get_client_identity),
):
    """Send a message and receive the assistant's reply."""
    result = await orchestrator.handle_message(
        body.message,
        str(body.session_id) if body.session_id else None,
        client_identity,
    )
    return ChatResponse(reply=result.reply, session_id=result.session_id)


@router.get("/history/{session_id}", response_model=HistoryResponse)
async def get_history(
    session_id: UUID,
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
    client_identity: str | None = Depends(get_client_identity),
):
    """Restore a conversation, e.g. after a page reload."""
    decision = await orchestrator.check_rate_limit(
        f"history:{client_identity or ANONYMOUS_IDENTITY}",
    )
    if not decision.allowed:
        raise RateLimitExceededError(
            decision.retry_after_seconds
            or orchestrator.rate_limiter.window_seconds,
            ErrorContext(session_id=str(session_id)),
        )

    history = await orchestrator.get_history(str(session_id))
    if history is None:
        raise ResourceNotFoundError("Conversation", str(session_id))

    return HistoryResponse(
        session_id=history.session_id,
        messages=[
            HistoryMessage(
                id=m.id, sender=m.role.value,
                content=m.content, created_at=m.created_at,
            )
            for m in history.messages
        ],
    )


@router.get("/rate-limit", response_model=RateLimitStatus)
async def get_rate_limit(
    session_id: UUID | None = Query(None, alias="sessionId"),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
    client_identity: str | None = Depends(get_client_identity),
):
    """Report the caller's remaining message budget without consuming it."""
    identifier = (
        (str(session_id) if session_id else None)
        or client_identity
        or ANONYMOUS_IDENTITY
    )
    decision = await orchestrator.probe_rate_limit(identifier)
    return RateLimitStatus(
        allowed=decision.allowed,
        remaining=decision.remaining,
        limit=orchestrator.rate_limiter.max_requests,
        retry_after=decision.retry_after_seconds,
    )
