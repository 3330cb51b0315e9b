"""API Dependencies — request-scoped accessors for lifespan-built resources.

Invariants:
    - The orchestrator is built once in the lifespan and read from app.state
    - Client identity is the first X-Forwarded-For hop, else the peer address

Design Decisions:
    - Depends() accessors over module globals: tests swap them with
      app.dependency_overrides
"""

from fastapi import Request

from app.core.errors import ServiceUnavailableError
from app.services.chat_orchestrator import ConversationOrchestrator


def get_orchestrator(request: Request) -> ConversationOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise ServiceUnavailableError("Chat service not initialized")
    return orchestrator


def get_client_identity(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else None
