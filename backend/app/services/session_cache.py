"""Session Existence Cache — cache-aside positive markers for conversation ids.

Invariants:
    - exists() returns True only for an unexpired "1" marker, otherwise None
      ("unknown"); it never asserts non-existence
    - set_exists() is only called after a confirmed durable read or create
    - Store unavailability/faults collapse to None / no-op, never raise
"""

import logging

from app.core.repository_protocols import CounterStore

logger = logging.getLogger(__name__)

KEY_PREFIX = "conversation:"
_MARKER = "1"


class SessionExistenceCache:
    """Positive-only existence cache keyed by conversation id."""

    def __init__(self, store: CounterStore, ttl_seconds: int = 6 * 60 * 60):
        self.store = store
        self.ttl_seconds = ttl_seconds

    async def exists(self, conversation_id: str) -> bool | None:
        """True if cached as existing; None means unknown (check the DB)."""
        cached = await self.store.get(f"{KEY_PREFIX}{conversation_id}")
        if cached.ok and cached.value == _MARKER:
            return True
        return None

    async def set_exists(self, conversation_id: str) -> None:
        result = await self.store.set_with_expiry(
            f"{KEY_PREFIX}{conversation_id}", _MARKER, self.ttl_seconds,
        )
        if not result.ok:
            logger.debug(
                "Existence marker not cached",
                extra={
                    "session_id": conversation_id,
                    "store_outcome": result.outcome.value,
                },
            )
