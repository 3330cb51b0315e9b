"""Resilient Dispatcher — primary reply generator with a single-shot fallback.

Invariants:
    - Primary is always tried first; at most one fallback attempt per request
    - Fallback only when the primary error is retryable AND a fallback exists
    - If the fallback also fails, the PRIMARY error is re-raised (its
      classification is authoritative); the fallback error is only logged
    - Holds no per-request state: one instance serves concurrent requests

Design Decisions:
    - Depends on the ReplyGenerator protocol only, never on concrete providers
    - Non-GenerationError exceptions from a provider are treated as
      non-retryable and propagate untouched
"""

import logging
from collections.abc import Sequence

from app.core.domain_types import MessageRecord
from app.core.errors import GenerationError
from app.core.repository_protocols import ReplyGenerator

logger = logging.getLogger(__name__)


class ResilientDispatcher:
    """Primary/fallback reply dispatch."""

    def __init__(
        self, primary: ReplyGenerator, fallback: ReplyGenerator | None = None,
    ):
        self.primary = primary
        self.fallback = fallback

    async def generate(
        self, history: Sequence[MessageRecord], message: str,
    ) -> str:
        try:
            return await self.primary.generate(history, message)
        except GenerationError as primary_error:
            if not primary_error.retryable or self.fallback is None:
                raise
            logger.warning(
                f"Primary provider failed with {primary_error.kind.value}, "
                "attempting fallback",
                extra={
                    "provider": self.primary.name,
                    "fallback_provider": self.fallback.name,
                    "error_kind": primary_error.kind.value,
                },
            )
            try:
                return await self.fallback.generate(history, message)
            except Exception as fallback_error:
                logger.error(
                    f"Fallback provider also failed: {fallback_error}",
                    extra={
                        "provider": self.fallback.name,
                        "error_kind": getattr(
                            getattr(fallback_error, "kind", None), "value", None,
                        ),
                    },
                )
                raise primary_error from None
