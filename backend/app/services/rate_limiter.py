"""Rate Limiter — fixed-window request counter over the shared counter store.

Invariants:
    - Counter incremented with a single atomic INCR (no read-then-write)
    - Window expiry set when the increment returns 1; racing EXPIREs are harmless
    - allowed == (count <= max_requests); remaining == max(0, max_requests - count)
    - Store unavailable or faulting → fail open (allowed, remaining == max_requests)
    - retry_after_seconds on rejection is always in (0, window_seconds]

Design Decisions:
    - Fail open: chat availability outranks rate-limit precision
    - Expiry repair on rejection: a counter found without TTL (-1) gets its
      window re-armed, so a lost first EXPIRE cannot lock an identifier out
"""

import logging

from app.core.domain_types import RateLimitDecision, StoreResult
from app.core.repository_protocols import CounterStore

logger = logging.getLogger(__name__)

KEY_PREFIX = "rate:"
_NO_EXPIRY = -1


class RateLimiter:
    """Per-identifier fixed-window limiter."""

    def __init__(
        self,
        store: CounterStore,
        max_requests: int = 15,
        window_seconds: int = 60,
    ):
        self.store = store
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    async def check_limit(self, identifier: str) -> RateLimitDecision:
        """Count one request against identifier's window and decide."""
        key = f"{KEY_PREFIX}{identifier}"
        counted = await self.store.increment(key)
        if not counted.ok or counted.value is None:
            return self._fail_open(key, counted)

        count = counted.value
        if count == 1:
            await self.store.expire(key, self.window_seconds)

        if count <= self.max_requests:
            return RateLimitDecision(
                allowed=True, remaining=self.max_requests - count,
            )

        retry_after = await self._retry_after(key)
        logger.info(
            f"Rate limit exceeded ({count}/{self.max_requests})",
            extra={"rate_limit_key": key},
        )
        return RateLimitDecision(
            allowed=False, remaining=0, retry_after_seconds=retry_after,
        )

    async def peek(self, identifier: str) -> RateLimitDecision:
        """Report the window state without consuming budget."""
        key = f"{KEY_PREFIX}{identifier}"
        current = await self.store.get(key)
        if not current.ok:
            return self._fail_open(key, current)

        count = int(current.value_or(0))
        remaining = max(0, self.max_requests - count)
        if remaining > 0:
            return RateLimitDecision(allowed=True, remaining=remaining)
        return RateLimitDecision(
            allowed=False, remaining=0,
            retry_after_seconds=await self._retry_after(key),
        )

    async def _retry_after(self, key: str) -> int:
        seconds = (await self.store.ttl(key)).value_or(0)
        if seconds == _NO_EXPIRY:
            logger.warning(
                "Rate counter had no expiry; re-arming window",
                extra={"rate_limit_key": key},
            )
            await self.store.expire(key, self.window_seconds)
            return self.window_seconds
        if seconds <= 0:
            # -2: counter expired between INCR and TTL; 0: store unreachable
            return self.window_seconds
        return min(seconds, self.window_seconds)

    def _fail_open(self, key: str, result: StoreResult) -> RateLimitDecision:
        logger.debug(
            "Rate limiter failing open",
            extra={"rate_limit_key": key, "store_outcome": result.outcome.value},
        )
        return RateLimitDecision(allowed=True, remaining=self.max_requests)
