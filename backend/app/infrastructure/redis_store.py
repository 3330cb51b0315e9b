"""Redis Counter Store — shared counters and existence markers with explicit lifecycle.

Invariants:
    - Never raises to callers: every operation returns a StoreResult
    - No client (not configured) → outcome "unavailable"
    - Connection-level RedisError → "fault", then "unavailable" for
      reconnect_backoff_seconds; the next call after that retries the server
    - Other RedisError → "fault", logged at warning, no backoff
    - increment uses INCR (atomic); no read-then-write for counters

Design Decisions:
    - The client is kept even when the startup PING fails: redis-py opens a
      fresh connection per command, so an outage during deploy heals itself
    - Backoff window instead of retrying every call: during an outage requests
      fail open immediately rather than each paying the socket timeout
    - Constructed and injected, not a module-level singleton: lifespan owns
      connect()/close(), tests pass a stub client and clock
"""

import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from app.core.domain_types import StoreResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CONNECTION_ERRORS = (RedisConnectionError, RedisTimeoutError)


class RedisCounterStore:
    """CounterStore implementation over redis.asyncio."""

    def __init__(
        self,
        url: str | None,
        socket_timeout_seconds: float = 2.0,
        client: Any | None = None,
        reconnect_backoff_seconds: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._url = url
        self._socket_timeout = socket_timeout_seconds
        self._client = client
        self._backoff = reconnect_backoff_seconds
        self._clock = clock
        self._down_until: float | None = None

    @property
    def configured(self) -> bool:
        return bool(self._url) or self._client is not None

    @property
    def available(self) -> bool:
        return self._client is not None and not self._backing_off()

    async def connect(self) -> None:
        """Create the client and verify it with PING. A failed PING only starts the backoff."""
        if self._client is None:
            if not self._url:
                logger.info("REDIS_URL not configured; running without counter store")
                return
            self._client = aioredis.from_url(
                self._url,
                decode_responses=True,
                socket_timeout=self._socket_timeout,
                socket_connect_timeout=self._socket_timeout,
            )
        if await self.health_check():
            logger.info("Redis connected")
        else:
            logger.warning(
                "Redis unreachable at startup; counters disabled until it recovers",
                extra={"store_outcome": "unavailable"},
            )

    async def health_check(self) -> bool:
        """PING, ignoring any backoff window so readiness checks see recovery."""
        if self._client is None:
            return False
        result = await self._run("ping", lambda c: c.ping(), force=True)
        return result.ok

    async def close(self) -> None:
        if self._client is None:
            return
        client, self._client = self._client, None
        try:
            await client.aclose()
        except RedisError as e:
            logger.warning(f"Redis close failed: {e}")

    async def increment(self, key: str) -> StoreResult[int]:
        return await self._run("incr", lambda c: c.incr(key))

    async def expire(self, key: str, seconds: int) -> StoreResult[bool]:
        return await self._run("expire", lambda c: c.expire(key, seconds))

    async def ttl(self, key: str) -> StoreResult[int]:
        return await self._run("ttl", lambda c: c.ttl(key))

    async def get(self, key: str) -> StoreResult[str]:
        return await self._run("get", lambda c: c.get(key))

    async def set_with_expiry(
        self, key: str, value: str, seconds: int,
    ) -> StoreResult[bool]:
        return await self._run("set", lambda c: c.set(key, value, ex=seconds))

    def _backing_off(self) -> bool:
        return self._down_until is not None and self._clock() < self._down_until

    async def _run(
        self, op: str, call: Callable[[Any], Awaitable[T]], force: bool = False,
    ) -> StoreResult[T]:
        if self._client is None or (self._backing_off() and not force):
            return StoreResult.unavailable()
        try:
            value = await call(self._client)
        except _CONNECTION_ERRORS as e:
            self._down_until = self._clock() + self._backoff
            logger.warning(
                f"Redis {op} failed, retrying in {self._backoff:g}s: {e}",
                extra={"store_outcome": "fault"},
            )
            return StoreResult.fault(str(e))
        except RedisError as e:
            logger.warning(
                f"Redis {op} failed: {e}",
                extra={"store_outcome": "fault"},
            )
            return StoreResult.fault(str(e))

        if self._down_until is not None:
            self._down_until = None
            logger.info("Redis reachable again")
        return StoreResult.success(value)
