"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - ConversationId wraps the client-held session token (a UUID string)
    - Messages are append-only records: MessageRecord is frozen
    - Exactly two retryable-or-not partitions of GenerationErrorKind (RETRYABLE_KINDS)
    - StoreResult outcome is one of success / unavailable / fault — never raises

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
    - StoreResult instead of exceptions for counter-store calls: callers collapse
      to a fallback explicitly, tests simulate outages deterministically
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Generic, NewType, TypeVar

T = TypeVar("T")


# ─── Identity Types ──────────────────────────────────────────────

ConversationId = NewType("ConversationId", str)


# ─── Enums ───────────────────────────────────────────────────────

class SenderRole(str, Enum):
    """Who wrote a message — maps to DB `role` column."""
    USER = "user"
    ASSISTANT = "assistant"


class GenerationErrorKind(str, Enum):
    """Classified reply-generation failures. Every provider maps into these."""
    INVALID_CREDENTIALS = "invalid_credentials"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    EMPTY_RESPONSE = "empty_response"
    MALFORMED_RESPONSE = "malformed_response"
    UNKNOWN = "unknown"


RETRYABLE_KINDS = frozenset({
    GenerationErrorKind.RATE_LIMITED,
    GenerationErrorKind.TIMEOUT,
    GenerationErrorKind.NETWORK_ERROR,
})


class ProviderName(str, Enum):
    """Configured reply-generation backends."""
    GEMINI = "gemini"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class StoreOutcome(str, Enum):
    """How a counter/cache store call ended."""
    SUCCESS = "success"
    UNAVAILABLE = "unavailable"
    FAULT = "fault"


# ─── Value Types ─────────────────────────────────────────────────

@dataclass(frozen=True)
class MessageRecord:
    """One persisted conversation message."""
    id: str
    conversation_id: ConversationId
    role: SenderRole
    content: str
    created_at: datetime


@dataclass(frozen=True)
class StoreResult(Generic[T]):
    """Outcome of one counter/cache store operation."""
    outcome: StoreOutcome
    value: T | None = None
    error: str | None = None

    @classmethod
    def success(cls, value: T | None = None) -> "StoreResult[T]":
        return cls(StoreOutcome.SUCCESS, value)

    @classmethod
    def unavailable(cls) -> "StoreResult[T]":
        return cls(StoreOutcome.UNAVAILABLE)

    @classmethod
    def fault(cls, error: str) -> "StoreResult[T]":
        return cls(StoreOutcome.FAULT, error=error)

    @property
    def ok(self) -> bool:
        return self.outcome is StoreOutcome.SUCCESS

    def value_or(self, fallback: T) -> T:
        if self.ok and self.value is not None:
            return self.value
        return fallback


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of a rate-limit check. retry_after_seconds set only on rejection."""
    allowed: bool
    remaining: int
    retry_after_seconds: int | None = None
