"""Error Hierarchy — every failure the chat API can report, with its HTTP mapping.

Invariants:
    - Each subclass fixes its code, category, severity and http_status as class
      attributes; instances only add message and context
    - Throttling and not-found are 4xx; store, provider and startup failures are 503
    - to_response() exposes only public context fields (never debug_info)
    - GenerationError.retryable is derived from kind (RETRYABLE_KINDS), never passed in

Design Decisions:
    - One base (ChatError) so a single FastAPI handler renders every domain error
    - Class-level defaults over long positional constructors: adding an error
      type is a four-line class body
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from app.core.domain_types import GenerationErrorKind, RETRYABLE_KINDS


class ErrorSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    RATE_LIMIT = "rate_limit"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Request facts attached to an error for logs and the response envelope."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    session_id: str | None = None
    provider: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_seconds: int | None = None

    def public_fields(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "retry_after_seconds": self.retry_after_seconds,
        }


class ChatError(Exception):
    """Base for all chat service errors."""

    code = "INTERNAL_ERROR"
    category = ErrorCategory.INTERNAL
    severity = ErrorSeverity.ERROR
    http_status = 500

    def __init__(
        self,
        message: str,
        code: str | None = None,
        category: ErrorCategory | None = None,
        severity: ErrorSeverity | None = None,
        context: ErrorContext | None = None,
        http_status: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        if code is not None:
            self.code = code
        if category is not None:
            self.category = category
        if severity is not None:
            self.severity = severity
        if http_status is not None:
            self.http_status = http_status

    def to_response(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.context.user_message or self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": self.context.public_fields(),
            }
        }

    def response_headers(self) -> dict[str, str]:
        return {}


# ─── 4xx ─────────────────────────────────────────────────────────

class ResourceNotFoundError(ChatError):
    code = "RESOURCE_NOT_FOUND"
    category = ErrorCategory.RESOURCE_NOT_FOUND
    http_status = 404

    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(f"{resource_type} '{resource_id}' not found", context=context)
        self.resource_type = resource_type
        self.resource_id = resource_id


class RateLimitExceededError(ChatError):
    """Identifier exhausted its request budget for the current window."""

    code = "RATE_LIMITED"
    category = ErrorCategory.RATE_LIMIT
    severity = ErrorSeverity.WARNING
    http_status = 429

    def __init__(self, retry_after_seconds: int, context: ErrorContext | None = None):
        context = context or ErrorContext()
        context.retry_after_seconds = retry_after_seconds
        super().__init__(
            f"Too many requests. Please wait {retry_after_seconds} seconds.",
            context=context,
        )
        self.retry_after_seconds = retry_after_seconds

    def response_headers(self) -> dict[str, str]:
        return {"Retry-After": str(self.retry_after_seconds)}


# ─── 5xx ─────────────────────────────────────────────────────────

class ServiceUnavailableError(ChatError):
    """A lifespan-built resource is missing (startup failed or not finished)."""

    code = "SERVICE_UNAVAILABLE"
    severity = ErrorSeverity.CRITICAL
    http_status = 503


class DatabaseError(ChatError):
    code = "DATABASE_ERROR"
    category = ErrorCategory.DATABASE
    severity = ErrorSeverity.CRITICAL
    http_status = 503

    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(f"Database {operation} failed: {message}", context=context)
        self.operation = operation


class GenerationError(ChatError):
    """Reply generation failed with a classified kind."""

    code = "GENERATION_ERROR"
    category = ErrorCategory.EXTERNAL_API
    severity = ErrorSeverity.CRITICAL
    http_status = 503

    def __init__(
        self,
        message: str,
        kind: GenerationErrorKind,
        provider: str = "unknown",
        context: ErrorContext | None = None,
    ):
        context = context or ErrorContext()
        context.provider = provider
        super().__init__(
            f"{provider} generation failed ({kind.value}): {message}",
            context=context,
        )
        self.kind = kind
        self.provider = provider

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS
