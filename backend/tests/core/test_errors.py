"""Error Hierarchy — status codes, response envelope and retryability.

Tests:
    - GenerationError.retryable follows RETRYABLE_KINDS
    - RateLimitExceededError → 429 with Retry-After header
    - to_response() never exposes debug_info
"""

import pytest

from app.core.domain_types import GenerationErrorKind, RETRYABLE_KINDS
from app.core.errors import (
    ChatError, DatabaseError, ErrorCategory, ErrorContext, GenerationError,
    RateLimitExceededError, ResourceNotFoundError,
)


@pytest.mark.parametrize("kind", list(GenerationErrorKind))
def test_generation_error_retryable_follows_kind(kind):
    error = GenerationError("failed", kind, "openai")
    assert error.retryable is (kind in RETRYABLE_KINDS)
    assert error.context.provider == "openai"


def test_generation_error_message_names_provider_and_kind():
    error = GenerationError("quota", GenerationErrorKind.RATE_LIMITED, "gemini")
    assert error.message == "gemini generation failed (rate_limited): quota"
    assert error.category is ErrorCategory.EXTERNAL_API


def test_rate_limit_error_carries_retry_after():
    error = RateLimitExceededError(42)

    assert error.http_status == 429
    assert error.response_headers() == {"Retry-After": "42"}
    assert error.to_response()["error"]["context"]["retry_after_seconds"] == 42


def test_not_found_is_404():
    error = ResourceNotFoundError("Conversation", "abc")
    assert error.http_status == 404
    assert error.to_response()["error"]["message"] == "Conversation 'abc' not found"


def test_database_error_is_503():
    error = DatabaseError("Connection or operational error", "execute")
    assert error.http_status == 503
    assert error.operation == "execute"
    assert isinstance(error, ChatError)


def test_response_prefers_user_message_and_hides_debug_info():
    ctx = ErrorContext(user_message="Please retry", debug_info={"dsn": "secret"})
    body = DatabaseError("boom", "query", ctx).to_response()

    assert body["error"]["message"] == "Please retry"
    assert "secret" not in str(body)


def test_base_error_has_no_extra_headers():
    assert ResourceNotFoundError("Conversation", "x").response_headers() == {}
