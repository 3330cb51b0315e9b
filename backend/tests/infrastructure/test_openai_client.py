"""OpenAI Reply Generator — request shape and SDK error classification.

Invariants:
    - System prompt first, prior turns next, current message last (sent once)
    - Every SDK failure becomes a GenerationError with the matching kind
    - Missing API key fails at construction as invalid_credentials
"""

import asyncio
from datetime import datetime, timezone
from types import SimpleNamespace

import httpx
import openai
import pytest

from app.core.domain_types import ConversationId, GenerationErrorKind, MessageRecord, SenderRole
from app.core.errors import GenerationError
from app.core.prompts import SYSTEM_PROMPT
from app.infrastructure.openai_client import OpenAIReplyGenerator

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _response(status: int) -> httpx.Response:
    return httpx.Response(status, request=_REQUEST)


def _completion(content):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
    )


class _StubCompletions:
    def __init__(self, outcome):
        self.outcome = outcome
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        if callable(self.outcome):
            return await self.outcome()
        return self.outcome


def _generator(outcome, timeout_seconds=30.0):
    completions = _StubCompletions(outcome)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    generator = OpenAIReplyGenerator(
        "sk-test", timeout_seconds=timeout_seconds, client=client,
    )
    return generator, completions


def _record(role, content):
    return MessageRecord(
        id="m", conversation_id=ConversationId("c"), role=role,
        content=content, created_at=datetime.now(timezone.utc),
    )


async def test_returns_stripped_reply():
    generator, _ = _generator(_completion("  We ship in 5-7 days.  "))
    assert await generator.generate([], "Shipping?") == "We ship in 5-7 days."


async def test_request_contains_system_prompt_and_history_once():
    generator, completions = _generator(_completion("Sure"))
    history = [
        _record(SenderRole.USER, "Hi"),
        _record(SenderRole.ASSISTANT, "Hello!"),
        _record(SenderRole.USER, "Returns?"),
    ]

    await generator.generate(history, "Returns?")

    assert completions.kwargs["messages"] == [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": "Hi"},
        {"role": "assistant", "content": "Hello!"},
        {"role": "user", "content": "Returns?"},
    ]
    assert completions.kwargs["model"] == "gpt-4o-mini"


def test_missing_key_is_invalid_credentials():
    with pytest.raises(GenerationError) as exc_info:
        OpenAIReplyGenerator(None)
    assert exc_info.value.kind is GenerationErrorKind.INVALID_CREDENTIALS
    assert exc_info.value.provider == "openai"


@pytest.mark.parametrize(
    ("error", "kind"),
    [
        (
            openai.AuthenticationError("bad key", response=_response(401), body=None),
            GenerationErrorKind.INVALID_CREDENTIALS,
        ),
        (
            openai.PermissionDeniedError("denied", response=_response(403), body=None),
            GenerationErrorKind.INVALID_CREDENTIALS,
        ),
        (
            openai.RateLimitError("slow down", response=_response(429), body=None),
            GenerationErrorKind.RATE_LIMITED,
        ),
        (openai.APITimeoutError(request=_REQUEST), GenerationErrorKind.TIMEOUT),
        (
            openai.APIConnectionError(request=_REQUEST),
            GenerationErrorKind.NETWORK_ERROR,
        ),
        (
            openai.InternalServerError("boom", response=_response(500), body=None),
            GenerationErrorKind.NETWORK_ERROR,
        ),
        (
            openai.APIStatusError("gateway", response=_response(504), body=None),
            GenerationErrorKind.TIMEOUT,
        ),
        (
            openai.BadRequestError("bad", response=_response(400), body=None),
            GenerationErrorKind.UNKNOWN,
        ),
        (ValueError("surprise"), GenerationErrorKind.UNKNOWN),
    ],
)
async def test_sdk_errors_are_classified(error, kind):
    generator, _ = _generator(error)

    with pytest.raises(GenerationError) as exc_info:
        await generator.generate([], "Hello")

    assert exc_info.value.kind is kind
    assert exc_info.value.provider == "openai"


async def test_slow_call_times_out():
    async def slow():
        await asyncio.sleep(1)

    generator, _ = _generator(slow, timeout_seconds=0.01)

    with pytest.raises(GenerationError) as exc_info:
        await generator.generate([], "Hello")
    assert exc_info.value.kind is GenerationErrorKind.TIMEOUT


async def test_blank_content_is_empty_response():
    generator, _ = _generator(_completion("   "))
    with pytest.raises(GenerationError) as exc_info:
        await generator.generate([], "Hello")
    assert exc_info.value.kind is GenerationErrorKind.EMPTY_RESPONSE


async def test_missing_choices_is_malformed_response():
    generator, _ = _generator(SimpleNamespace(choices=[]))
    with pytest.raises(GenerationError) as exc_info:
        await generator.generate([], "Hello")
    assert exc_info.value.kind is GenerationErrorKind.MALFORMED_RESPONSE
