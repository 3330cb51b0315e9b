"""Gemini Reply Generator — single-prompt rendering and error classification."""

from datetime import datetime, timezone
from types import SimpleNamespace

import httpx
import pytest
from google.genai import errors as genai_errors

from app.core.domain_types import ConversationId, GenerationErrorKind, MessageRecord, SenderRole
from app.core.errors import GenerationError
from app.core.prompts import SYSTEM_PROMPT
from app.infrastructure.gemini_client import GeminiReplyGenerator


class _StubModels:
    def __init__(self, outcome):
        self.outcome = outcome
        self.kwargs = None

    async def generate_content(self, **kwargs):
        self.kwargs = kwargs
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome


class _UnreadableResponse:
    @property
    def text(self):
        raise ValueError("response has no candidates")


def _generator(outcome):
    models = _StubModels(outcome)
    client = SimpleNamespace(aio=SimpleNamespace(models=models))
    return GeminiReplyGenerator("gemini-test-key", client=client), models


def _api_error(cls, code, status, message="provider error"):
    return cls(code, {"error": {"code": code, "message": message, "status": status}})


async def test_returns_reply_text():
    generator, _ = _generator(SimpleNamespace(text=" Free shipping over $50. "))
    assert await generator.generate([], "Shipping?") == "Free shipping over $50."


async def test_prompt_renders_transcript_and_current_message():
    generator, models = _generator(SimpleNamespace(text="Sure"))
    now = datetime.now(timezone.utc)
    history = [
        MessageRecord("1", ConversationId("c"), SenderRole.USER, "Hi", now),
        MessageRecord("2", ConversationId("c"), SenderRole.ASSISTANT, "Hello!", now),
        MessageRecord("3", ConversationId("c"), SenderRole.USER, "Returns?", now),
    ]

    await generator.generate(history, "Returns?")

    prompt = models.kwargs["contents"]
    assert "Customer: Hi\nSupport Agent: Hello!" in prompt
    assert prompt.count("Returns?") == 1
    assert models.kwargs["config"].system_instruction == SYSTEM_PROMPT
    assert models.kwargs["model"] == "gemini-2.0-flash"


@pytest.mark.parametrize(
    ("error", "kind"),
    [
        (
            _api_error(genai_errors.ClientError, 403, "PERMISSION_DENIED"),
            GenerationErrorKind.INVALID_CREDENTIALS,
        ),
        (
            _api_error(
                genai_errors.ClientError, 400, "INVALID_ARGUMENT",
                "API key not valid. Please pass a valid API key.",
            ),
            GenerationErrorKind.INVALID_CREDENTIALS,
        ),
        (
            _api_error(genai_errors.ClientError, 429, "RESOURCE_EXHAUSTED"),
            GenerationErrorKind.RATE_LIMITED,
        ),
        (
            _api_error(genai_errors.ServerError, 504, "DEADLINE_EXCEEDED"),
            GenerationErrorKind.TIMEOUT,
        ),
        (
            _api_error(genai_errors.ServerError, 503, "UNAVAILABLE"),
            GenerationErrorKind.NETWORK_ERROR,
        ),
        (
            _api_error(genai_errors.ClientError, 400, "INVALID_ARGUMENT"),
            GenerationErrorKind.UNKNOWN,
        ),
        (httpx.ReadTimeout("read timed out"), GenerationErrorKind.TIMEOUT),
        (httpx.ConnectError("connection refused"), GenerationErrorKind.NETWORK_ERROR),
        (RuntimeError("surprise"), GenerationErrorKind.UNKNOWN),
    ],
)
async def test_errors_are_classified(error, kind):
    generator, _ = _generator(error)

    with pytest.raises(GenerationError) as exc_info:
        await generator.generate([], "Hello")

    assert exc_info.value.kind is kind
    assert exc_info.value.provider == "gemini"


async def test_unreadable_response_is_malformed():
    generator, _ = _generator(_UnreadableResponse())
    with pytest.raises(GenerationError) as exc_info:
        await generator.generate([], "Hello")
    assert exc_info.value.kind is GenerationErrorKind.MALFORMED_RESPONSE


async def test_missing_text_is_empty_response():
    generator, _ = _generator(SimpleNamespace(text=None))
    with pytest.raises(GenerationError) as exc_info:
        await generator.generate([], "Hello")
    assert exc_info.value.kind is GenerationErrorKind.EMPTY_RESPONSE


def test_missing_key_is_invalid_credentials():
    with pytest.raises(GenerationError) as exc_info:
        GeminiReplyGenerator(None)
    assert exc_info.value.kind is GenerationErrorKind.INVALID_CREDENTIALS
