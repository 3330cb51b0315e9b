"""OpenAI Reply Generator — AsyncOpenAI chat completions with error classification.

Invariants:
    - 401/403 → invalid_credentials; 429 → rate_limited
    - 408/504 and client-side timeouts → timeout
    - Connection failures and other 5xx → network_error
    - Blank content → empty_response; no choices → malformed_response

Design Decisions:
    - SDK max_retries=0 and an asyncio.wait_for bound: one attempt per call,
      the dispatcher decides whether a fallback runs
    - APITimeoutError is a subclass of APIConnectionError: caught first
"""

import asyncio
import logging
from collections.abc import Sequence

import openai
from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AuthenticationError,
    PermissionDeniedError,
    RateLimitError,
)

from app.core.domain_types import GenerationErrorKind, MessageRecord
from app.core.errors import GenerationError
from app.core.prompts import SYSTEM_PROMPT, build_chat_turns

logger = logging.getLogger(__name__)

_TIMEOUT_STATUSES = {408, 504}


class OpenAIReplyGenerator:
    """ReplyGenerator backed by OpenAI chat completions."""

    name = "openai"

    def __init__(
        self,
        api_key: str | None,
        model: str = "gpt-4o-mini",
        timeout_seconds: float = 30.0,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        client=None,
    ):
        if not api_key:
            raise GenerationError(
                "OpenAI API key is not configured",
                GenerationErrorKind.INVALID_CREDENTIALS, self.name,
            )
        self.client = client or openai.AsyncOpenAI(
            api_key=api_key, timeout=timeout_seconds, max_retries=0,
        )
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def generate(
        self, history: Sequence[MessageRecord], message: str,
    ) -> str:
        messages = [{"role": "system", "content": SYSTEM_PROMPT}]
        messages.extend(build_chat_turns(history, message))
        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise self._error("Request timed out", GenerationErrorKind.TIMEOUT)
        except (AuthenticationError, PermissionDeniedError):
            raise self._error(
                "Invalid OpenAI API key", GenerationErrorKind.INVALID_CREDENTIALS,
            )
        except RateLimitError:
            raise self._error("Rate limit exceeded", GenerationErrorKind.RATE_LIMITED)
        except APITimeoutError:
            raise self._error("Request timed out", GenerationErrorKind.TIMEOUT)
        except APIConnectionError as e:
            raise self._error(f"Network error: {e}", GenerationErrorKind.NETWORK_ERROR)
        except APIStatusError as e:
            raise self._error(str(e), self._classify_status(e.status_code))
        except Exception as e:
            logger.error(f"Unexpected OpenAI error: {e}", exc_info=True)
            raise self._error("Failed to generate response", GenerationErrorKind.UNKNOWN)

        return self._extract_text(response)

    @staticmethod
    def _classify_status(status: int) -> GenerationErrorKind:
        if status in (401, 403):
            return GenerationErrorKind.INVALID_CREDENTIALS
        if status == 429:
            return GenerationErrorKind.RATE_LIMITED
        if status in _TIMEOUT_STATUSES:
            return GenerationErrorKind.TIMEOUT
        if status >= 500:
            return GenerationErrorKind.NETWORK_ERROR
        return GenerationErrorKind.UNKNOWN

    def _extract_text(self, response) -> str:
        choices = getattr(response, "choices", None)
        if not choices:
            raise self._error(
                "Response carried no choices", GenerationErrorKind.MALFORMED_RESPONSE,
            )
        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None)
        text = content.strip() if isinstance(content, str) else ""
        if not text:
            raise self._error(
                "Received empty response from OpenAI", GenerationErrorKind.EMPTY_RESPONSE,
            )
        return text

    def _error(self, message: str, kind: GenerationErrorKind) -> GenerationError:
        return GenerationError(message, kind, self.name)
