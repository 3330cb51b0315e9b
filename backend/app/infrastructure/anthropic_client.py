"""Anthropic Reply Generator — wraps AsyncAnthropic with a timeout and error classification.

Invariants:
    - Auth/permission errors (401/403) → invalid_credentials (never retried)
    - Rate limits (429) → rate_limited; timeouts → timeout
    - Connection errors, 5xx and 529 Overloaded → network_error
    - Blank text → empty_response; response without content blocks → malformed_response
    - Every failure leaves as GenerationError (core/errors.py)

Design Decisions:
    - SDK max_retries=0: retrying belongs to the dispatcher's single fallback,
      not to hidden SDK loops that would blow through the timeout
    - Messages API needs strictly alternating turns starting with "user":
      history is normalized before sending
"""

import asyncio
import logging
from collections.abc import Sequence

import anthropic
from anthropic import (
    APIError,
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AuthenticationError,
    PermissionDeniedError,
    RateLimitError,
    InternalServerError,
)

from app.core.domain_types import GenerationErrorKind, MessageRecord
from app.core.errors import GenerationError
from app.core.prompts import SYSTEM_PROMPT, build_chat_turns, normalize_turns

logger = logging.getLogger(__name__)

# OverloadedError (HTTP 529) isn't re-exported by every SDK release.
# Detect via status code on APIStatusError instead of a private import.
_OVERLOADED_STATUS = 529


def _is_overloaded(e: APIError) -> bool:
    """Check if error is Anthropic 529 Overloaded."""
    return isinstance(e, APIStatusError) and e.status_code == _OVERLOADED_STATUS


class AnthropicReplyGenerator:
    """ReplyGenerator backed by the Anthropic Messages API."""

    name = "anthropic"

    def __init__(
        self,
        api_key: str | None,
        model: str = "claude-3-5-haiku-latest",
        timeout_seconds: float = 30.0,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        client=None,
    ):
        if not api_key:
            raise GenerationError(
                "Anthropic API key is not configured",
                GenerationErrorKind.INVALID_CREDENTIALS, self.name,
            )
        self.client = client or anthropic.AsyncAnthropic(
            api_key=api_key, timeout=timeout_seconds, max_retries=0,
        )
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def generate(
        self, history: Sequence[MessageRecord], message: str,
    ) -> str:
        messages = normalize_turns(build_chat_turns(history, message))
        try:
            response = await asyncio.wait_for(
                self.client.messages.create(
                    model=self.model,
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                    system=SYSTEM_PROMPT,
                    messages=messages,
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise self._error("Request timed out", GenerationErrorKind.TIMEOUT)
        except (AuthenticationError, PermissionDeniedError):
            raise self._error(
                "Invalid Anthropic API key", GenerationErrorKind.INVALID_CREDENTIALS,
            )
        except RateLimitError:
            raise self._error("Rate limit exceeded", GenerationErrorKind.RATE_LIMITED)
        except APITimeoutError:
            raise self._error("Request timed out", GenerationErrorKind.TIMEOUT)
        except (APIConnectionError, InternalServerError) as e:
            raise self._error(f"Connection error: {e}", GenerationErrorKind.NETWORK_ERROR)
        except APIError as e:
            if _is_overloaded(e):
                raise self._error(
                    "Anthropic API overloaded (529)", GenerationErrorKind.NETWORK_ERROR,
                )
            raise self._error(str(e), GenerationErrorKind.UNKNOWN)
        except Exception as e:
            logger.error(f"Unexpected Anthropic error: {e}", exc_info=True)
            raise self._error("Failed to generate response", GenerationErrorKind.UNKNOWN)

        return self._extract_text(response)

    def _extract_text(self, response) -> str:
        content = getattr(response, "content", None)
        if not isinstance(content, list) or not content:
            raise self._error(
                "Response carried no content blocks",
                GenerationErrorKind.MALFORMED_RESPONSE,
            )
        text = "".join(
            getattr(block, "text", "") or ""
            for block in content
            if getattr(block, "type", None) == "text"
        ).strip()
        if not text:
            raise self._error(
                "Received empty response from Anthropic",
                GenerationErrorKind.EMPTY_RESPONSE,
            )
        return text

    def _error(self, message: str, kind: GenerationErrorKind) -> GenerationError:
        return GenerationError(message, kind, self.name)
