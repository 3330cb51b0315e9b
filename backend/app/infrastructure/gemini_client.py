"""Gemini Reply Generator — google-genai async client with error classification.

Invariants:
    - 401/403 and API-key 400s → invalid_credentials
    - 429 / RESOURCE_EXHAUSTED → rate_limited; 408/504 and httpx timeouts → timeout
    - Transport failures and other 5xx → network_error
    - Blank text → empty_response; unreadable response object → malformed_response

Design Decisions:
    - Single-prompt rendering (labelled transcript + current message) with the
      system prompt passed as system_instruction
"""

import asyncio
import logging
from collections.abc import Sequence

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from app.core.domain_types import GenerationErrorKind, MessageRecord
from app.core.errors import GenerationError
from app.core.prompts import SYSTEM_PROMPT, build_single_prompt

logger = logging.getLogger(__name__)

_TIMEOUT_STATUSES = {408, 504}


class GeminiReplyGenerator:
    """ReplyGenerator backed by Gemini generate_content."""

    name = "gemini"

    def __init__(
        self,
        api_key: str | None,
        model: str = "gemini-2.0-flash",
        timeout_seconds: float = 30.0,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        client=None,
    ):
        if not api_key:
            raise GenerationError(
                "Gemini API key is not configured",
                GenerationErrorKind.INVALID_CREDENTIALS, self.name,
            )
        self.client = client or genai.Client(
            api_key=api_key,
            http_options=genai_types.HttpOptions(timeout=int(timeout_seconds * 1000)),
        )
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.config = genai_types.GenerateContentConfig(
            system_instruction=SYSTEM_PROMPT,
            max_output_tokens=max_tokens,
            temperature=temperature,
        )

    async def generate(
        self, history: Sequence[MessageRecord], message: str,
    ) -> str:
        prompt = build_single_prompt(history, message)
        try:
            response = await asyncio.wait_for(
                self.client.aio.models.generate_content(
                    model=self.model, contents=prompt, config=self.config,
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise self._error("Request timed out", GenerationErrorKind.TIMEOUT)
        except genai_errors.APIError as e:
            raise self._error(
                e.message or str(e), self._classify_api_error(e),
            )
        except httpx.TimeoutException:
            raise self._error("Request timed out", GenerationErrorKind.TIMEOUT)
        except httpx.TransportError as e:
            raise self._error(f"Network error: {e}", GenerationErrorKind.NETWORK_ERROR)
        except Exception as e:
            logger.error(f"Unexpected Gemini error: {e}", exc_info=True)
            raise self._error("Failed to generate response", GenerationErrorKind.UNKNOWN)

        return self._extract_text(response)

    @staticmethod
    def _classify_api_error(e: genai_errors.APIError) -> GenerationErrorKind:
        code = e.code or 0
        detail = f"{e.status or ''} {e.message or ''}".lower()
        if code in (401, 403) or (code == 400 and "api key" in detail):
            return GenerationErrorKind.INVALID_CREDENTIALS
        if code == 429 or "resource_exhausted" in detail:
            return GenerationErrorKind.RATE_LIMITED
        if code in _TIMEOUT_STATUSES:
            return GenerationErrorKind.TIMEOUT
        if code >= 500:
            return GenerationErrorKind.NETWORK_ERROR
        return GenerationErrorKind.UNKNOWN

    def _extract_text(self, response) -> str:
        try:
            text = response.text
        except (AttributeError, ValueError) as e:
            raise self._error(
                f"Unreadable response: {e}", GenerationErrorKind.MALFORMED_RESPONSE,
            )
        text = text.strip() if isinstance(text, str) else ""
        if not text:
            raise self._error(
                "Received empty response from Gemini", GenerationErrorKind.EMPTY_RESPONSE,
            )
        return text

    def _error(self, message: str, kind: GenerationErrorKind) -> GenerationError:
        return GenerationError(message, kind, self.name)
