"""Dispatcher Factory — builds the ResilientDispatcher from settings.

Invariants:
    - Primary provider comes from llm_provider; construction failure is fatal
    - Fallback is llm_fallback_provider if set, else the first other provider
      (openai, gemini, anthropic order) with a configured key
    - A fallback that fails to construct is skipped, never fatal
    - Fallback is never the same provider as the primary

Design Decisions:
    - Explicit dict mapping from ProviderName to constructor (no auto-discovery)
"""

import logging
from collections.abc import Callable

from app.config import Settings
from app.core.domain_types import ProviderName
from app.core.errors import GenerationError
from app.core.repository_protocols import ReplyGenerator
from app.infrastructure.anthropic_client import AnthropicReplyGenerator
from app.infrastructure.gemini_client import GeminiReplyGenerator
from app.infrastructure.openai_client import OpenAIReplyGenerator
from app.services.resilient_dispatcher import ResilientDispatcher

logger = logging.getLogger(__name__)

_FALLBACK_ORDER = (ProviderName.OPENAI, ProviderName.GEMINI, ProviderName.ANTHROPIC)


def _builders(settings: Settings) -> dict[ProviderName, Callable[[], ReplyGenerator]]:
    common = {
        "timeout_seconds": settings.llm_timeout_seconds,
        "max_tokens": settings.llm_max_tokens,
        "temperature": settings.llm_temperature,
    }
    return {
        ProviderName.GEMINI: lambda: GeminiReplyGenerator(
            settings.gemini_api_key, settings.gemini_model, **common,
        ),
        ProviderName.OPENAI: lambda: OpenAIReplyGenerator(
            settings.openai_api_key, settings.openai_model, **common,
        ),
        ProviderName.ANTHROPIC: lambda: AnthropicReplyGenerator(
            settings.anthropic_api_key, settings.anthropic_model, **common,
        ),
    }


def select_fallback_provider(settings: Settings) -> ProviderName | None:
    """Pick the fallback provider for the configured primary, if any."""
    primary = settings.llm_provider
    if settings.llm_fallback_provider is not None:
        if settings.llm_fallback_provider == primary:
            return None
        return settings.llm_fallback_provider
    for candidate in _FALLBACK_ORDER:
        if candidate != primary and settings.api_key_for(candidate):
            return candidate
    return None


def build_dispatcher(settings: Settings) -> ResilientDispatcher:
    builders = _builders(settings)
    primary = builders[settings.llm_provider]()

    fallback: ReplyGenerator | None = None
    fallback_name = select_fallback_provider(settings)
    if fallback_name is not None:
        try:
            fallback = builders[fallback_name]()
        except GenerationError as e:
            logger.warning(
                f"Fallback provider {fallback_name.value} unavailable: {e.message}",
                extra={"provider": fallback_name.value},
            )

    logger.info(
        f"LLM primary: {primary.name}, fallback: "
        f"{fallback.name if fallback else 'none'}",
        extra={
            "provider": primary.name,
            "fallback_provider": fallback.name if fallback else None,
        },
    )
    return ResilientDispatcher(primary, fallback)
