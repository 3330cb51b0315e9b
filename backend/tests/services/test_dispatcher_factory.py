"""Dispatcher Factory — primary/fallback selection from settings.

Invariants:
    - Explicit fallback wins unless it names the primary
    - Implicit fallback: first keyed provider in openai → gemini → anthropic order
    - Unkeyed explicit fallback is skipped, not fatal
"""

from app.config import Settings
from app.core.domain_types import ProviderName
from app.services.dispatcher_factory import build_dispatcher, select_fallback_provider


def _settings(**overrides) -> Settings:
    values = {
        "llm_provider": ProviderName.GEMINI,
        "llm_fallback_provider": None,
        "gemini_api_key": "gemini-test-key",
        "openai_api_key": None,
        "anthropic_api_key": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def test_no_other_keys_means_no_fallback():
    assert select_fallback_provider(_settings()) is None


def test_implicit_fallback_prefers_openai():
    settings = _settings(openai_api_key="sk-test", anthropic_api_key="sk-ant-test")
    assert select_fallback_provider(settings) is ProviderName.OPENAI


def test_implicit_fallback_skips_primary():
    settings = _settings(
        llm_provider=ProviderName.OPENAI,
        openai_api_key="sk-test",
        anthropic_api_key="sk-ant-test",
    )
    assert select_fallback_provider(settings) is ProviderName.GEMINI


def test_explicit_fallback_wins():
    settings = _settings(
        openai_api_key="sk-test",
        anthropic_api_key="sk-ant-test",
        llm_fallback_provider=ProviderName.ANTHROPIC,
    )
    assert select_fallback_provider(settings) is ProviderName.ANTHROPIC


def test_explicit_fallback_equal_to_primary_is_ignored():
    settings = _settings(llm_fallback_provider=ProviderName.GEMINI)
    assert select_fallback_provider(settings) is None


def test_build_dispatcher_wires_primary_and_fallback():
    dispatcher = build_dispatcher(_settings(openai_api_key="sk-test"))
    assert dispatcher.primary.name == "gemini"
    assert dispatcher.fallback.name == "openai"


def test_build_dispatcher_without_fallback():
    dispatcher = build_dispatcher(_settings())
    assert dispatcher.fallback is None


def test_unkeyed_explicit_fallback_is_skipped():
    dispatcher = build_dispatcher(
        _settings(llm_fallback_provider=ProviderName.ANTHROPIC),
    )
    assert dispatcher.primary.name == "gemini"
    assert dispatcher.fallback is None


def test_generation_settings_passed_to_providers():
    dispatcher = build_dispatcher(
        _settings(
            llm_provider=ProviderName.ANTHROPIC,
            anthropic_api_key="sk-ant-test",
            anthropic_model="claude-test",
            llm_timeout_seconds=5,
            llm_max_tokens=256,
        ),
    )
    assert dispatcher.primary.model == "claude-test"
    assert dispatcher.primary.timeout_seconds == 5
    assert dispatcher.primary.max_tokens == 256
