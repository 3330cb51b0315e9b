"""Settings — every tunable of the chat service, read from the environment.

Invariants:
    - Secrets (API keys, URLs with credentials) only ever come from env / .env
    - Construction fails fast when llm_provider has no API key
    - get_settings() returns one cached instance per process

Design Decisions:
    - Chat policy knobs (window, TTL, history size) are settings, not
      constants, so staging can run tighter limits than production
    - redis_url optional: the service runs degraded (fail-open limiter, cache
      always "unknown") rather than refusing to start
"""

from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.core.domain_types import ProviderName


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://chat:chat@db:5432/chat"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres provides postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Counter / cache store
    redis_url: str | None = None
    redis_socket_timeout_seconds: float = 2.0
    redis_reconnect_backoff_seconds: float = 5.0

    # LLM providers
    llm_provider: ProviderName = ProviderName.GEMINI
    llm_fallback_provider: ProviderName | None = None
    gemini_api_key: str | None = None
    openai_api_key: str | None = None
    anthropic_api_key: str | None = None
    gemini_model: str = "gemini-2.0-flash"
    openai_model: str = "gpt-4o-mini"
    anthropic_model: str = "claude-3-5-haiku-latest"
    llm_timeout_seconds: float = 30.0
    llm_max_tokens: int = 1024
    llm_temperature: float = 0.7

    # Chat policy
    rate_limit_max_requests: int = 15
    rate_limit_window_seconds: int = 60
    session_cache_ttl_seconds: int = 6 * 60 * 60
    history_limit: int = 10

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @model_validator(mode="after")
    def require_primary_key(self):
        if not self.api_key_for(self.llm_provider):
            raise ValueError(
                f"LLM_PROVIDER={self.llm_provider.value} requires "
                f"{self.llm_provider.value.upper()}_API_KEY",
            )
        return self

    def api_key_for(self, provider: ProviderName) -> str | None:
        return {
            ProviderName.GEMINI: self.gemini_api_key,
            ProviderName.OPENAI: self.openai_api_key,
            ProviderName.ANTHROPIC: self.anthropic_api_key,
        }[provider]


@lru_cache
def get_settings() -> Settings:
    return Settings()
