"""Root conftest — shared test configuration."""

import os

# Ensure tests don't accidentally use real API keys or a real Redis
os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ.setdefault("OPENAI_API_KEY", "sk-test-fake-key")
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)
os.environ.pop("REDIS_URL", None)
