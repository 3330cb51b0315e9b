"""Service test fixtures — async DB, fake counter store, scripted providers, test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - Repositories run through DatabaseSessionManager (same error mapping as prod)
    - get_orchestrator overridden so routes use the test orchestrator
    - db_manager patched so the readiness probe sees the test engine

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for service tests
      (PostgreSQL-specific DDL lives only in the migration)
    - Generators are fixtures returning ScriptedGenerator: tests re-script them
      by building their own orchestrator via make_orchestrator
"""

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from app.api.deps import get_orchestrator
from app.db.base import Base
from app.infrastructure.database import DatabaseSessionManager
from app.infrastructure.repositories import (
    SqlConversationRepository, SqlMessageRepository,
)
from app.services.chat_orchestrator import ConversationOrchestrator
from app.services.rate_limiter import RateLimiter
from app.services.resilient_dispatcher import ResilientDispatcher
from app.services.session_cache import SessionExistenceCache
import app.infrastructure.database as db_module
from app.main import app

from tests.services.fakes import FakeCounterStore, ScriptedGenerator


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def db_manager(test_engine):
    return DatabaseSessionManager.from_engine(test_engine)


@pytest.fixture
def conversations(db_manager):
    return SqlConversationRepository(db_manager)


@pytest.fixture
def messages(db_manager):
    return SqlMessageRepository(db_manager)


@pytest.fixture
def counter_store():
    return FakeCounterStore()


@pytest.fixture
def primary():
    return ScriptedGenerator("gemini", "Hello! How can I help you today?")


@pytest.fixture
def make_orchestrator(conversations, messages, counter_store, primary):
    """Build an orchestrator over the test DB; keyword overrides swap collaborators."""

    def _make(
        primary_generator=None,
        fallback_generator=None,
        conversation_repo=None,
        message_repo=None,
        max_requests=15,
        history_limit=10,
    ) -> ConversationOrchestrator:
        return ConversationOrchestrator(
            conversations=conversation_repo or conversations,
            messages=message_repo or messages,
            session_cache=SessionExistenceCache(counter_store),
            rate_limiter=RateLimiter(counter_store, max_requests=max_requests),
            dispatcher=ResilientDispatcher(
                primary_generator or primary, fallback_generator,
            ),
            history_limit=history_limit,
        )

    return _make


@pytest.fixture
def orchestrator(make_orchestrator):
    return make_orchestrator()


@pytest.fixture
async def client(orchestrator, db_manager, counter_store):
    """FastAPI test client wired to the test orchestrator."""
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator

    original_manager = db_module.db_manager
    db_module.db_manager = db_manager
    app.state.counter_store = counter_store

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
    del app.state.counter_store
