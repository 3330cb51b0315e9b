"""Support Chat API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map ChatError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database, counter store and dispatcher built once in the lifespan and
      injected into the orchestrator; the counter store and engine are
      closed on shutdown

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Resources live on app.state, not module globals, so tests can run the
      app with hand-built orchestrators
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.error_handlers import register_error_handlers
from app.api.routes import chat, health
from app.config import Settings, get_settings
from app.infrastructure.database import DatabaseSessionManager, init_db
from app.infrastructure.observability import setup_logging
from app.infrastructure.redis_store import RedisCounterStore
from app.infrastructure.repositories import (
    SqlConversationRepository, SqlMessageRepository,
)
from app.services.chat_orchestrator import ConversationOrchestrator
from app.services.dispatcher_factory import build_dispatcher
from app.services.rate_limiter import RateLimiter
from app.services.session_cache import SessionExistenceCache

logger = logging.getLogger(__name__)


def build_orchestrator(
    settings: Settings,
    db: DatabaseSessionManager,
    counter_store: RedisCounterStore,
) -> ConversationOrchestrator:
    """Wire the chat orchestrator from already-initialized resources."""
    return ConversationOrchestrator(
        conversations=SqlConversationRepository(db),
        messages=SqlMessageRepository(db),
        session_cache=SessionExistenceCache(
            counter_store, ttl_seconds=settings.session_cache_ttl_seconds,
        ),
        rate_limiter=RateLimiter(
            counter_store,
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
        ),
        dispatcher=build_dispatcher(settings),
        history_limit=settings.history_limit,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    db = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    counter_store = RedisCounterStore(
        settings.redis_url,
        settings.redis_socket_timeout_seconds,
        reconnect_backoff_seconds=settings.redis_reconnect_backoff_seconds,
    )
    await counter_store.connect()

    app.state.counter_store = counter_store
    app.state.orchestrator = build_orchestrator(settings, db, counter_store)
    logger.info("Support Chat API started")
    yield
    logger.info("Support Chat API shutting down")
    await counter_store.close()
    await db.close()


app = FastAPI(
    title="Support Chat API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(chat.router)

register_error_handlers(app)
