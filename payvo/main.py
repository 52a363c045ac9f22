"""
FastAPI application and entry point.

This module creates and configures the FastAPI application:
  1. Lifespan manager — logging setup, account store, directory and
     voice session registry on startup; engine disposal on shutdown
  2. CORS middleware — allows frontend origins to make cross-origin requests
  3. Exception handlers — maps domain errors to HTTP responses
  4. Router registration — mounts all API endpoint groups

Running locally:
    uvicorn payvo.main:app --reload

Shared state:
  The AccountDirectory and SessionRegistry live on app.state, created once
  per process. Nothing else holds ledger state.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from payvo.config import settings
from payvo.database import engine
from payvo.exceptions import register_exception_handlers
from payvo.logging_config import configure_logging
from payvo.routers import accounts, auth, contacts, money, requests, voice
from payvo.services.account_store import SqlAccountStore
from payvo.services.directory import AccountDirectory
from payvo.services.speech import LoggingNarrator
from payvo.services.voice_session import SessionRegistry

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
      Configures logging, opens the SQL account store (creating tables if
      needed) and loads every account into the directory.

    Shutdown:
      Disposes of the database engine, closing all connections cleanly.
      The store is written through on every mutation, so there is nothing
      to flush.
    """
    # --- Startup ---
    configure_logging()
    directory = AccountDirectory(SqlAccountStore())
    app.state.directory = directory
    app.state.sessions = SessionRegistry(directory, narrator_factory=LoggingNarrator)
    logger.info("app.started", accounts=len(directory.accounts), version=settings.APP_VERSION)
    yield
    # --- Shutdown ---
    engine.dispose()
    logger.info("app.stopped")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Voice-driven personal ledger: balances, contacts, sends, splits and money requests",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

# In production, lock this down to the actual frontend domain(s)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(auth.router, prefix="/auth", tags=["Auth"])
app.include_router(accounts.router, prefix="/accounts", tags=["Accounts"])
app.include_router(contacts.router, prefix="/contacts", tags=["Contacts"])
app.include_router(money.router, prefix="/money", tags=["Money"])
app.include_router(requests.router, prefix="/requests", tags=["Money Requests"])
app.include_router(voice.router, prefix="/voice", tags=["Voice"])


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness probe for deployments."""
    return {"status": "ok", "version": settings.APP_VERSION}
