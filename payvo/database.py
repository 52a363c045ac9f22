"""
Database engine, session factory, and base model class.

This module sets up SQLAlchemy 2.0 for the SQL account store. Key components:

  - create_store_engine(): builds an engine for a database URL
  - engine / SessionLocal: the application's default engine and session factory
  - Base: Declarative base class that all ORM models inherit from

Architecture note:
  The engine is synchronous. A voice command is one bounded, synchronous
  call chain (interpret -> guard -> ledger -> store) with no suspension
  points, and the store is written through on every mutation. Route
  handlers are plain functions, so that chain runs in FastAPI's threadpool
  and never on the event loop. When migrating to PostgreSQL, only
  DATABASE_URL needs to change.

SQLite note:
  In-memory SQLite ("sqlite://") gives every connection its own empty
  database, so it is pinned to a single shared connection with StaticPool.
  check_same_thread is disabled because FastAPI runs sync code in a
  threadpool; the account directory's lock serializes writers.
"""

from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from payvo.config import settings


def create_store_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create a synchronous engine for the account store.

    For file-based SQLite, the parent directory is created on demand.
    """
    url = make_url(database_url)
    kwargs: dict = {"echo": echo}

    if url.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        else:
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    return create_engine(url, **kwargs)


# echo=True in debug mode logs all SQL statements
engine = create_store_engine(settings.DATABASE_URL, echo=settings.DEBUG)

# expire_on_commit=False so rows stay readable after the write-through commit
SessionLocal = sessionmaker(engine, expire_on_commit=False)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Provides metadata tracking (used by Base.metadata.create_all in the
    store) and the common declarative mapping features.
    """
    pass
