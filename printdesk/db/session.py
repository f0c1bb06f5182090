"""SQLAlchemy engine, session factory and the store-wide change feed."""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from ..core.config import settings
from .changefeed import ChangeFeed

DB_URL = settings.database_url

# SQLite connections are shared between FastAPI worker threads.
CONNECT_ARGS = {"check_same_thread": False} if DB_URL.startswith("sqlite") else {}

engine = create_engine(DB_URL, connect_args=CONNECT_ARGS)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# Installed on the Session class so every session in the process, including
# ones built by tests against another engine, reports its commits.
change_feed = ChangeFeed()
change_feed.install(Session)


def get_db():
    """FastAPI dependency that yields a session and guarantees cleanup."""

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory():
    """Dependency for code that opens its own sessions (the WebSocket feed)."""

    return SessionLocal
