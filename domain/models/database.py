"""
Database configuration and session management.
"""

import logging
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger("labeliq.database")

# Create SQLAlchemy Base
Base = declarative_base()


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine for the persistent store.

    SQLite connections are shared across worker threads; an in-memory SQLite
    database is pinned to a single connection so every session sees it.
    """
    kwargs = {"echo": echo, "future": True}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(database_url, **kwargs)


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to the given engine"""
    return sessionmaker(bind=engine, future=True, expire_on_commit=False)


def init_database(engine: Engine):
    """Initialize database schema"""
    # Import models so they register with Base.metadata
    import domain.models  # noqa: F401

    with engine.begin() as conn:
        Base.metadata.create_all(bind=conn)
    logger.info("Database tables created successfully")
