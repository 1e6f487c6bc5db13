"""
Database Session Management

Synchronous SQLAlchemy engine and session factory for the record store.
"""

import logging

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """Create the database engine."""
    logger.info(f"Creating engine with URL: {url[:60]}")

    connect_args = {}
    kwargs = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        if ":memory:" in url or url.rstrip("/") == "sqlite:":
            # One shared connection so every session sees the same database
            kwargs["poolclass"] = StaticPool

    return create_engine(url, echo=echo, connect_args=connect_args, **kwargs)


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create the session maker bound to an engine."""
    return sessionmaker(
        engine,
        class_=Session,
        expire_on_commit=False,
        autoflush=False,
    )


def init_db(engine: Engine) -> None:
    """Create tables if they don't exist."""
    from geoaccess.api.db.models import Base

    logger.info("Initializing database schema")
    Base.metadata.create_all(engine)


def close_db(engine: Engine) -> None:
    """Dispose of the engine's connection pool."""
    engine.dispose()
    logger.info("Database connection closed")
