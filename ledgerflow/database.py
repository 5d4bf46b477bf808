"""
Database configuration and session management.

Provides the SQLAlchemy engine, session factory and table creation.
"""
from functools import lru_cache
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from ledgerflow.config import get_settings

# Create declarative base for models
Base = declarative_base()


def build_engine(database_url: str) -> Engine:
    """Create an engine with settings suited to the database flavour."""
    # In-memory SQLite lives on one connection
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    # SQLite doesn't support pool_size/max_overflow
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


@lru_cache
def get_engine() -> Engine:
    """Engine for the configured DATABASE_URL."""
    return build_engine(get_settings().database_url)


def get_session_factory(engine: Optional[Engine] = None) -> sessionmaker:
    """Session factory bound to the given or the configured engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine or get_engine())


def init_db(engine: Optional[Engine] = None) -> None:
    """Initialize database tables."""
    # Import models to ensure they're registered with Base
    from ledgerflow.models import records  # noqa: F401

    Base.metadata.create_all(bind=engine or get_engine())
