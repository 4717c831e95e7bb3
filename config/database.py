"""
HomelyEats - Database Configuration
=====================================
Base, engine/session factory builders, and get_db dependency.
All models across all modules inherit from this Base.

The engine and session factory are built once by main.create_app() and kept
on app.state; nothing here connects at import time.
"""

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def build_engine(database_url: str) -> Engine:
    """Create the SQLAlchemy engine. In-memory SQLite shares one connection."""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)

    return create_engine(
        database_url,
        pool_size=20,
        max_overflow=40,
        pool_timeout=30,
        pool_recycle=1800,  # Refresh connections every 30 minutes
        pool_pre_ping=True,
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(request: Request):
    """FastAPI dependency: yields a database session, auto-closes after request."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
