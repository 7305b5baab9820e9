"""
Database Configuration and Session Management

This module provides the SQLAlchemy engine, session factory,
and database initialization utilities.
"""

import os
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from trafficview.logger import get_logger

logger = get_logger(__name__)

# Ensure data directory exists
DATA_DIR = Path(__file__).parent.parent.parent / "data"
DATA_DIR.mkdir(exist_ok=True)

# Database URL - SQLite by default
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"sqlite:///{DATA_DIR}/traffic_view.db"
)


def make_engine(url: str) -> Engine:
    """
    Create an engine for the given URL

    SQLite connections are shared across threads because store queries
    run in worker threads. In-memory SQLite uses a single static
    connection so every session sees the same database.
    """
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url == "sqlite://":
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=False, **kwargs)
    return create_engine(url, echo=False, pool_pre_ping=True)


# Create SQLAlchemy engine
engine = make_engine(DATABASE_URL)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for ORM models
Base = declarative_base()


def get_db():
    """
    Dependency for FastAPI - provides database session

    Usage in FastAPI endpoint:
        @app.get("/items")
        def get_items(db: Session = Depends(get_db)):
            return db.query(Item).all()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Optional[Engine] = None):
    """
    Initialize database - create all tables

    Called on application startup to ensure all tables exist.
    """
    from trafficview.database import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
    logger.info("[DB] Database initialized at: %s", (bind or engine).url)
