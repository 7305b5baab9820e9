"""
Database Package

SQLAlchemy engine/session setup, ORM tables and the traffic store.
"""

from .database import Base, SessionLocal, engine, get_db, init_db, make_engine
from .store import TrafficStore, SqlTrafficStore

__all__ = [
    "Base",
    "SessionLocal",
    "engine",
    "get_db",
    "init_db",
    "make_engine",
    "TrafficStore",
    "SqlTrafficStore",
]
