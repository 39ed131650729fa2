"""Persistence layer (async SQLAlchemy)."""

from specrecon.db.connection import close_db, get_engine, get_session, init_db
from specrecon.db.models import Base

__all__ = ["Base", "close_db", "get_engine", "get_session", "init_db"]
