"""Database engine, sessions and ORM models."""

from .connection import close_db, engine, get_db, init_db

__all__ = ["engine", "get_db", "init_db", "close_db"]
