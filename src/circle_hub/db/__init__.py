# src/circle_hub/db/__init__.py
"""Database engine, sessions, and time helpers."""

from .session import SessionLocal, create_tables, get_db

__all__ = ["get_db", "create_tables", "SessionLocal"]
