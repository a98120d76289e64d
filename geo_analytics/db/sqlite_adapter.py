"""
SQLite Engine Configuration

This module builds the SQLAlchemy async engine used by the counter store.
All SQLite-specific configuration is encapsulated here.

Key characteristics:
- File-based (single .db file, created if absent)
- Single writer: the store owns exactly one connection
- aiosqlite runs the synchronous sqlite3 driver on its own thread, so no
  statement ever blocks the event loop
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool


def build_database_url(path: str) -> str:
    """
    Turn a filesystem path into a SQLite connection string.

    Args:
        path: Path to the database file, or ":memory:"

    Returns:
        sqlite+aiosqlite:/// URL
    """
    return f"sqlite+aiosqlite:///{path}"


def get_connect_args() -> dict[str, Any]:
    """
    Get SQLite-specific connection arguments.

    Returns:
        Dictionary with SQLite connection arguments
    """
    return {
        "timeout": 30,
    }


def create_sqlite_engine(path: str, **kwargs) -> AsyncEngine:
    """
    Create the SQLite async engine for a counter store.

    StaticPool keeps exactly one connection: the store checks it out once and
    holds it for its whole lifetime.

    Args:
        path: Path to the database file
        **kwargs: Additional engine options (merged with SQLite defaults)

    Returns:
        Configured AsyncEngine for SQLite
    """
    engine_kwargs: dict[str, Any] = {
        "echo": False,  # Set to True only for SQL debugging in development
    }
    engine_kwargs.update(kwargs)

    return create_async_engine(
        build_database_url(path),
        poolclass=StaticPool,
        connect_args=get_connect_args(),
        **engine_kwargs
    )
