"""
Database connection utilities.
The engine is built lazily so modules that only parse documents never need a reachable database.
Writers receive the engine as an argument, which keeps them testable against SQLite.
"""

from __future__ import annotations

from functools import lru_cache

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from src.common.settings import get_settings


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Process-wide engine for the configured `DATABASE_URL`."""

    settings = get_settings()
    return create_engine(settings.DATABASE_URL, pool_pre_ping=True, future=True)


def test_connection(engine: Engine | None = None) -> bool:
    """Return True if the database can be reached and queried."""

    target = engine or get_engine()
    try:
        with target.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
