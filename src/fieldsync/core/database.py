"""Async SQLAlchemy engine for the on-device SQLite cache.

Provides:
- get_engine(): Lazily created AsyncEngine over aiosqlite
- close_db(): Dispose of the engine on shutdown

The cache is a single SQLite file with a single logical writer. Tables are
created dynamically by the LocalStore, so there is no declarative base here.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from src.fieldsync.config import get_settings

# ── Module-level engine (lazy init) ────────────────────────────────────────

_engine: AsyncEngine | None = None


def create_engine(database_url: str) -> AsyncEngine:
    """Create an AsyncEngine for the given SQLite URL."""
    engine = create_async_engine(database_url, echo=False)

    # Each pooled connection must honour foreign keys and wait briefly on a
    # locked database file instead of failing immediately.
    @event.listens_for(engine.sync_engine, "connect")
    def configure_sqlite(dbapi_conn: Any, connection_record: Any) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()

    return engine


def get_engine() -> AsyncEngine:
    """Get or create the async engine singleton."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_engine(settings.DATABASE_URL)
    return _engine


async def close_db() -> None:
    """Dispose of the engine and close all connections."""
    global _engine
    if _engine:
        await _engine.dispose()
        _engine = None
