"""Shared fixtures for cache and sync tests.

Provides:
- A real SQLite cache database per test (aiosqlite, temporary file)
- LocalStore bound to that database
- File-backed settings store in the test's temporary directory
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine

from src.fieldsync.core.database import create_engine
from src.fieldsync.core.settings_store import FileSettingsStore
from src.fieldsync.store.local_store import LocalStore


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Async engine over a fresh SQLite file."""
    cache_engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'cache.db'}")
    yield cache_engine
    await cache_engine.dispose()


@pytest.fixture
def store(engine) -> LocalStore:
    """LocalStore over the per-test database."""
    return LocalStore(engine)


@pytest.fixture
def settings_store(tmp_path) -> FileSettingsStore:
    """Settings store persisted in the test's temporary directory."""
    return FileSettingsStore(tmp_path / "settings.json")
