"""Key/value settings persistence outside the relational cache.

The metadata refresh flattens field types into one small mapping that is
read far more often than it is written. It lives in a settings store
injected into the MetadataCache rather than in a process-wide global.

Implementations:
- FileSettingsStore: JSON document on local disk (default on device)
- RedisSettingsStore: Redis-backed store with key prefixing
"""

from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import redis.asyncio as aioredis
import structlog

from src.fieldsync.config import get_settings

logger = structlog.get_logger(__name__)


class SettingsStore(ABC):
    """Abstract key/value store for JSON-serializable settings."""

    @abstractmethod
    async def save(self, key: str, data: Any) -> None:
        """Persist ``data`` under ``key``, replacing any previous value."""
        ...

    @abstractmethod
    async def load(self, key: str) -> Any | None:
        """Return the value stored under ``key``, or None if absent."""
        ...


class FileSettingsStore(SettingsStore):
    """Settings store persisted as a single JSON document.

    Writes go to a temporary sibling file first and are then moved over
    the original, so a crash never leaves a truncated document.

    Args:
        path: Location of the JSON document.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            return json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("settings_store.corrupt_document", path=str(self._path))
            return {}

    def _write(self, document: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        tmp_path.replace(self._path)

    async def save(self, key: str, data: Any) -> None:
        async with self._lock:
            document = await asyncio.to_thread(self._read)
            document[key] = data
            await asyncio.to_thread(self._write, document)
        logger.debug("settings_store.saved", key=key, path=str(self._path))

    async def load(self, key: str) -> Any | None:
        async with self._lock:
            document = await asyncio.to_thread(self._read)
        return document.get(key)


class RedisSettingsStore(SettingsStore):
    """Settings store backed by Redis, JSON-encoding every value.

    Every key is prefixed so several app installs can share one Redis.

    Args:
        redis_client: Async Redis client (``decode_responses=True``).
        prefix: Key prefix, e.g. ``fieldsync:settings``.
    """

    def __init__(self, redis_client: aioredis.Redis, prefix: str = "fieldsync:settings") -> None:
        self._redis = redis_client
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    async def save(self, key: str, data: Any) -> None:
        await self._redis.set(self._key(key), json.dumps(data))
        logger.debug("settings_store.saved", key=self._key(key))

    async def load(self, key: str) -> Any | None:
        raw = await self._redis.get(self._key(key))
        if raw is None:
            return None
        return json.loads(raw)


def get_settings_store() -> SettingsStore:
    """Build the settings store selected by configuration."""
    settings = get_settings()
    if settings.REDIS_URL:
        client = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
        return RedisSettingsStore(client)
    return FileSettingsStore(settings.SETTINGS_STORE_PATH)
