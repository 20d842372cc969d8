"""Service wiring for the field survey app.

Builds the cache engine's collaborators from settings and manages their
lifecycle: logging is configured and the engine opened on entry, the
engine disposed on exit.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import structlog

from src.fieldsync.config import get_settings
from src.fieldsync.core.database import close_db, get_engine
from src.fieldsync.core.logging import configure_structlog
from src.fieldsync.core.settings_store import SettingsStore, get_settings_store
from src.fieldsync.metadata.cache import MetadataCache
from src.fieldsync.remote.salesforce import SalesforceClient
from src.fieldsync.store.local_store import LocalStore
from src.fieldsync.surveys.repository import SurveyRepository
from src.fieldsync.surveys.sync import SyncReconciler


@dataclass
class FieldSyncServices:
    """Everything the UI layer needs to read, edit and sync surveys."""

    store: LocalStore
    settings_store: SettingsStore
    metadata: MetadataCache
    surveys: SurveyRepository
    sync: SyncReconciler


@asynccontextmanager
async def create_services() -> AsyncGenerator[FieldSyncServices, None]:
    """Open the cache and yield wired services; dispose of the engine on exit."""
    configure_structlog()
    log = structlog.get_logger(__name__)
    settings = get_settings()

    store = LocalStore(get_engine())
    settings_store = get_settings_store()
    client = SalesforceClient.from_settings()

    services = FieldSyncServices(
        store=store,
        settings_store=settings_store,
        metadata=MetadataCache(store, client, settings_store, settings.SURVEY_OBJECT),
        surveys=SurveyRepository(store),
        sync=SyncReconciler(store, client, settings_store),
    )
    log.info("fieldsync.started", database_url=settings.DATABASE_URL)
    try:
        yield services
    finally:
        await close_db()
        log.info("fieldsync.stopped")
