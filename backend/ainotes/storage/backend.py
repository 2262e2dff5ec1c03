from __future__ import annotations

import logging

from ainotes.config import Settings
from ainotes.storage.base import PersistenceAdapter
from ainotes.storage.local_store import LocalStorageAdapter
from ainotes.storage.remote_store import RemoteDocumentAdapter

logger = logging.getLogger(__name__)


def build_adapter(settings: Settings) -> PersistenceAdapter:
    if settings.remote_configured:
        logger.info("Using remote document store at %s", settings.appwrite_endpoint)
        return RemoteDocumentAdapter(
            endpoint=settings.appwrite_endpoint or "",
            project_id=settings.appwrite_project_id or "",
            database_id=settings.appwrite_db_id or "",
            collection_id=settings.appwrite_collection_id or "",
            api_key=settings.appwrite_api_key,
            timeout_s=settings.appwrite_timeout_s,
            page_size=settings.notes_page_size,
        )

    logger.warning(
        "Document store not configured (APPWRITE_ENDPOINT/PROJECT_ID/DB_ID/COLLECTION_ID); "
        "falling back to local storage in %s",
        settings.data_dir,
    )
    return LocalStorageAdapter(settings.data_dir)
