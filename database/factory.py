import logging

from core.config import Settings, get_settings
from core.exceptions import StorageError
from database.memory_store import InMemoryStore
from database.mongo_client import MongoStore

logger = logging.getLogger(__name__)


def get_store(settings: Settings = None):
    """MongoStore when MONGODB_URI is set, otherwise an in-memory store."""
    settings = settings or get_settings()
    if not settings.mongodb_uri:
        logger.warning("[STORE] MONGODB_URI not set; using in-memory store (data is not persisted)")
        return InMemoryStore()

    logger.info(f"[STORE] Using MongoDB database '{settings.mongodb_db}'")
    store = MongoStore(settings.mongodb_uri, settings.mongodb_db)
    try:
        store.ensure_indexes()
    except StorageError as e:
        # Queries still work without the indexes, only slower
        logger.warning(f"[STORE] Could not create indexes: {e.message}")
    return store
