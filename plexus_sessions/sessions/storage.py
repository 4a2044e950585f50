# plexus_sessions/sessions/storage.py
import logging

from ..settings import SessionSettings
from .session_store import AbstractSessionStore, MemorySessionStore, RedisSessionStore
from .sqlite_session_store import SQLiteSessionStore

logger = logging.getLogger(__name__)


def get_session_store(settings: SessionSettings) -> AbstractSessionStore:
    """
    Build the session store selected by ``settings.storage_backend``.

    The returned store is not initialized; callers own its lifecycle
    (``initialize()`` on startup, ``teardown()`` on shutdown).
    """
    backend = settings.storage_backend
    if backend == "memory":
        store: AbstractSessionStore = MemorySessionStore()
    elif backend == "redis":
        store = RedisSessionStore(settings)
    elif backend == "sqlite":
        store = SQLiteSessionStore(settings.sqlite_db_path)
    else:
        raise ValueError(f"Unsupported storage_backend: {backend}")

    logger.info(f"Session storage backend '{backend}' selected: {type(store).__name__}")
    return store
