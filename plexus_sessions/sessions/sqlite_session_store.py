# plexus_sessions/sessions/sqlite_session_store.py
import sqlite3
import logging
import time
from typing import Optional

from .errors import StorageFailure
from .session_store import AbstractSessionStore
from ..storage.sqlite_base import get_sqlite_db_connection, close_sqlite_db_connection

logger = logging.getLogger(__name__)


class SQLiteSessionStore(AbstractSessionStore):
    """SQLite implementation of the session storage contract."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    async def initialize(self) -> None:
        """Ensure the database and session table exist."""
        await get_sqlite_db_connection(self.db_path)
        logger.info(f"SQLiteSessionStore initialized at {self.db_path}.")

    async def teardown(self) -> None:
        await close_sqlite_db_connection(self.db_path)
        logger.info("SQLiteSessionStore teardown complete.")

    async def _execute_query(
        self, operation: str, key: str, query: str, params: tuple = (), commit: bool = True
    ) -> sqlite3.Cursor:
        """
        Execute a SQL query with transaction handling.

        Raises:
            StorageFailure: If query execution fails
        """
        conn = await get_sqlite_db_connection(self.db_path)
        cursor = conn.cursor()
        try:
            cursor.execute(query, params)
            if commit:
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"SQLite error executing query '{query}': {e}", exc_info=True)
            if commit:
                conn.rollback()
            raise StorageFailure(operation, key, str(e)) from e
        return cursor

    async def get(self, key: str) -> Optional[bytes]:
        cursor = await self._execute_query(
            "get",
            key,
            "SELECT session_value, expires_at FROM plexus_sessions WHERE session_key = ?",
            (key,),
            commit=False,
        )
        row = cursor.fetchone()
        if not row:
            return None
        if row["expires_at"] is not None and row["expires_at"] <= time.time():
            logger.debug(f"SQLiteSessionStore: Row for key '{key}' reached its TTL, deleting it.")
            await self.delete(key)
            return None
        return bytes(row["session_value"])

    async def set(self, key: str, value: bytes, ttl_seconds: Optional[int] = None) -> None:
        expires_at = time.time() + ttl_seconds if ttl_seconds else None
        await self._execute_query(
            "set",
            key,
            "INSERT OR REPLACE INTO plexus_sessions (session_key, session_value, expires_at) "
            "VALUES (?, ?, ?)",
            (key, sqlite3.Binary(value), expires_at),
        )

    async def delete(self, key: str) -> None:
        cursor = await self._execute_query(
            "delete", key, "DELETE FROM plexus_sessions WHERE session_key = ?", (key,)
        )
        if cursor.rowcount == 0:
            logger.debug(f"No session found to delete for key: {key}")
