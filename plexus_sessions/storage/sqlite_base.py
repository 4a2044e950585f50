# plexus_sessions/storage/sqlite_base.py
import sqlite3
import logging
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

# One connection per database file for the application lifecycle
_db_connections: Dict[str, sqlite3.Connection] = {}


async def get_sqlite_db_connection(db_path: str) -> sqlite3.Connection:
    """
    Get or create the SQLite connection for a database file.

    Ensures the database directory exists and initializes the schema on
    first connection.

    Raises:
        sqlite3.Error: If database connection fails
    """
    resolved_path = str(Path(db_path).resolve())
    connection = _db_connections.get(resolved_path)
    if connection is None:
        try:
            Path(resolved_path).parent.mkdir(parents=True, exist_ok=True)
            logger.info(f"Attempting to connect to SQLite DB at: {resolved_path}")

            # Shared across the event loop's tasks
            connection = sqlite3.connect(resolved_path, check_same_thread=False)
            connection.row_factory = sqlite3.Row
            logger.info(f"Successfully connected to SQLite DB: {resolved_path}")

            await init_sqlite_db(connection)
        except sqlite3.Error as e:
            logger.error(f"Error connecting to SQLite database at {resolved_path}: {e}", exc_info=True)
            raise
        _db_connections[resolved_path] = connection
    return connection


async def init_sqlite_db(conn: sqlite3.Connection) -> None:
    """
    Create the session table if it does not exist.

    ``expires_at`` is a unix timestamp, NULL for records without a TTL.
    """
    cursor = conn.cursor()
    cursor.execute('''
    CREATE TABLE IF NOT EXISTS plexus_sessions (
        session_key TEXT PRIMARY KEY,
        session_value BLOB NOT NULL,
        expires_at REAL
    )
    ''')
    conn.commit()
    logger.info("Ensured 'plexus_sessions' table exists.")


async def close_sqlite_db_connection(db_path: Optional[str] = None) -> None:
    """
    Close the connection for one database file, or all of them.

    Should be called during application shutdown.
    """
    if db_path is None:
        paths = list(_db_connections)
    else:
        paths = [str(Path(db_path).resolve())]

    for path in paths:
        connection = _db_connections.pop(path, None)
        if connection is not None:
            logger.info(f"Closing SQLite DB connection: {path}")
            connection.close()
