# plexus_sessions/storage/__init__.py

"""Storage module initialization.

Shared SQLite connection handling used by the SQLite session backend.
"""

from .sqlite_base import (
    get_sqlite_db_connection,
    close_sqlite_db_connection
)

__all__ = [
    "get_sqlite_db_connection",
    "close_sqlite_db_connection"
]
