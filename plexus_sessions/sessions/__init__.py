# plexus_sessions/sessions/__init__.py
"""
Session management module for Plexus Sessions.

This module provides the core components for cookie-bound server-side
sessions: the data model and codec, storage backends, the resolver, the
lifecycle controller and the ASGI middleware binding them to requests.
"""

from .session_data import SessionData, RESERVED_KEYS
from .codec import encode_session, decode_session, try_decode_session, fingerprint
from .errors import (
    SessionError,
    SessionExpired,
    MalformedSessionRecord,
    StorageFailure,
    ReservedSessionKeyError,
    SessionLifecycleError,
    wrap_session_error,
)
from .session_store import AbstractSessionStore, MemorySessionStore, RedisSessionStore
from .sqlite_session_store import SQLiteSessionStore
from .storage import get_session_store
from .cookies import CookieWriter, PendingCookies
from .resolver import SessionResolver
from .lifecycle import SessionContext, SessionLifecycleController, SessionSnapshot
from .middleware import PlexusSessionMiddleware, install_session_middleware, SESSION_STATE_KEY

__all__ = [
    "SessionData",
    "RESERVED_KEYS",
    "encode_session",
    "decode_session",
    "try_decode_session",
    "fingerprint",
    "SessionError",
    "SessionExpired",
    "MalformedSessionRecord",
    "StorageFailure",
    "ReservedSessionKeyError",
    "SessionLifecycleError",
    "wrap_session_error",
    "AbstractSessionStore",
    "MemorySessionStore",
    "RedisSessionStore",
    "SQLiteSessionStore",
    "get_session_store",
    "CookieWriter",
    "PendingCookies",
    "SessionResolver",
    "SessionContext",
    "SessionLifecycleController",
    "SessionSnapshot",
    "PlexusSessionMiddleware",
    "install_session_middleware",
    "SESSION_STATE_KEY",
]
