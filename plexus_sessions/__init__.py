# plexus_sessions/__init__.py
"""Cookie-bound server-side sessions for FastAPI/Starlette applications."""

from .settings import SessionSettings, get_settings
from .sessions import (
    SessionContext,
    SessionData,
    PlexusSessionMiddleware,
    install_session_middleware,
    get_session_store,
)
from .dependencies import get_session_context

__version__ = "0.1.0"

__all__ = [
    "SessionSettings",
    "get_settings",
    "SessionContext",
    "SessionData",
    "PlexusSessionMiddleware",
    "install_session_middleware",
    "get_session_store",
    "get_session_context",
]
