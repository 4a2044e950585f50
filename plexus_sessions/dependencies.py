# plexus_sessions/dependencies.py
import logging
from fastapi import HTTPException, Request, status

from .sessions.lifecycle import SessionContext
from .sessions.middleware import SESSION_STATE_KEY

logger = logging.getLogger(__name__)


async def get_session_context(request: Request) -> SessionContext:
    """
    Returns the request-scoped session context published by PlexusSessionMiddleware.

    Raises HTTPException 500 when the middleware is not installed, since no
    handler can work with sessions in that case.
    """
    context = getattr(request.state, SESSION_STATE_KEY, None)
    if not isinstance(context, SessionContext):
        logger.critical("Session context requested but PlexusSessionMiddleware is not installed.")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Session support is not configured on this application.",
        )
    return context
