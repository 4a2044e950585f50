# plexus_sessions/sessions/endpoints.py
import logging
from fastapi import APIRouter, Body, Depends, HTTPException, Path, status
from typing import Any, Annotated, Dict

from ..dependencies import get_session_context
from ..utils.security import mask_session_id
from .errors import ReservedSessionKeyError
from .lifecycle import SessionContext

logger = logging.getLogger(__name__)

# Demo router exposing the handler-facing session API over HTTP
session_router = APIRouter(prefix="/session", tags=["Session"])

SessionDep = Annotated[SessionContext, Depends(get_session_context)]


def _session_view(context: SessionContext) -> Dict[str, Any]:
    return {
        "session_id": context.session_id or None,
        "is_new": context.is_new,
        "payload": dict(context.session.payload),
    }


@session_router.get("")
async def read_session_endpoint(context: SessionDep):
    """Return the current session payload without modifying it."""
    return _session_view(context)


@session_router.put("/{key}")
async def set_session_value_endpoint(
    key: Annotated[str, Path(description="Payload key to set")],
    value: Annotated[Any, Body(description="Any JSON value")],
    context: SessionDep,
):
    """Set one payload key. Reserved bookkeeping keys are rejected with 400."""
    try:
        context.session[key] = value
    except ReservedSessionKeyError as e:
        logger.warning(f"API: Rejected write to reserved session key '{key}'.")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _session_view(context)


@session_router.delete("/{key}")
async def delete_session_value_endpoint(
    key: Annotated[str, Path(description="Payload key to remove")],
    context: SessionDep,
):
    """Remove one payload key. Returns 404 if it is not set."""
    if key not in context.session:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Session key '{key}' not set")
    del context.session[key]
    return _session_view(context)


@session_router.post("/touch")
async def touch_session_endpoint(context: SessionDep):
    context.touch()
    return _session_view(context)


@session_router.post("/regenerate")
async def regenerate_session_endpoint(context: SessionDep):
    previous_id = context.session_id
    await context.regenerate()
    logger.info(f"API: Session {mask_session_id(previous_id)} regenerated.")
    return _session_view(context)


@session_router.post("/destroy", status_code=status.HTTP_204_NO_CONTENT)
async def destroy_session_endpoint(context: SessionDep):
    await context.destroy()
