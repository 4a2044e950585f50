# plexus_sessions/main.py
from fastapi import FastAPI
from contextlib import asynccontextmanager
import logging
from typing import Optional

from .settings import SessionSettings, get_settings
from .sessions import AbstractSessionStore, get_session_store, install_session_middleware
from .sessions.endpoints import session_router

logger = logging.getLogger(__name__)


def configure_logging(settings: SessionSettings) -> None:
    """Configure root logging from settings unless the host already did."""
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level="DEBUG" if settings.debug_mode else settings.log_level.upper(),
            format='%(asctime)s - %(name)s [%(levelname)s] - %(message)s'
        )
    logging.getLogger("plexus_sessions").setLevel(
        logging.DEBUG if settings.debug_mode else settings.log_level.upper()
    )


def create_app(
    settings: Optional[SessionSettings] = None,
    store: Optional[AbstractSessionStore] = None,
) -> FastAPI:
    """
    Build the FastAPI application with session support.

    The store is initialized on startup. On shutdown, pending background
    saves are drained before the store is torn down.
    """
    settings = settings if settings is not None else get_settings()
    configure_logging(settings)
    # An empty MemorySessionStore is falsy, it defines __len__
    session_store = store if store is not None else get_session_store(settings)

    @asynccontextmanager
    async def plexus_sessions_lifespan(app_instance: FastAPI):
        logger.info("Application startup initiated.")
        try:
            await session_store.initialize()
        except Exception as e:
            logger.error(f"Error during session store initialization: {e}", exc_info=True)
            raise
        logger.info(f"Session store {type(session_store).__name__} initialized.")
        try:
            yield
        finally:
            logger.info("Application shutdown initiated.")
            controller = getattr(app_instance.state, "session_controller", None)
            if controller is not None:
                await controller.drain()
            await session_store.teardown()
            logger.info("Application shutdown complete.")

    app = FastAPI(title="Plexus Sessions", lifespan=plexus_sessions_lifespan)
    app.state.session_settings = settings
    app.state.session_store = session_store

    install_session_middleware(app, settings, session_store)
    app.include_router(session_router)

    @app.get("/health", tags=["Health"])
    async def health_check():
        return {"status": "ok", "storage_backend": settings.storage_backend}

    return app
