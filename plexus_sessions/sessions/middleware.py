# plexus_sessions/sessions/middleware.py
import logging
from typing import Optional

from fastapi import FastAPI
from starlette.datastructures import MutableHeaders
from starlette.requests import HTTPConnection
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..settings import SessionSettings
from .errors import SessionLifecycleError
from .lifecycle import SessionContext, SessionLifecycleController
from .session_store import AbstractSessionStore

logger = logging.getLogger(__name__)

# Key under scope["state"], i.e. request.state.plexus_session
SESSION_STATE_KEY = "plexus_session"


class PlexusSessionMiddleware:
    """
    ASGI middleware binding the session lifecycle to the response pipeline.

    The cookie decision runs when ``http.response.start`` passes through,
    before the headers reach the server. The persistence decision runs after
    the final body chunk was sent and the application returned; if the
    application fails before that, nothing is persisted.

    This middleware sits outside FastAPI's exception handlers, so lifecycle
    errors raised before the response started are rendered here as JSON with
    their own status code.
    """

    def __init__(
        self,
        app: ASGIApp,
        settings: SessionSettings,
        store: AbstractSessionStore,
        controller: Optional[SessionLifecycleController] = None,
    ):
        self.app = app
        self.settings = settings
        self.controller = controller if controller is not None else SessionLifecycleController(settings, store)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        connection = HTTPConnection(scope)
        try:
            context = await self.controller.begin(connection.cookies)
        except SessionLifecycleError as e:
            await self._send_error(e, scope, receive, send)
            return
        scope.setdefault("state", {})[SESSION_STATE_KEY] = context

        response_completed = False
        response_replaced = False

        async def send_with_session(message: Message) -> None:
            nonlocal response_completed, response_replaced
            if response_replaced:
                # The application's own response was swapped for an error response
                return
            if message["type"] == "http.response.start":
                try:
                    self.controller.on_headers(context)
                except SessionLifecycleError as e:
                    response_replaced = True
                    await self._send_error(e, scope, receive, send)
                    return
                self._append_cookies(message, context)
                await send(message)
            elif message["type"] == "http.response.body":
                await send(message)
                if not message.get("more_body", False):
                    response_completed = True
            else:
                await send(message)

        await self.app(scope, receive, send_with_session)

        if response_replaced or not response_completed:
            logger.debug("Response did not complete, skipping session persistence.")
            return
        await self.controller.complete(context)

    @staticmethod
    async def _send_error(error: SessionLifecycleError, scope: Scope, receive: Receive, send: Send) -> None:
        logger.error(f"Session lifecycle failed before the response started ({error.status_code}): {error.detail}")
        response = JSONResponse(status_code=error.status_code, content={"detail": error.detail})
        await response(scope, receive, send)

    @staticmethod
    def _append_cookies(message: Message, context: SessionContext) -> None:
        if not context.cookies:
            return
        message.setdefault("headers", [])
        headers = MutableHeaders(scope=message)
        for header_value in context.cookies.header_values():
            headers.append("set-cookie", header_value)


def install_session_middleware(app: FastAPI, settings: SessionSettings, store: AbstractSessionStore) -> bool:
    """
    Register PlexusSessionMiddleware on an application.

    The controller driving the middleware is published as
    ``app.state.session_controller`` so shutdown code can drain pending
    background saves. Returns False (and leaves the app untouched) when
    sessions are disabled.
    """
    if not settings.is_enabled:
        logger.info("Skipping session setup, as sessions are disabled")
        return False

    logger.info("Setting up sessions...")
    controller = SessionLifecycleController(settings, store)
    app.add_middleware(PlexusSessionMiddleware, settings=settings, store=store, controller=controller)
    app.state.session_controller = controller
    logger.info(
        f"Session setup complete (store: {type(store).__name__}, "
        f"cookie: '{settings.cookie_name}', expiry: {settings.expiry_in_seconds})"
    )
    return True
