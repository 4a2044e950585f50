# plexus_sessions/sessions/lifecycle.py
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional, Set

from ..settings import SessionSettings
from ..utils.security import generate_session_id, mask_session_id
from .codec import encode_session, fingerprint
from .cookies import CookieWriter, PendingCookies
from .errors import wrap_session_error
from .resolver import SessionResolver, utc_now
from .session_data import SessionData
from .session_store import AbstractSessionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionSnapshot:
    """Session identity and content digest observed at one point of the request."""

    session_id: str
    fingerprint: str


class SessionContext:
    """
    Request-scoped session state, owned by exactly one request.

    Handlers read and mutate ``session`` and may call ``touch()``,
    ``destroy()`` or ``regenerate()``. The controller consults the flags and
    snapshots when the response headers go out and when the body completes.
    """

    def __init__(
        self,
        controller: "SessionLifecycleController",
        session: Optional[SessionData],
        request_session_id: Optional[str],
        cookies: PendingCookies,
    ):
        self._controller = controller
        # Init mode when nothing was resolved, Active mode otherwise
        self.is_new = session is None
        self.session: SessionData = session if session is not None else SessionData()
        self.request_session_id = request_session_id
        self.cookies = cookies

        self.touched = False
        self.renewed = False
        self.destroyed = False

        self.pre_snapshot = controller.snapshot(self.session)
        self.header_snapshot: Optional[SessionSnapshot] = None
        self.completion_snapshot: Optional[SessionSnapshot] = None

        self.headers_handled = False
        self.completion_handled = False

    @property
    def session_id(self) -> str:
        return self.session.id

    def changed_since_start(self, snapshot: Optional[SessionSnapshot]) -> bool:
        if snapshot is None:
            return False
        return snapshot != self.pre_snapshot

    def touch(self) -> None:
        """Treat the session as modified even if its content is unchanged."""
        self.touched = True

    async def destroy(self) -> None:
        """Delete the session record and cookie now; nothing else is written this request."""
        await self._controller.destroy(self)

    async def regenerate(self) -> None:
        """Replace the session with a new id, keeping its payload."""
        await self._controller.regenerate(self)


class SessionLifecycleController:
    """
    Drives one session through a request/response cycle.

    ``begin`` resolves the session at request start, ``on_headers`` decides
    whether to (re)write the cookie just before headers are sent, and
    ``on_complete`` decides whether to persist once the body has been sent.
    """

    def __init__(
        self,
        settings: SessionSettings,
        store: AbstractSessionStore,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings
        self.store = store
        self.clock = clock
        self.cookie_writer = CookieWriter(settings)
        self.resolver = SessionResolver(settings, store, self.cookie_writer, clock=clock)
        self._background_saves: Set[asyncio.Task] = set()

    def snapshot(self, session: SessionData) -> SessionSnapshot:
        return SessionSnapshot(session_id=session.id, fingerprint=fingerprint(session))

    async def begin(self, request_cookies: Mapping[str, str]) -> SessionContext:
        """Resolve the request's session and seed a fresh context with it."""
        cookies = PendingCookies()
        try:
            session = await self.resolver.resolve(request_cookies, cookies)
            context = SessionContext(
                self,
                session,
                self.resolver.get_request_session_id(request_cookies),
                cookies,
            )
        except Exception as e:
            logger.error(f"begin: Failed to resolve session: {e}", exc_info=True)
            raise wrap_session_error(e)

        if context.is_new:
            logger.debug("begin: No valid session on request, starting in init mode.")
        else:
            logger.debug(f"begin: Loaded session {mask_session_id(context.session_id)}.")
        return context

    def create_session(self, context: SessionContext, init_payload: Optional[Dict[str, Any]] = None) -> None:
        """Give the context a fresh id and timestamp, optionally replacing its payload with a copy."""
        if init_payload is not None:
            context.session = SessionData(payload=dict(init_payload))
        context.session.id = generate_session_id(self.settings.id_length)
        context.session.created_at = self.clock()
        context.destroyed = False
        logger.debug(f"create_session: Issued session {mask_session_id(context.session_id)}.")

    async def delete_session(self, context: SessionContext) -> None:
        """Remove the stored record(s) for this request and queue the cookie removal."""
        session_ids = [context.request_session_id, context.session_id]
        for session_id in dict.fromkeys(sid for sid in session_ids if sid):
            await self.store.delete(self.settings.store_key(session_id))

        self.cookie_writer.clear(context.cookies)
        context.session = SessionData()
        context.destroyed = True

    async def destroy(self, context: SessionContext) -> None:
        try:
            await self.delete_session(context)
        except Exception as e:
            logger.error(f"destroy: Failed to destroy session: {e}", exc_info=True)
            raise wrap_session_error(e)
        logger.info("destroy: Session destroyed.")

    async def regenerate(self, context: SessionContext) -> None:
        previous_id = context.session_id
        payload = dict(context.session.payload)
        try:
            await self.delete_session(context)
            self.create_session(context, payload)
        except Exception as e:
            logger.error(f"regenerate: Failed to regenerate session: {e}", exc_info=True)
            raise wrap_session_error(e)
        context.renewed = True
        logger.info(
            f"regenerate: Session {mask_session_id(previous_id)} replaced by "
            f"{mask_session_id(context.session_id)}."
        )

    def _refresh_cookie(self, context: SessionContext) -> None:
        context.session.created_at = self.clock()
        self.cookie_writer.write(context.cookies, context.session_id, context.session.created_at)

    def on_headers(self, context: SessionContext) -> None:
        """
        Cookie decision, run once just before the response headers are sent.

        Init mode issues a session only when something happened to it.
        Active mode re-issues the cookie (and re-anchors created_at) when
        rolling, or when the session changed or was touched and either the
        expiry is finite or the session was regenerated.
        """
        if context.headers_handled:
            return
        context.headers_handled = True
        if context.destroyed:
            return

        try:
            context.header_snapshot = self.snapshot(context.session)
            changed = context.changed_since_start(context.header_snapshot) or context.touched

            if context.is_new:
                if changed:
                    self.create_session(context)
                    self.cookie_writer.write(
                        context.cookies, context.session_id, context.session.created_at
                    )
            elif (
                self.settings.rolling
                or (self.settings.has_finite_expiry and changed)
                or (context.renewed and changed)
            ):
                self._refresh_cookie(context)
        except Exception as e:
            logger.error(f"on_headers: Failed to apply session cookie: {e}", exc_info=True)
            raise wrap_session_error(e)

    async def on_complete(self, context: SessionContext) -> None:
        """
        Persistence decision, run once after the response body was sent.

        Writes the session at most once, and only when its id or content
        differs from the request start, as observed at header emission or
        now, or when it was touched.
        """
        if context.completion_handled:
            return
        context.completion_handled = True
        if context.destroyed:
            return

        try:
            context.completion_snapshot = self.snapshot(context.session)
            if not (
                context.changed_since_start(context.header_snapshot)
                or context.changed_since_start(context.completion_snapshot)
                or context.touched
            ):
                logger.debug(f"on_complete: Session {mask_session_id(context.session_id)} unchanged, skipping save.")
                return
            if not context.session.is_initialized:
                # Mutated after headers were sent in init mode; there is no cookie to bind it to
                logger.warning("on_complete: Session changed after headers were sent but was never issued, skipping save.")
                return

            await self.save_session(context.session)
        except Exception as e:
            logger.error(f"on_complete: Failed to persist session: {e}", exc_info=True)
            raise wrap_session_error(e)

    async def save_session(self, session: SessionData) -> None:
        await self.store.set(
            self.settings.store_key(session.id),
            encode_session(session),
            ttl_seconds=self.settings.store_ttl_seconds,
        )
        logger.debug(f"save_session: Saved session {mask_session_id(session.id)}.")

    async def complete(self, context: SessionContext) -> None:
        """Run the persistence decision, awaited or in the background per ``save_async``."""
        if not self.settings.save_async:
            await self.on_complete(context)
            return

        task = asyncio.create_task(self._complete_in_background(context))
        self._background_saves.add(task)
        task.add_done_callback(self._background_saves.discard)

    async def _complete_in_background(self, context: SessionContext) -> None:
        try:
            await self.on_complete(context)
        except Exception as e:
            # At most once: failures are logged, never retried
            logger.error(f"Background session save failed: {e}", exc_info=True)

    async def drain(self) -> None:
        """Wait for outstanding background saves."""
        if self._background_saves:
            await asyncio.gather(*list(self._background_saves), return_exceptions=True)
