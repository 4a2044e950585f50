# plexus_sessions/sessions/resolver.py
import logging
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional

from ..settings import SessionSettings
from ..utils.security import mask_session_id
from .codec import try_decode_session
from .cookies import CookieWriter, PendingCookies
from .errors import SessionExpired
from .session_data import SessionData
from .session_store import AbstractSessionStore

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionResolver:
    """Loads the session referenced by a request's cookie, if it exists and is still valid."""

    def __init__(
        self,
        settings: SessionSettings,
        store: AbstractSessionStore,
        cookie_writer: CookieWriter,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings
        self.store = store
        self.cookie_writer = cookie_writer
        self.clock = clock

    def get_request_session_id(self, request_cookies: Mapping[str, str]) -> Optional[str]:
        """The session id carried by the request cookie, or None."""
        return request_cookies.get(self.settings.cookie_name) or None

    def check_expiration(self, session: SessionData) -> None:
        """
        Raises:
            SessionExpired: If more than expiry_in_seconds have elapsed since created_at.
        """
        created_at = session.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        elapsed_seconds = int((self.clock() - created_at).total_seconds())
        if elapsed_seconds > self.settings.expiry_in_seconds:
            raise SessionExpired(session.id, elapsed_seconds, self.settings.expiry_in_seconds)

    async def resolve(
        self, request_cookies: Mapping[str, str], cookies: PendingCookies
    ) -> Optional[SessionData]:
        """
        Resolve the session for a request.

        Returns None when there is no cookie, no stored record, a malformed
        record, or an expired session. Expired sessions are purged on the
        spot: their record is deleted and a cookie removal is queued on
        ``cookies``.
        """
        # 1. Does the session cookie exist on the request?
        session_id = self.get_request_session_id(request_cookies)
        if not session_id:
            return None

        # 2. Does the session exist in storage, with a valid shape?
        session_key = self.settings.store_key(session_id)
        session = try_decode_session(await self.store.get(session_key))
        if session is None or not session.is_initialized:
            logger.debug(f"resolve: No usable session stored for {mask_session_id(session_id)}")
            return None

        # 3. Is the session not expired?
        if self.settings.has_finite_expiry:
            try:
                self.check_expiration(session)
            except SessionExpired as e:
                logger.info(f"resolve: Session {mask_session_id(session_id)} expired ({e}). Purging it.")
                await self.store.delete(session_key)
                self.cookie_writer.clear(cookies)
                return None

        return session
