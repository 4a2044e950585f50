# plexus_sessions/sessions/cookies.py
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from starlette.responses import Response

from ..settings import SessionSettings

logger = logging.getLogger(__name__)


class PendingCookies:
    """
    Set-Cookie headers queued during a request, emitted with the response headers.

    Holds at most one header per cookie name; a later write or clear replaces
    an earlier one, so a clear followed by a re-issue sends only the re-issue.
    """

    def __init__(self):
        self._headers: Dict[str, str] = {}

    def put(self, name: str, header_value: str) -> None:
        self._headers[name] = header_value

    def get(self, name: str) -> Optional[str]:
        return self._headers.get(name)

    def header_values(self) -> List[str]:
        return list(self._headers.values())

    def __contains__(self, name: object) -> bool:
        return name in self._headers

    def __len__(self) -> int:
        return len(self._headers)


class CookieWriter:
    """Writes and clears the session cookie using the configured attributes."""

    def __init__(self, settings: SessionSettings):
        self.settings = settings

    @property
    def _domain(self) -> Optional[str]:
        return self.settings.domain or None

    def expiration_for(self, created_at: datetime) -> Optional[datetime]:
        """Absolute expiry of a cookie issued at created_at, None for session-lifetime cookies."""
        expiry = self.settings.expiry_timedelta
        if expiry is None:
            return None
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        # Set-Cookie dates must be rendered in GMT
        return (created_at + expiry).astimezone(timezone.utc)

    def write(self, cookies: PendingCookies, session_id: str, created_at: datetime) -> None:
        """Queue the session cookie for session_id, expiring relative to created_at."""
        response = Response()
        response.set_cookie(
            key=self.settings.cookie_name,
            value=session_id,
            expires=self.expiration_for(created_at),
            path="/",
            domain=self._domain,
            secure=self.settings.cookie_secure,
            httponly=self.settings.cookie_http_only,
            samesite=self.settings.cookie_same_site,
        )
        cookies.put(self.settings.cookie_name, response.headers["set-cookie"])
        logger.debug(f"Queued session cookie '{self.settings.cookie_name}' write.")

    def clear(self, cookies: PendingCookies) -> None:
        """Queue removal of the session cookie from the client."""
        response = Response()
        response.delete_cookie(
            key=self.settings.cookie_name,
            path="/",
            domain=self._domain,
            secure=self.settings.cookie_secure,
            httponly=self.settings.cookie_http_only,
            samesite=self.settings.cookie_same_site,
        )
        cookies.put(self.settings.cookie_name, response.headers["set-cookie"])
        logger.debug(f"Queued session cookie '{self.settings.cookie_name}' removal.")
