# plexus_sessions/sessions/errors.py
from fastapi import HTTPException, status
from typing import Optional


class SessionError(Exception):
    """Base class for errors raised by the session layer."""


class SessionExpired(SessionError):
    """
    Internal signal raised when a stored session outlived its expiry.

    Never surfaced to clients: the resolver converts it into "no session"
    after cleaning up the stale record and cookie.
    """

    def __init__(self, session_id: str, elapsed_seconds: int, expiry_seconds: int):
        self.session_id = session_id
        self.elapsed_seconds = elapsed_seconds
        self.expiry_seconds = expiry_seconds
        super().__init__(
            f"Session expired after {elapsed_seconds}s (expiry {expiry_seconds}s)."
        )


class MalformedSessionRecord(SessionError):
    """A stored record is not a valid session (missing id or createdAt, bad JSON)."""


class StorageFailure(SessionError):
    """The storage backend failed to get, set or delete a session record."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, operation: str, key: str, detail: str):
        self.operation = operation
        self.key = key
        self.detail = detail
        super().__init__(f"Session storage {operation} failed for key '{key}': {detail}")


class ReservedSessionKeyError(KeyError):
    """Raised when handler code tries to write a key reserved for lifecycle bookkeeping."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(key)

    def __str__(self) -> str:
        return f"'{self.key}' is reserved for session bookkeeping and cannot be assigned."


class SessionLifecycleError(HTTPException):
    """
    Fatal request-level error raised when any part of the session lifecycle
    pass fails.

    Preserves the original error's message (as ``detail``), its status code
    when it carries one, and the original exception as ``__cause__``.
    """

    fatal = True

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        cause: Optional[BaseException] = None,
    ):
        self.message = message
        super().__init__(status_code=status_code, detail=message)
        if cause is not None:
            self.__cause__ = cause


def wrap_session_error(error: BaseException) -> SessionLifecycleError:
    """Converts any exception into a SessionLifecycleError, keeping message, status code and cause."""
    if isinstance(error, SessionLifecycleError):
        return error

    status_code = getattr(error, "status_code", None)
    if not isinstance(status_code, int):
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    if isinstance(error, HTTPException) and isinstance(error.detail, str):
        message = error.detail
    else:
        message = str(error) or type(error).__name__

    return SessionLifecycleError(message=message, status_code=status_code, cause=error)
