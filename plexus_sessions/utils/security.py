# plexus_sessions/utils/security.py
import secrets
import string

# URL-safe alphabet, same characters nanoid draws from
SESSION_ID_ALPHABET = string.ascii_letters + string.digits + "_-"


def generate_session_id(length: int) -> str:
    """Generates a random session id of exactly `length` URL-safe characters."""
    if length <= 0:
        raise ValueError("Session id length must be positive.")
    return "".join(secrets.choice(SESSION_ID_ALPHABET) for _ in range(length))


def mask_session_id(session_id: str) -> str:
    """Shortened form of a session id, safe to write to logs."""
    if not session_id:
        return "<none>"
    return f"{session_id[:8]}..."
