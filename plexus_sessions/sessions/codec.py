# plexus_sessions/sessions/codec.py
"""
Storage representation and change-detection fingerprint of a session.

A session is stored as a flat JSON object: the payload keys plus the two
reserved keys ``id`` and ``createdAt``. Serialization is canonical (sorted
keys, compact separators) so that the same logical session always produces
the same bytes and the same fingerprint, regardless of insertion order.
"""
import hashlib
import json
import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError
from pydantic_core import to_jsonable_python

from .errors import MalformedSessionRecord
from .session_data import SessionData

logger = logging.getLogger(__name__)

ID_KEY = "id"
CREATED_AT_KEY = "createdAt"


def session_to_record(session: SessionData) -> Dict[str, Any]:
    """Flattens a session into its JSON-compatible stored form."""
    record: Dict[str, Any] = to_jsonable_python(session.payload)
    record[ID_KEY] = session.id
    record[CREATED_AT_KEY] = (
        session.created_at.isoformat() if session.created_at is not None else None
    )
    return record


def canonical_json(session: SessionData) -> str:
    return json.dumps(
        session_to_record(session),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def encode_session(session: SessionData) -> bytes:
    """Serializes a session for the storage adapter."""
    return canonical_json(session).encode("utf-8")


def decode_session(raw: bytes) -> SessionData:
    """
    Parses a stored record back into a SessionData.

    Raises:
        MalformedSessionRecord: If the bytes are not a JSON object carrying
            both ``id`` and ``createdAt``.
    """
    try:
        record = json.loads(raw.decode("utf-8") if isinstance(raw, (bytes, bytearray)) else raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedSessionRecord(f"Stored session is not valid JSON: {e}") from e

    if not isinstance(record, dict):
        raise MalformedSessionRecord(f"Stored session is a {type(record).__name__}, expected an object.")
    if not record.get(ID_KEY) or not record.get(CREATED_AT_KEY):
        raise MalformedSessionRecord("Stored session is missing 'id' or 'createdAt'.")

    session_id = record.pop(ID_KEY)
    created_at = record.pop(CREATED_AT_KEY)
    try:
        return SessionData(id=session_id, created_at=created_at, payload=record)
    except ValidationError as e:
        raise MalformedSessionRecord(f"Stored session failed validation: {e}") from e


def try_decode_session(raw: Optional[bytes]) -> Optional[SessionData]:
    """Lenient decode: malformed records are reported as absent."""
    if raw is None:
        return None
    try:
        return decode_session(raw)
    except MalformedSessionRecord as e:
        logger.warning(f"Ignoring malformed session record: {e}")
        return None


def fingerprint(session: SessionData) -> str:
    """SHA-256 digest of the canonical serialization, used only for change detection."""
    return hashlib.sha256(canonical_json(session).encode("utf-8")).hexdigest()
