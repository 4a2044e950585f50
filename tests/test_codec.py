# tests/test_codec.py
import json
from datetime import datetime, timezone

import pytest

from plexus_sessions.sessions import (
    MalformedSessionRecord,
    ReservedSessionKeyError,
    SessionData,
    decode_session,
    encode_session,
    fingerprint,
    try_decode_session,
)

CREATED_AT = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def make_session(payload=None) -> SessionData:
    return SessionData(id="abc123", created_at=CREATED_AT, payload=payload or {})


def test_encoded_record_is_flat_and_carries_bookkeeping_keys():
    record = json.loads(encode_session(make_session({"foo": "bar"})))

    assert record == {"id": "abc123", "createdAt": CREATED_AT.isoformat(), "foo": "bar"}


def test_decode_restores_id_timestamp_and_payload():
    session = decode_session(encode_session(make_session({"cart": [1, 2], "user": {"name": "x"}})))

    assert session.id == "abc123"
    assert session.created_at == CREATED_AT
    assert session.payload == {"cart": [1, 2], "user": {"name": "x"}}


def test_fingerprint_ignores_key_insertion_order():
    first = make_session({"a": 1, "b": {"x": 1, "y": 2}})
    second = make_session({"b": {"y": 2, "x": 1}, "a": 1})

    assert fingerprint(first) == fingerprint(second)


def test_fingerprint_detects_payload_id_and_timestamp_changes():
    base = make_session({"a": 1})
    reference = fingerprint(base)

    assert fingerprint(make_session({"a": 2})) != reference
    assert fingerprint(SessionData(id="other", created_at=CREATED_AT, payload={"a": 1})) != reference
    assert fingerprint(SessionData(id="abc123", created_at=datetime.now(timezone.utc), payload={"a": 1})) != reference


def test_fingerprint_is_a_256_bit_hex_digest():
    assert len(fingerprint(make_session())) == 64


def test_fingerprint_of_uninitialised_session_is_stable():
    assert fingerprint(SessionData()) == fingerprint(SessionData())


@pytest.mark.parametrize(
    "raw",
    [
        b"not json",
        b"[1, 2, 3]",
        b'{"createdAt": "2026-01-01T00:00:00+00:00"}',
        b'{"id": "abc"}',
        b'{"id": "abc", "createdAt": "yesterday"}',
        b"\xff\xfe",
    ],
)
def test_malformed_records_are_rejected(raw):
    with pytest.raises(MalformedSessionRecord):
        decode_session(raw)
    assert try_decode_session(raw) is None


def test_try_decode_of_missing_value_is_none():
    assert try_decode_session(None) is None


def test_mapping_access_reads_and_writes_payload():
    session = make_session()
    session["foo"] = "bar"
    session.update({"count": 2})

    assert session["foo"] == "bar"
    assert "count" in session
    assert session.get("missing", "default") == "default"
    assert sorted(session.keys()) == ["count", "foo"]
    del session["foo"]
    assert session.payload == {"count": 2}


@pytest.mark.parametrize("key", ["id", "createdAt", "created_at"])
def test_reserved_keys_cannot_be_assigned(key):
    session = make_session()

    with pytest.raises(ReservedSessionKeyError):
        session[key] = "tampered"
    assert session.id == "abc123"
    assert session.created_at == CREATED_AT
