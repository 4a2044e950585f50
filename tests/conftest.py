# tests/conftest.py
"""
Shared pytest fixtures for Plexus Sessions tests.

Provides settings factories, a recording in-memory store and an httpx
client bound to the FastAPI app through ASGITransport.
"""
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx
import pytest

from plexus_sessions.main import create_app
from plexus_sessions.settings import SessionSettings
from plexus_sessions.sessions import MemorySessionStore, SessionData, encode_session, StorageFailure

# https so that Secure cookies are sent back by the client
BASE_URL = "https://testserver"

logging.getLogger("plexus_sessions").setLevel(logging.DEBUG)


def make_settings(**overrides: Any) -> SessionSettings:
    """Settings that ignore any local .env file."""
    return SessionSettings(_env_file=None, **overrides)


class RecordingSessionStore(MemorySessionStore):
    """In-memory store that records every write and delete."""

    def __init__(self):
        super().__init__()
        self.writes: List[str] = []
        self.deletes: List[str] = []

    async def set(self, key: str, value: bytes, ttl_seconds: Optional[int] = None) -> None:
        self.writes.append(key)
        await super().set(key, value, ttl_seconds)

    async def delete(self, key: str) -> None:
        self.deletes.append(key)
        await super().delete(key)


class FailingSessionStore(MemorySessionStore):
    """Store whose selected operations raise StorageFailure."""

    def __init__(self, *failing_operations: str):
        super().__init__()
        self.failing_operations = set(failing_operations)

    async def get(self, key: str) -> Optional[bytes]:
        if "get" in self.failing_operations:
            raise StorageFailure("get", key, "connection refused")
        return await super().get(key)

    async def set(self, key: str, value: bytes, ttl_seconds: Optional[int] = None) -> None:
        if "set" in self.failing_operations:
            raise StorageFailure("set", key, "connection refused")
        await super().set(key, value, ttl_seconds)

    async def delete(self, key: str) -> None:
        if "delete" in self.failing_operations:
            raise StorageFailure("delete", key, "connection refused")
        await super().delete(key)


async def seed_session(
    store: MemorySessionStore,
    settings: SessionSettings,
    session_id: str = "seeded-session-id-0000000000000000",
    payload: Optional[Dict[str, Any]] = None,
    age_seconds: int = 0,
) -> SessionData:
    session = SessionData(
        id=session_id,
        created_at=datetime.now(timezone.utc) - timedelta(seconds=age_seconds),
        payload=payload or {},
    )
    await store.set(settings.store_key(session_id), encode_session(session))
    return session


async def stored_record(store: MemorySessionStore, settings: SessionSettings, session_id: str) -> Optional[Dict[str, Any]]:
    raw = await store.get(settings.store_key(session_id))
    return json.loads(raw) if raw is not None else None


@pytest.fixture
def settings() -> SessionSettings:
    return make_settings()


@pytest.fixture
def store() -> RecordingSessionStore:
    return RecordingSessionStore()


@pytest.fixture
def app(settings, store):
    return create_app(settings=settings, store=store)


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as http_client:
        yield http_client
