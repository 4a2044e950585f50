# tests/test_session_store.py
import pytest
from unittest.mock import AsyncMock

from redis.exceptions import ConnectionError as RedisConnectionError

from plexus_sessions.sessions import (
    MemorySessionStore,
    RedisSessionStore,
    SQLiteSessionStore,
    StorageFailure,
    get_session_store,
)
from plexus_sessions.sessions import session_store as session_store_module
from plexus_sessions.sessions import sqlite_session_store as sqlite_store_module

from conftest import make_settings


class FakeTime:
    """Stands in for the time module inside a store module."""

    def __init__(self, start: float = 1000.0):
        self.value = start

    def monotonic(self) -> float:
        return self.value

    def time(self) -> float:
        return self.value


# --- Memory ---

@pytest.mark.asyncio
async def test_memory_store_round_trip():
    store = MemorySessionStore()

    await store.set("sessions:a", b"payload")

    assert await store.get("sessions:a") == b"payload"
    assert await store.get("sessions:missing") is None
    assert len(store) == 1


@pytest.mark.asyncio
async def test_memory_store_drops_entries_after_ttl(monkeypatch):
    fake_time = FakeTime()
    monkeypatch.setattr(session_store_module, "time", fake_time)
    store = MemorySessionStore()

    await store.set("sessions:a", b"payload", ttl_seconds=60)
    fake_time.value += 59
    assert await store.get("sessions:a") == b"payload"

    fake_time.value += 1
    assert await store.get("sessions:a") is None
    assert len(store) == 0


@pytest.mark.asyncio
async def test_memory_store_write_prunes_other_expired_entries(monkeypatch):
    fake_time = FakeTime()
    monkeypatch.setattr(session_store_module, "time", fake_time)
    store = MemorySessionStore()

    await store.set("sessions:abandoned", b"old", ttl_seconds=30)
    await store.set("sessions:durable", b"kept")
    fake_time.value += 31

    await store.set("sessions:fresh", b"new", ttl_seconds=30)

    assert len(store) == 2
    assert await store.get("sessions:durable") == b"kept"
    assert await store.get("sessions:fresh") == b"new"


@pytest.mark.asyncio
async def test_memory_store_delete_is_idempotent():
    store = MemorySessionStore()
    await store.set("sessions:a", b"payload")

    await store.delete("sessions:a")
    await store.delete("sessions:a")

    assert await store.get("sessions:a") is None


# --- Redis ---

@pytest.fixture
def redis_client():
    return AsyncMock()


@pytest.fixture
def redis_store(redis_client):
    return RedisSessionStore(make_settings(storage_backend="redis"), client=redis_client)


@pytest.mark.asyncio
async def test_redis_initialize_pings_existing_client(redis_store, redis_client):
    await redis_store.initialize()

    redis_client.ping.assert_awaited_once()


@pytest.mark.asyncio
async def test_redis_initialize_failure_raises_storage_failure(redis_store, redis_client):
    redis_client.ping.side_effect = RedisConnectionError("Connection refused")

    with pytest.raises(StorageFailure) as exc_info:
        await redis_store.initialize()

    assert exc_info.value.operation == "connect"
    assert "Connection refused" in str(exc_info.value)


@pytest.mark.asyncio
async def test_redis_get_returns_raw_bytes(redis_store, redis_client):
    redis_client.get.return_value = b'{"id": "abc"}'

    result = await redis_store.get("sessions:abc")

    assert result == b'{"id": "abc"}'
    redis_client.get.assert_awaited_once_with("sessions:abc")


@pytest.mark.asyncio
async def test_redis_get_missing_key(redis_store, redis_client):
    redis_client.get.return_value = None

    assert await redis_store.get("sessions:abc") is None


@pytest.mark.asyncio
async def test_redis_set_passes_ttl(redis_store, redis_client):
    await redis_store.set("sessions:abc", b"value", ttl_seconds=600)

    redis_client.set.assert_awaited_once_with("sessions:abc", b"value", ex=600)


@pytest.mark.asyncio
async def test_redis_set_without_ttl(redis_store, redis_client):
    await redis_store.set("sessions:abc", b"value")

    redis_client.set.assert_awaited_once_with("sessions:abc", b"value", ex=None)


@pytest.mark.asyncio
async def test_redis_delete(redis_store, redis_client):
    redis_client.delete.return_value = 1

    await redis_store.delete("sessions:abc")

    redis_client.delete.assert_awaited_once_with("sessions:abc")


@pytest.mark.asyncio
@pytest.mark.parametrize("operation", ["get", "set", "delete"])
async def test_redis_errors_become_storage_failures(redis_store, redis_client, operation):
    getattr(redis_client, operation).side_effect = RedisConnectionError("Connection lost")

    with pytest.raises(StorageFailure) as exc_info:
        if operation == "set":
            await redis_store.set("sessions:abc", b"value", ttl_seconds=10)
        else:
            await getattr(redis_store, operation)("sessions:abc")

    assert exc_info.value.operation == operation
    assert exc_info.value.key == "sessions:abc"
    assert "Connection lost" in str(exc_info.value)
    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_redis_requires_initialization():
    store = RedisSessionStore(make_settings(storage_backend="redis"))

    with pytest.raises(RuntimeError, match="not initialized"):
        await store.get("sessions:abc")


@pytest.mark.asyncio
async def test_redis_teardown_closes_client(redis_store, redis_client):
    await redis_store.teardown()

    redis_client.aclose.assert_awaited_once()
    with pytest.raises(RuntimeError):
        await redis_store.get("sessions:abc")


# --- SQLite ---

@pytest.fixture
async def sqlite_store(tmp_path):
    store = SQLiteSessionStore(str(tmp_path / "sessions.sqlite3"))
    await store.initialize()
    yield store
    await store.teardown()


@pytest.mark.asyncio
async def test_sqlite_round_trip(sqlite_store):
    await sqlite_store.set("sessions:a", b'{"id": "a"}')

    assert await sqlite_store.get("sessions:a") == b'{"id": "a"}'
    assert await sqlite_store.get("sessions:missing") is None


@pytest.mark.asyncio
async def test_sqlite_set_overwrites(sqlite_store):
    await sqlite_store.set("sessions:a", b"first")
    await sqlite_store.set("sessions:a", b"second")

    assert await sqlite_store.get("sessions:a") == b"second"


@pytest.mark.asyncio
async def test_sqlite_expired_rows_are_removed(sqlite_store, monkeypatch):
    fake_time = FakeTime(start=1_800_000_000.0)
    monkeypatch.setattr(sqlite_store_module, "time", fake_time)

    await sqlite_store.set("sessions:a", b"value", ttl_seconds=30)
    fake_time.value += 29
    assert await sqlite_store.get("sessions:a") == b"value"

    fake_time.value += 1
    assert await sqlite_store.get("sessions:a") is None

    # Row is gone even once the clock is back
    fake_time.value -= 30
    assert await sqlite_store.get("sessions:a") is None


@pytest.mark.asyncio
async def test_sqlite_delete(sqlite_store):
    await sqlite_store.set("sessions:a", b"value")

    await sqlite_store.delete("sessions:a")
    await sqlite_store.delete("sessions:a")

    assert await sqlite_store.get("sessions:a") is None


@pytest.mark.asyncio
async def test_sqlite_persists_across_connections(tmp_path):
    db_path = str(tmp_path / "durable.sqlite3")
    first = SQLiteSessionStore(db_path)
    await first.initialize()
    await first.set("sessions:a", b"value")
    await first.teardown()

    second = SQLiteSessionStore(db_path)
    await second.initialize()
    try:
        assert await second.get("sessions:a") == b"value"
    finally:
        await second.teardown()


# --- Factory ---

@pytest.mark.parametrize(
    "backend, expected_type",
    [
        ("memory", MemorySessionStore),
        ("redis", RedisSessionStore),
        ("sqlite", SQLiteSessionStore),
    ],
)
def test_get_session_store_selects_backend(backend, expected_type):
    store = get_session_store(make_settings(storage_backend=backend))

    assert isinstance(store, expected_type)


def test_get_session_store_uses_configured_sqlite_path(tmp_path):
    db_path = str(tmp_path / "custom.sqlite3")

    store = get_session_store(make_settings(storage_backend="sqlite", sqlite_db_path=db_path))

    assert store.db_path == db_path
