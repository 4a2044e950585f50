# plexus_sessions/sessions/session_store.py
import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from ..settings import SessionSettings
from .errors import StorageFailure

logger = logging.getLogger(__name__)


class AbstractSessionStore(ABC):
    """
    Key-value contract every session backend satisfies.

    Values are opaque bytes produced by the session codec. Keys are already
    namespaced as ``{store_prefix}:{session_id}``.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[bytes]:
        """Return the stored value, or None if the key is absent."""
        pass

    @abstractmethod
    async def set(self, key: str, value: bytes, ttl_seconds: Optional[int] = None) -> None:
        """Store a value, optionally expiring after ttl_seconds."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key. Deleting an absent key is not an error."""
        pass

    async def initialize(self) -> None:
        """Acquire backend resources."""
        pass

    async def teardown(self) -> None:
        """Release backend resources."""
        pass


class MemorySessionStore(AbstractSessionStore):
    """
    Process-local store, the default backend.

    Entries with a TTL are dropped on read once their deadline passes, and
    every write prunes whatever else has expired.
    """

    def __init__(self):
        self._entries: Dict[str, Tuple[bytes, Optional[float]]] = {}
        logger.info("MemorySessionStore initialized.")

    async def get(self, key: str) -> Optional[bytes]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, deadline = entry
        if deadline is not None and time.monotonic() >= deadline:
            logger.debug(f"MemorySessionStore: Entry for key '{key}' reached its TTL, dropping it.")
            del self._entries[key]
            return None
        return value

    async def set(self, key: str, value: bytes, ttl_seconds: Optional[int] = None) -> None:
        now = time.monotonic()
        self._prune_expired(now)
        deadline = now + ttl_seconds if ttl_seconds else None
        self._entries[key] = (bytes(value), deadline)

    def _prune_expired(self, now: float) -> None:
        expired = [
            key for key, (_, deadline) in self._entries.items()
            if deadline is not None and now >= deadline
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"MemorySessionStore: Pruned {len(expired)} expired entries.")

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def teardown(self) -> None:
        logger.info(f"MemorySessionStore teardown, discarding {len(self._entries)} entries.")
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class RedisSessionStore(AbstractSessionStore):
    """
    Redis-based implementation of session storage with TTL support.
    """

    def __init__(self, settings: SessionSettings, client: Optional[aioredis.Redis] = None):
        """
        Initialize the Redis session store.

        Args:
            settings: Session settings carrying the Redis connection parameters
            client: Pre-built Redis client; when given, initialize() reuses it
        """
        self.settings = settings
        self._redis_client: Optional[aioredis.Redis] = client
        logger.info(
            f"RedisSessionStore initialized for {settings.redis_host}:{settings.redis_port}, "
            f"DB: {settings.redis_db}"
        )

    async def initialize(self) -> None:
        """
        Establishes the connection to Redis and pings it.
        Skips client creation if a client already exists.
        """
        if self._redis_client is None:
            connection_params = {
                "host": self.settings.redis_host,
                "port": self.settings.redis_port,
                "db": self.settings.redis_db,
                "decode_responses": False,  # Values are raw codec bytes
            }
            if self.settings.redis_password:
                connection_params["password"] = self.settings.redis_password
            if self.settings.redis_ssl:
                connection_params["ssl"] = True

            logger.info(
                f"Connecting to Redis at {connection_params['host']}:"
                f"{connection_params['port']}, DB: {connection_params['db']}"
            )
            self._redis_client = aioredis.Redis(**connection_params)

        try:
            await self._redis_client.ping()
            logger.info("Successfully connected to Redis and pinged.")
        except RedisError as e:
            logger.error(f"Failed to connect to Redis: {e}", exc_info=True)
            self._redis_client = None
            raise StorageFailure("connect", "-", str(e)) from e

    async def teardown(self) -> None:
        if self._redis_client is not None:
            logger.info("Closing Redis connection.")
            await self._redis_client.aclose()
            self._redis_client = None
            logger.info("Redis connection closed.")
        else:
            logger.info("No active Redis connection to close.")

    def _get_client(self) -> aioredis.Redis:
        if self._redis_client is None:
            logger.error("Redis client not initialized. Call initialize() first.")
            raise RuntimeError("RedisSessionStore not initialized. Call initialize() first.")
        return self._redis_client

    async def get(self, key: str) -> Optional[bytes]:
        client = self._get_client()
        try:
            value = await client.get(key)
        except RedisError as e:
            logger.error(f"Error loading session for key {key}: {e}", exc_info=True)
            raise StorageFailure("get", key, str(e)) from e
        if value is None:
            logger.debug(f"No session found for key: '{key}'")
        return value

    async def set(self, key: str, value: bytes, ttl_seconds: Optional[int] = None) -> None:
        client = self._get_client()
        try:
            await client.set(key, value, ex=ttl_seconds)
        except RedisError as e:
            logger.error(f"Error saving session for key {key}: {e}", exc_info=True)
            raise StorageFailure("set", key, str(e)) from e
        logger.debug(f"Saved session for key: '{key}', TTL: {ttl_seconds}")

    async def delete(self, key: str) -> None:
        client = self._get_client()
        try:
            deleted_count = await client.delete(key)
        except RedisError as e:
            logger.error(f"Error deleting session for key {key}: {e}", exc_info=True)
            raise StorageFailure("delete", key, str(e)) from e
        if deleted_count:
            logger.debug(f"Session deleted for key: {key}")
        else:
            logger.debug(f"No session found to delete for key: {key}")
