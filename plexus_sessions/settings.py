# plexus_sessions/settings.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator, model_validator
from typing import Literal, Optional, Union
from datetime import timedelta
from functools import lru_cache
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

# This settings.py file is at <project>/plexus_sessions/settings.py
PROJECT_ROOT = Path(__file__).parent.parent.resolve()
DOTENV_PATH = PROJECT_ROOT / ".env"

INFINITE_EXPIRY = "infinite"

# Values accepted in place of "infinite", mirroring `expiryInSeconds: false`
_INFINITE_ALIASES = {"infinite", "false", "none", "never"}


class SessionSettings(BaseSettings):
    """
    Process-wide session configuration.

    Values come from environment variables prefixed with ``PLEXUS_SESSION_``
    (or a ``.env`` file at the project root). Instances are frozen: a request
    only ever observes one configuration.
    """

    is_enabled: bool = True

    # Session lifetime, counted from ``created_at``
    expiry_in_seconds: Union[int, Literal["infinite"]] = 600
    id_length: int = Field(default=64, ge=16, le=512)
    store_prefix: str = "sessions"

    # Cookie attributes
    cookie_name: str = "sessionId"
    cookie_same_site: Literal["lax", "strict", "none"] = "lax"
    cookie_secure: bool = True
    cookie_http_only: bool = True
    domain: Union[Literal[False], str] = False
    rolling: bool = False

    # Accepted for compatibility, currently inert (always behave as False)
    resave: bool = False
    save_uninitialized: bool = False

    # Persist after the response in a background task instead of awaiting it
    save_async: bool = False

    # Storage backend selection
    storage_backend: Literal["memory", "redis", "sqlite"] = "memory"
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: Optional[str] = None
    redis_ssl: bool = False
    sqlite_db_path: str = "./plexus_sessions.sqlite3"

    # Logging
    log_level: str = "INFO"
    debug_mode: bool = False

    model_config = SettingsConfigDict(
        env_prefix="PLEXUS_SESSION_",
        env_file=DOTENV_PATH if DOTENV_PATH.exists() else None,
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    @field_validator("expiry_in_seconds", mode="before")
    @classmethod
    def _normalise_expiry(cls, value):
        if value is False or value is None:
            return INFINITE_EXPIRY
        if isinstance(value, str) and value.strip().lower() in _INFINITE_ALIASES:
            return INFINITE_EXPIRY
        return value

    @field_validator("expiry_in_seconds")
    @classmethod
    def _check_expiry_positive(cls, value):
        if value != INFINITE_EXPIRY and value <= 0:
            raise ValueError("expiry_in_seconds must be a positive number of seconds or 'infinite'")
        return value

    @field_validator("domain", mode="before")
    @classmethod
    def _normalise_domain(cls, value):
        if value is None:
            return False
        if isinstance(value, str) and value.strip().lower() in ("", "false", "0"):
            return False
        return value

    @field_validator("cookie_same_site", mode="before")
    @classmethod
    def _lower_same_site(cls, value):
        return value.lower() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _warn_inert_flags(self):
        if self.resave or self.save_uninitialized:
            logger.warning(
                f"resave={self.resave}, save_uninitialized={self.save_uninitialized}: "
                "only 'false' semantics are supported, these flags have no effect."
            )
        return self

    @property
    def has_finite_expiry(self) -> bool:
        return self.expiry_in_seconds != INFINITE_EXPIRY

    @property
    def expiry_timedelta(self) -> Optional[timedelta]:
        """Session lifetime as a timedelta, or None for infinite sessions."""
        if not self.has_finite_expiry:
            return None
        return timedelta(seconds=self.expiry_in_seconds)

    @property
    def store_ttl_seconds(self) -> Optional[int]:
        return self.expiry_in_seconds if self.has_finite_expiry else None

    def store_key(self, session_id: str) -> str:
        """Storage key for a session id. Format: {store_prefix}:{session_id}"""
        if not session_id:
            raise ValueError("session_id is required to construct a store key.")
        return f"{self.store_prefix}:{session_id}"

    def masked_dump(self) -> dict:
        """Settings as a dict with secrets masked, for display."""
        data = self.model_dump()
        if data.get("redis_password"):
            data["redis_password"] = "********"
        return data


@lru_cache()
def get_settings() -> SessionSettings:
    """
    Returns the process-wide settings used by application wiring and the CLI.

    Library components never call this; they receive settings explicitly.
    """
    settings = SessionSettings()
    logger.info(
        f"Loaded session settings: backend='{settings.storage_backend}', "
        f"expiry={settings.expiry_in_seconds}, rolling={settings.rolling}, "
        f"cookie_name='{settings.cookie_name}'"
    )
    return settings
