# plexus_sessions/sessions/session_data.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Iterator, Optional
from datetime import datetime

from .errors import ReservedSessionKeyError

# Keys owned by the lifecycle bookkeeping; handler code may not assign them
RESERVED_KEYS = frozenset({"id", "createdAt", "created_at"})


class SessionData(BaseModel):
    """
    Server-held state for one session.

    ``id`` and ``created_at`` are lifecycle bookkeeping; ``payload`` is the
    open mapping handlers read and mutate. An uninitialised session (no
    cookie yet) has an empty id and no ``created_at``.
    """

    id: str = Field(default="", description="Random session identifier, empty until issued.")
    created_at: Optional[datetime] = Field(
        default=None,
        description="Creation marker and expiry anchor; refreshed when the cookie is re-issued.",
    )
    payload: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(validate_assignment=True)

    @property
    def is_initialized(self) -> bool:
        """A session is valid only when it carries both an id and a creation time."""
        return bool(self.id) and self.created_at is not None

    # Mapping-style access to the payload

    def __getitem__(self, key: str) -> Any:
        return self.payload[key]

    def __setitem__(self, key: str, value: Any) -> None:
        if key in RESERVED_KEYS:
            raise ReservedSessionKeyError(key)
        self.payload[key] = value

    def __delitem__(self, key: str) -> None:
        del self.payload[key]

    def __contains__(self, key: object) -> bool:
        return key in self.payload

    def __len__(self) -> int:
        return len(self.payload)

    def get(self, key: str, default: Any = None) -> Any:
        return self.payload.get(key, default)

    def keys(self) -> Iterator[str]:
        return iter(self.payload.keys())

    def update(self, values: Dict[str, Any]) -> None:
        for key, value in values.items():
            self[key] = value
