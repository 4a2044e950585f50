# plexus_sessions/utils/__init__.py

"""
Utility module initialization file.

Exposes session id generation and masking helpers.
"""

from .security import SESSION_ID_ALPHABET, generate_session_id, mask_session_id

__all__ = ["SESSION_ID_ALPHABET", "generate_session_id", "mask_session_id"]
