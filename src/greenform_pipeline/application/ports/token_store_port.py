from __future__ import annotations

from datetime import datetime
from typing import Protocol


class TokenStorePort(Protocol):
    """Key-value persistence for token blobs, with an expiry stored alongside.

    Implementations treat an entry whose expiry falls within their buffer
    window of "now" as absent.
    """

    def get(self, key: str) -> str | None:
        """Returns the stored blob, or None if missing or (nearly) expired."""
        ...

    def set(self, key: str, blob: str, expires_at: datetime) -> None:
        """Stores blob under key, replacing any previous entry."""
        ...

    def clear(self, key: str) -> None:
        """Removes the entry for key if present."""
        ...
