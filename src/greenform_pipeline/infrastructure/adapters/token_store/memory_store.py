from __future__ import annotations
from datetime import datetime, timedelta, timezone
from greenform_pipeline.application.ports.clock_port import Clock, SystemClock
from greenform_pipeline.application.ports.token_store_port import TokenStorePort

class InMemoryTokenStore(TokenStorePort):
    """Simple in-memory store for development and tests. Not persistent."""

    def __init__(self, *, buffer: timedelta = timedelta(minutes=5), clock: Clock | None = None) -> None:
        self._entries: dict[str, tuple[str, datetime]] = {}
        self._buffer = buffer
        self._clock = clock or SystemClock()

    def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        blob, expires_at = entry
        if expires_at - self._clock.now() <= self._buffer:
            del self._entries[key]
            return None
        return blob

    def set(self, key: str, blob: str, expires_at: datetime) -> None:
        self._entries[key] = (blob, expires_at.astimezone(timezone.utc))

    def clear(self, key: str) -> None:
        self._entries.pop(key, None)
