from __future__ import annotations

import sqlite3
from datetime import UTC, datetime, timedelta
from pathlib import Path

from greenform_pipeline.application.ports.clock_port import Clock, SystemClock
from greenform_pipeline.application.ports.token_store_port import TokenStorePort

SCHEMA = """
CREATE TABLE IF NOT EXISTS token_store (
  key TEXT PRIMARY KEY,
  blob TEXT NOT NULL,
  expires_at TEXT NOT NULL
);
"""


class SQLiteTokenStore(TokenStorePort):
    """SQLite-backed token store. Persists token blobs across restarts.

    File path configurable; creates schema on first use. Entries expiring
    within `buffer` of now read as absent and are deleted on read.
    """

    def __init__(
        self,
        db_path: str = ".greenform_token.sqlite",
        *,
        buffer: timedelta = timedelta(minutes=5),
        clock: Clock | None = None,
    ) -> None:
        self._path = Path(db_path)
        self._buffer = buffer
        self._clock = clock or SystemClock()
        self._conn = sqlite3.connect(self._path)
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.executescript(SCHEMA)
        self._conn.commit()

    def get(self, key: str) -> str | None:
        cur = self._conn.execute("SELECT blob, expires_at FROM token_store WHERE key=?", (key,))
        row = cur.fetchone()
        if not row:
            return None
        blob, expires_iso = row
        try:
            expires = datetime.fromisoformat(expires_iso)
        except ValueError:
            self.clear(key)
            return None
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=UTC)
        if expires - self._clock.now() <= self._buffer:
            self.clear(key)
            return None
        return blob

    def set(self, key: str, blob: str, expires_at: datetime) -> None:
        expires_iso = expires_at.astimezone(UTC).isoformat()
        self._conn.execute(
            "INSERT INTO token_store (key, blob, expires_at) VALUES (?, ?, ?) "
            "ON CONFLICT(key) DO UPDATE SET blob=excluded.blob, expires_at=excluded.expires_at",
            (key, blob, expires_iso),
        )
        self._conn.commit()

    def clear(self, key: str) -> None:
        self._conn.execute("DELETE FROM token_store WHERE key=?", (key,))
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()
