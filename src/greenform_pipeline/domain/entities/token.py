from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime


@dataclass(frozen=True)
class Token:
    """Bearer token issued by a successful login.

    Immutable: a refresh produces a new Token, the old one is discarded.
    Timestamps are timezone-aware UTC.
    """

    value: str = field(repr=False)
    issued_at: datetime
    expires_at: datetime

    def to_blob(self) -> str:
        return json.dumps(
            {
                "value": self.value,
                "issued_at": self.issued_at.astimezone(UTC).isoformat(),
                "expires_at": self.expires_at.astimezone(UTC).isoformat(),
            }
        )

    @classmethod
    def from_blob(cls, blob: str) -> "Token":
        """Parses a blob written by to_blob. Raises ValueError on anything else."""
        try:
            data = json.loads(blob)
            value = data["value"]
            issued_at = _as_utc(datetime.fromisoformat(data["issued_at"]))
            expires_at = _as_utc(datetime.fromisoformat(data["expires_at"]))
        except (TypeError, KeyError, json.JSONDecodeError) as e:
            raise ValueError(f"Invalid token blob: {e}") from e
        if not isinstance(value, str) or not value:
            raise ValueError("Invalid token blob: empty value")
        return cls(value=value, issued_at=issued_at, expires_at=expires_at)


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)
