from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Credential:
    """Login credential for the order service. Supplied once from configuration."""

    username: str
    secret: str = field(repr=False)

    @property
    def is_complete(self) -> bool:
        return bool(self.username.strip() and self.secret)
