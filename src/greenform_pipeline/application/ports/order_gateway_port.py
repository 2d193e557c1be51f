from __future__ import annotations

from typing import Protocol

from greenform_pipeline.domain.entities.token import Token
from greenform_pipeline.domain.model import FetchOutcome


class OrderGatewayPort(Protocol):
    """Looks up a single order's green form documents."""

    async def fetch_one(self, order_id: str, token: Token) -> FetchOutcome:
        """Never raises for per-item problems; they come back as Failure outcomes."""
        ...
