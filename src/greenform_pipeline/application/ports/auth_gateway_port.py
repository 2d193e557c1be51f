from __future__ import annotations

from typing import Protocol

from greenform_pipeline.domain.entities.credential import Credential


class AuthGatewayPort(Protocol):
    """Calls the remote login endpoint."""

    async def login(self, credential: Credential) -> str:
        """Returns the raw token value.

        Raises AuthError (invalid credentials, network failure, malformed response).
        """
        ...
