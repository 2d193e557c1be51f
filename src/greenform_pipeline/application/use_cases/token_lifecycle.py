from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from loguru import logger

from greenform_pipeline.application.ports.auth_gateway_port import AuthGatewayPort
from greenform_pipeline.application.ports.clock_port import Clock, SystemClock
from greenform_pipeline.application.ports.token_store_port import TokenStorePort
from greenform_pipeline.domain.entities.credential import Credential
from greenform_pipeline.domain.entities.token import Token
from greenform_pipeline.domain.errors import AuthError, AuthErrorReason

TOKEN_STORE_KEY = "apiToken"
DEFAULT_VALIDITY = timedelta(hours=10)
DEFAULT_BUFFER = timedelta(minutes=5)


def is_valid(token: Token | None, now: datetime, buffer: timedelta = DEFAULT_BUFFER) -> bool:
    """True iff the token outlives `now` by strictly more than `buffer`."""
    if token is None:
        return False
    return token.expires_at - now > buffer


class TokenState(str, Enum):
    NO_TOKEN = "NO_TOKEN"
    VALID = "VALID"
    EXPIRED = "EXPIRED"


@dataclass(frozen=True)
class TokenStatus:
    state: TokenState
    expires_at: datetime | None


class TokenLifecycleManager:
    """Owns the bearer token: hydrates it from the store, validates it, and
    refreshes it through a single-flight login.

    Only one login request is in flight at a time. Callers that need a fresh
    token while a login is running await that login instead of starting their
    own, and all of them receive its token or its AuthError.
    """

    def __init__(
        self,
        store: TokenStorePort,
        gateway: AuthGatewayPort,
        credential: Credential,
        *,
        validity: timedelta = DEFAULT_VALIDITY,
        buffer: timedelta = DEFAULT_BUFFER,
        clock: Clock | None = None,
        store_key: str = TOKEN_STORE_KEY,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.credential = credential
        self.validity = validity
        self.buffer = buffer
        self.clock = clock or SystemClock()
        self.store_key = store_key
        self._token: Token | None = None
        self._hydrated = False
        self._lock = asyncio.Lock()
        self._inflight: asyncio.Task[Token] | None = None

    def _log(self, msg: str) -> None:
        logger.info(f"[TokenLifecycleManager] {msg}")

    @property
    def current_token(self) -> Token | None:
        self._hydrate()
        return self._token

    def _hydrate(self) -> None:
        if self._hydrated:
            return
        self._hydrated = True
        blob = self.store.get(self.store_key)
        if not blob:
            return
        try:
            token = Token.from_blob(blob)
        except ValueError as e:
            logger.warning(f"[TokenLifecycleManager] Discarding unreadable stored token: {e}")
            self.store.clear(self.store_key)
            return
        if is_valid(token, self.clock.now(), self.buffer):
            self._token = token
            self._log(f"Hydrated token from store, expires at {token.expires_at.isoformat()}")
        else:
            self._log("Stored token is inside the refresh buffer, discarding")
            self.store.clear(self.store_key)

    async def get_valid_token(self) -> Token:
        """Returns the cached token if still valid, otherwise logs in (single-flight)."""
        self._hydrate()
        token = self._token
        if token is not None and is_valid(token, self.clock.now(), self.buffer):
            return token
        return await self._refresh(stale=token)

    async def login(self, *, force: bool = False, replacing: Token | None = None) -> Token:
        """Obtains a token from the login endpoint.

        With force=True a new login happens even if the cached token looks
        valid, unless another caller has already replaced `replacing` with a
        newer valid token, which is then returned as is.
        """
        self._hydrate()
        if not force:
            return await self.get_valid_token()
        return await self._refresh(stale=replacing if replacing is not None else self._token)

    async def _refresh(self, *, stale: Token | None) -> Token:
        async with self._lock:
            current = self._token
            if (
                current is not None
                and current is not stale
                and is_valid(current, self.clock.now(), self.buffer)
            ):
                return current
            if self._inflight is None or self._inflight.done():
                self._inflight = asyncio.create_task(self._login_once())
            inflight = self._inflight
        # A cancelled waiter must not cancel the login the others are sharing
        return await asyncio.shield(inflight)

    async def _login_once(self) -> Token:
        if not self.credential.is_complete:
            raise AuthError(AuthErrorReason.INVALID_CREDENTIALS, "No credentials configured")
        self._log(f"Logging in as {self.credential.username}")
        try:
            value = await self.gateway.login(self.credential)
        except AuthError as e:
            logger.error(f"[TokenLifecycleManager] Login failed: {e}")
            raise
        issued_at = self.clock.now()
        token = Token(value=value, issued_at=issued_at, expires_at=issued_at + self.validity)
        self._token = token
        self.store.set(self.store_key, token.to_blob(), token.expires_at)
        self._log(f"Login succeeded, token valid until {token.expires_at.isoformat()}")
        return token

    def clear(self) -> None:
        """Drops the cached token and removes it from the store."""
        self._hydrated = True
        self._token = None
        self.store.clear(self.store_key)
        self._log("Token cleared")

    def status(self) -> TokenStatus:
        token = self.current_token
        if token is None:
            return TokenStatus(TokenState.NO_TOKEN, None)
        if is_valid(token, self.clock.now(), self.buffer):
            return TokenStatus(TokenState.VALID, token.expires_at)
        return TokenStatus(TokenState.EXPIRED, token.expires_at)
