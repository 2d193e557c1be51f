from __future__ import annotations

from typing import Any

from loguru import logger

from greenform_pipeline.application.ports.auth_gateway_port import AuthGatewayPort
from greenform_pipeline.application.ports.http_client_port import HttpClientPort
from greenform_pipeline.domain.entities.credential import Credential
from greenform_pipeline.domain.errors import AuthError, AuthErrorReason
from greenform_pipeline.infrastructure.adapters.http.httpx_client import HttpTemporaryError

# Deployments disagree on field names; checked in order.
SUCCESS_FIELDS = ("success", "status", "ok")
TOKEN_FIELDS = ("token", "accessToken", "access_token", "jwt")
_TRUTHY = {"true", "ok", "success", "1", "200"}


def _indicator_passed(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value in (1, 200)
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


def extract_token(body: Any) -> str:
    """Pulls the token value out of a login response body.

    The first success indicator present decides success; an explicit falsy
    one means the credentials were rejected. The token is looked up in
    TOKEN_FIELDS order, at the top level and then under `data`.

    Raises:
        AuthError: INVALID_CREDENTIALS or MALFORMED_RESPONSE.
    """
    if not isinstance(body, dict):
        raise AuthError(AuthErrorReason.MALFORMED_RESPONSE, "Login response is not a JSON object")

    for field in SUCCESS_FIELDS:
        if field in body:
            if not _indicator_passed(body[field]):
                message = body.get("message") or "Login rejected"
                raise AuthError(AuthErrorReason.INVALID_CREDENTIALS, str(message))
            break

    scopes = [body]
    if isinstance(body.get("data"), dict):
        scopes.append(body["data"])
    for scope in scopes:
        for field in TOKEN_FIELDS:
            value = scope.get(field)
            if isinstance(value, str) and value.strip():
                return value.strip()

    raise AuthError(
        AuthErrorReason.MALFORMED_RESPONSE,
        f"No token in login response (looked for {', '.join(TOKEN_FIELDS)})",
    )


class BomsAuthGateway(AuthGatewayPort):
    """Logs in against the order service and returns the bearer token value."""

    def __init__(self, http: HttpClientPort, *, base_url: str, login_path: str = "/api/user/login") -> None:
        self.http = http
        self.url = f"{base_url.rstrip('/')}/{login_path.lstrip('/')}"

    async def login(self, credential: Credential) -> str:
        try:
            resp = await self.http.post_json(
                self.url,
                payload={"username": credential.username, "password": credential.secret},
            )
        except HttpTemporaryError as e:
            raise AuthError(AuthErrorReason.NETWORK_ERROR, str(e)) from e

        logger.debug(f"[BomsAuthGateway] POST login -> status={resp.status_code}")
        if resp.status_code in (401, 403):
            raise AuthError(AuthErrorReason.INVALID_CREDENTIALS, f"Login returned HTTP {resp.status_code}")
        if not resp.is_success:
            raise AuthError(AuthErrorReason.NETWORK_ERROR, f"Login returned HTTP {resp.status_code}")
        try:
            body = resp.json()
        except ValueError as e:
            raise AuthError(AuthErrorReason.MALFORMED_RESPONSE, "Login response is not JSON") from e
        return extract_token(body)
