from __future__ import annotations

from typing import Any

from loguru import logger

from greenform_pipeline.application.ports.http_client_port import HttpClientPort, HttpResponse
from greenform_pipeline.application.ports.order_gateway_port import OrderGatewayPort
from greenform_pipeline.domain.entities.order_record import OrderRecord
from greenform_pipeline.domain.entities.token import Token
from greenform_pipeline.domain.model import Failure, FailureReason, FetchOutcome, Success
from greenform_pipeline.infrastructure.adapters.http.httpx_client import HttpTemporaryError

GREENFORM_GET_PATH = "/api/order/greenform/get"
ACCESS_TOKEN_HEADER = "x-access-token"
AUTH_FAILED_MESSAGE = "Authentication failed - invalid or expired token"
NOT_FOUND_MESSAGE = "No data found"


def _json_body(resp: HttpResponse) -> dict[str, Any] | None:
    try:
        body = resp.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def classify_response(order_id: str, resp: HttpResponse) -> FetchOutcome:
    """Maps a lookup response to an outcome.

    401 is authoritative for AUTH_FAILURE whatever the body says.
    """
    if resp.status_code == 401:
        return Failure(FailureReason.AUTH_FAILURE, AUTH_FAILED_MESSAGE)

    body = _json_body(resp)
    message = str(body.get("message")) if body and body.get("message") else ""

    if resp.status_code == 404:
        return Failure(FailureReason.NOT_FOUND, message or NOT_FOUND_MESSAGE)
    if not resp.is_success:
        return Failure(FailureReason.NETWORK_ERROR, message or f"HTTP {resp.status_code}")
    if body is None:
        return Failure(FailureReason.NETWORK_ERROR, "Unexpected response body")
    if not body.get("success"):
        return Failure(FailureReason.NOT_FOUND, message or NOT_FOUND_MESSAGE)

    data = body.get("data")
    if not isinstance(data, dict):
        return Failure(FailureReason.NETWORK_ERROR, "Response has no record data")
    return Success(OrderRecord.from_payload(data, order_id=order_id))


class BomsOrderGateway(OrderGatewayPort):
    """Fetches one green form record with the token in the access-token header."""

    def __init__(self, http: HttpClientPort, *, base_url: str) -> None:
        self.http = http
        self.url = f"{base_url.rstrip('/')}{GREENFORM_GET_PATH}"

    async def fetch_one(self, order_id: str, token: Token) -> FetchOutcome:
        try:
            resp = await self.http.get(
                self.url,
                params={"orderID": order_id},
                headers={ACCESS_TOKEN_HEADER: token.value},
            )
        except HttpTemporaryError as e:
            logger.warning(f"[BomsOrderGateway] {order_id}: transport failure: {e}")
            return Failure(FailureReason.NETWORK_ERROR, "Failed to fetch data")
        outcome = classify_response(order_id, resp)
        if isinstance(outcome, Failure):
            logger.debug(f"[BomsOrderGateway] {order_id}: {outcome.reason.value} ({outcome.message})")
        return outcome
