"""Gateway tests against a respx-mocked order service."""

from __future__ import annotations

from collections.abc import AsyncIterator
import json

import httpx
import pytest
from respx import MockRouter
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from greenform_pipeline.domain.entities.credential import Credential
from greenform_pipeline.domain.entities.token import Token
from greenform_pipeline.domain.errors import AuthError, AuthErrorReason
from greenform_pipeline.domain.model import Failure, FailureReason, Success
from greenform_pipeline.infrastructure.adapters.boms.auth_gateway import BomsAuthGateway, extract_token
from greenform_pipeline.infrastructure.adapters.boms.order_gateway import BomsOrderGateway
from greenform_pipeline.infrastructure.adapters.http.httpx_client import HttpTemporaryError, HttpxClient
from tests.unit._fakes_greenform import NOW

BASE = "https://boms.test"
LOGIN_URL = f"{BASE}/api/user/login"
GET_URL = f"{BASE}/api/order/greenform/get"
TOKEN = Token("tok-abc", NOW, NOW)
CRED = Credential("ops-user", "s3cret")


@pytest.fixture
async def http() -> AsyncIterator[HttpxClient]:
    client = HttpxClient(timeout=5.0, retries=1)
    yield client
    await client.aclose()


# ---------- Fetch RPC ----------
@pytest.mark.asyncio
async def test_fetch_one_success_sends_token_header(http: HttpxClient, respx_mock: MockRouter) -> None:
    route = respx_mock.get(GET_URL).mock(
        return_value=httpx.Response(
            200,
            json={
                "success": True,
                "data": {
                    "orderID": "QB-1",
                    "cnic": "35202-1234567-1",
                    "fullName": "Ayesha Khan",
                    "cnicUrl": "public/uploads/front.jpg",
                    "cnicBackUrl": "public/uploads/back.jpg",
                    "customerImage": "public/uploads/face.jpg",
                    "signature": None,
                    "utilityBill": "public/uploads/bill.pdf",
                },
            },
        )
    )

    outcome = await BomsOrderGateway(http, base_url=BASE).fetch_one("QB-1", TOKEN)

    assert isinstance(outcome, Success)
    assert outcome.record.full_name == "Ayesha Khan"
    assert outcome.record.cnic_back_path == "public/uploads/back.jpg"
    assert outcome.record.signature_path is None
    request = route.calls.last.request
    assert request.headers["x-access-token"] == "tok-abc"
    assert request.url.params["orderID"] == "QB-1"


@pytest.mark.asyncio
async def test_fetch_one_401_is_auth_failure_regardless_of_body(http: HttpxClient, respx_mock: MockRouter) -> None:
    respx_mock.get(GET_URL).mock(return_value=httpx.Response(401, json={"success": True, "data": {}}))

    outcome = await BomsOrderGateway(http, base_url=BASE).fetch_one("QB-1", TOKEN)

    assert isinstance(outcome, Failure)
    assert outcome.reason is FailureReason.AUTH_FAILURE


@pytest.mark.asyncio
async def test_fetch_one_business_failure_is_not_found(http: HttpxClient, respx_mock: MockRouter) -> None:
    respx_mock.get(GET_URL).mock(
        return_value=httpx.Response(200, json={"success": False, "message": "Order not found"})
    )

    outcome = await BomsOrderGateway(http, base_url=BASE).fetch_one("QB-404", TOKEN)

    assert outcome == Failure(FailureReason.NOT_FOUND, "Order not found")


@pytest.mark.asyncio
async def test_fetch_one_http_404_without_message_is_not_found(http: HttpxClient, respx_mock: MockRouter) -> None:
    respx_mock.get(GET_URL).mock(return_value=httpx.Response(404, text="missing"))

    outcome = await BomsOrderGateway(http, base_url=BASE).fetch_one("QB-404", TOKEN)

    assert outcome == Failure(FailureReason.NOT_FOUND, "No data found")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>gateway</html>"),
        httpx.Response(200, json={"success": True}),
        httpx.Response(200, json=["not", "an", "object"]),
        httpx.Response(503, json={"message": "maintenance"}),
        httpx.Response(400, json={"message": "bad request"}),
    ],
)
async def test_fetch_one_unexpected_shapes_are_network_errors(
    http: HttpxClient, respx_mock: MockRouter, response: httpx.Response
) -> None:
    respx_mock.get(GET_URL).mock(return_value=response)

    outcome = await BomsOrderGateway(http, base_url=BASE).fetch_one("QB-1", TOKEN)

    assert isinstance(outcome, Failure)
    assert outcome.reason is FailureReason.NETWORK_ERROR


@pytest.mark.asyncio
async def test_fetch_one_transport_failure_is_network_error(http: HttpxClient, respx_mock: MockRouter) -> None:
    respx_mock.get(GET_URL).mock(side_effect=httpx.ConnectError("connection refused"))

    outcome = await BomsOrderGateway(http, base_url=BASE).fetch_one("QB-1", TOKEN)

    assert outcome == Failure(FailureReason.NETWORK_ERROR, "Failed to fetch data")


# ---------- Login RPC ----------
@pytest.mark.asyncio
async def test_login_posts_credentials_and_returns_token(http: HttpxClient, respx_mock: MockRouter) -> None:
    route = respx_mock.post(LOGIN_URL).mock(
        return_value=httpx.Response(200, json={"success": True, "token": "fresh-token"})
    )

    value = await BomsAuthGateway(http, base_url=BASE).login(CRED)

    assert value == "fresh-token"
    assert json.loads(route.calls.last.request.content) == {"username": "ops-user", "password": "s3cret"}


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [401, 403])
async def test_login_rejected_status_is_invalid_credentials(
    http: HttpxClient, respx_mock: MockRouter, status: int
) -> None:
    respx_mock.post(LOGIN_URL).mock(return_value=httpx.Response(status, json={"message": "nope"}))

    with pytest.raises(AuthError) as exc:
        await BomsAuthGateway(http, base_url=BASE).login(CRED)

    assert exc.value.reason is AuthErrorReason.INVALID_CREDENTIALS


@pytest.mark.asyncio
async def test_login_transport_failure_is_network_error(http: HttpxClient, respx_mock: MockRouter) -> None:
    respx_mock.post(LOGIN_URL).mock(side_effect=httpx.ConnectTimeout("timed out"))

    with pytest.raises(AuthError) as exc:
        await BomsAuthGateway(http, base_url=BASE).login(CRED)

    assert exc.value.reason is AuthErrorReason.NETWORK_ERROR


@pytest.mark.asyncio
async def test_login_non_json_is_malformed(http: HttpxClient, respx_mock: MockRouter) -> None:
    respx_mock.post(LOGIN_URL).mock(return_value=httpx.Response(200, text="welcome"))

    with pytest.raises(AuthError) as exc:
        await BomsAuthGateway(http, base_url=BASE).login(CRED)

    assert exc.value.reason is AuthErrorReason.MALFORMED_RESPONSE


@pytest.fixture
def fast_retry_client() -> HttpxClient:
    client = HttpxClient(timeout=5.0, retries=3)
    # Zero backoff keeps the test fast
    client._retrying = lambda: AsyncRetrying(  # type: ignore[method-assign]
        reraise=True, stop=stop_after_attempt(3), retry=retry_if_exception_type(HttpTemporaryError)
    )
    return client


@pytest.mark.asyncio
async def test_transient_errors_are_retried_for_lookups(fast_retry_client: HttpxClient, respx_mock: MockRouter) -> None:
    route = respx_mock.get(GET_URL).mock(
        side_effect=[
            httpx.Response(502),
            httpx.Response(200, json={"success": True, "data": {"orderID": "QB-1", "cnic": "1", "fullName": "A"}}),
        ]
    )

    outcome = await BomsOrderGateway(fast_retry_client, base_url=BASE).fetch_one("QB-1", TOKEN)

    assert isinstance(outcome, Success)
    assert route.call_count == 2
    await fast_retry_client.aclose()


@pytest.mark.asyncio
async def test_failed_login_is_sent_once(fast_retry_client: HttpxClient, respx_mock: MockRouter) -> None:
    route = respx_mock.post(LOGIN_URL).mock(
        side_effect=[httpx.Response(502), httpx.Response(200, json={"token": "second-try"})]
    )

    with pytest.raises(AuthError) as exc:
        await BomsAuthGateway(fast_retry_client, base_url=BASE).login(CRED)

    assert exc.value.reason is AuthErrorReason.NETWORK_ERROR
    assert route.call_count == 1
    await fast_retry_client.aclose()


# ---------- Token field tolerance ----------
@pytest.mark.parametrize(
    "body",
    [
        {"success": True, "token": "T"},
        {"status": "success", "accessToken": "T"},
        {"ok": True, "access_token": "T"},
        {"jwt": "T"},
        {"success": True, "data": {"token": "T"}},
        {"status": 200, "data": {"accessToken": " T "}},
    ],
)
def test_extract_token_accepts_candidate_fields(body):
    assert extract_token(body) == "T"


def test_extract_token_prefers_earlier_candidates():
    assert extract_token({"accessToken": "second", "token": "first"}) == "first"


@pytest.mark.parametrize(
    "body, reason",
    [
        ({"success": False, "message": "Invalid password"}, AuthErrorReason.INVALID_CREDENTIALS),
        ({"status": "error", "token": "T"}, AuthErrorReason.INVALID_CREDENTIALS),
        ({"success": True}, AuthErrorReason.MALFORMED_RESPONSE),
        ({"success": True, "token": ""}, AuthErrorReason.MALFORMED_RESPONSE),
        ({"success": True, "data": "T"}, AuthErrorReason.MALFORMED_RESPONSE),
        (["T"], AuthErrorReason.MALFORMED_RESPONSE),
    ],
)
def test_extract_token_failures(body, reason):
    with pytest.raises(AuthError) as exc:
        extract_token(body)
    assert exc.value.reason is reason
