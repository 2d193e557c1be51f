from __future__ import annotations
from typing import Mapping, Any
import httpx
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential_jitter, retry_if_exception_type
from greenform_pipeline.application.ports.http_client_port import HttpClientPort, HttpResponse

class HttpTemporaryError(Exception):
    pass

class HttpxClient(HttpClientPort):
    def __init__(self, timeout: float = 45.0, *, retries: int = 3, client: httpx.AsyncClient | None = None) -> None:
        """HTTP client adapter backed by a persistent httpx.AsyncClient.

        - Connection errors, timeouts and 5xx responses raise HttpTemporaryError
        - GET requests are retried on those with jittered exponential backoff, up to `retries` attempts
        - POST requests are sent exactly once
        - Any other status is returned to the caller for classification

        Args:
            timeout (float, optional): Per-request timeout in seconds. Defaults to 45.0.
            retries (int, optional): Attempts per GET request. Defaults to 3.
            client (httpx.AsyncClient | None, optional): Preconfigured client, mainly for tests.
        """
        self._client = client or httpx.AsyncClient(timeout=timeout, headers={
            "Accept": "application/json, text/plain, */*",
            "User-Agent": "greenform-pipeline/0.1 httpx",
        }, follow_redirects=True)
        self._retries = max(1, retries)

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(reraise=True, stop=stop_after_attempt(self._retries), wait=wait_exponential_jitter(initial=1, max=8), retry=retry_if_exception_type(HttpTemporaryError))

    async def _send(self, method: str, url: str, **kwargs: Any) -> HttpResponse:
        try:
            resp = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise HttpTemporaryError(f"{method} {url} failed: {e}") from e
        if resp.status_code >= 500:
            raise HttpTemporaryError(f"{method} {url} -> {resp.status_code}")
        return HttpResponse(resp.status_code, resp.text, str(resp.url), resp.headers, raw=resp)

    async def get(self, url: str, *, params: Mapping[str, str] | None = None, headers: Mapping[str, str] | None = None) -> HttpResponse:
        """Gets the given URL.

        Args:
            url (str): URL to get.
            params (Mapping[str, str] | None, optional): Query parameters. Defaults to None.
            headers (Mapping[str, str] | None, optional): Headers to include. Defaults to None.

        Returns:
            HttpResponse: Response from the server.
        """
        return await self._retrying()(self._send, "GET", url, params=params, headers=headers)

    async def post_json(self, url: str, *, payload: Mapping[str, Any] | None = None, headers: Mapping[str, str] | None = None) -> HttpResponse:
        """Posts a JSON body to the given URL. Not retried.

        Args:
            url (str): URL to post to.
            payload (Mapping[str, Any] | None, optional): JSON body. Defaults to None.
            headers (Mapping[str, str] | None, optional): Headers to include. Defaults to None.

        Returns:
            HttpResponse: Response from the server.
        """
        body = dict(payload) if payload is not None else None
        return await self._send("POST", url, json=body, headers=headers)

    async def aclose(self) -> None:
        await self._client.aclose()
